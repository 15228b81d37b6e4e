"""Per-request logging hooks for the Flask application."""

import time
from flask import g, request

from api.client_ip import resolve_client_ip


def register_request_logging(app, logger):
    """
    Log the start and end of every request with the resolved client IP.

    Server errors are logged by the application's error handler, so finished
    requests are always logged at INFO.
    """

    @app.before_request
    def start_request_log():
        g.client_ip = resolve_client_ip(request)
        g.request_started = time.time()
        logger.info("request started", extra={
            "metrics": {
                "client_ip": g.client_ip,
                "method": request.method,
                "path": request.path,
            }
        })

    @app.after_request
    def finish_request_log(response):
        started = g.get("request_started", time.time())
        logger.info("request finished", extra={
            "metrics": {
                "client_ip": g.get("client_ip"),
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": round((time.time() - started) * 1000, 2),
            }
        })
        return response
