#!/usr/bin/env python3
"""
Wordchain HTTP Server

Exposes the chain learner and the text synthesizer over HTTP:

    POST /input      {"input": "some text"}                 -> 204
    POST /generate   {"start": "seed", "max_length": 200}   -> 200 text/plain

Run:
    wordchain-server --env development --port 8080
"""

import sys
import argparse
from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from api.request_logging import register_request_logging
from api.validation import GenerateRequest, InputRequest, parse_request
from models.chain.chain_learner import ChainLearner
from models.chain.errors import ChainError, ValidationError
from models.chain.text_synthesizer import TextSynthesizer
from utils.database_adapters.postgresql.chain_store import ChainStorePostgreSqlAdapter
from utils.loggers.json_logger import get_logger
from utils.settings import SettingsError, load_settings, resolve_environment


def create_app(learner, synthesizer, logger):
    """
    Build the Flask application.

    Args:
        learner (ChainLearner): Handles POST /input
        synthesizer (TextSynthesizer): Handles POST /generate
        logger: Logger for request and error records

    Returns:
        Flask: The configured application
    """
    app = Flask(__name__)
    register_request_logging(app, logger)
    # Any origin, method and header; preflight is answered by flask-cors
    CORS(app, send_wildcard=True)

    @app.route("/input", methods=["POST"])
    def add_input():
        body = parse_request(InputRequest, request.get_json(silent=True))
        learner.ingest(body.input)
        return Response(status=204)

    @app.route("/generate", methods=["POST"])
    def generate():
        body = parse_request(GenerateRequest, request.get_json(silent=True))
        text = synthesizer.generate(seed=body.start, max_length=body.max_length)
        return Response(text, status=200, mimetype="text/plain")

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(Exception)
    def handle_error(error):
        if isinstance(error, HTTPException):
            return error

        logger.error("api error", exc_info=error, extra={
            "metrics": {
                "error_type": type(error).__name__,
                "core_error": isinstance(error, ChainError),
                "path": request.path,
            }
        })
        return Response("internal server error", status=500, mimetype="text/plain")

    return app


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Serve the wordchain text learner and generator over HTTP")
    parser.add_argument("--env", default=None,
                        help="Environment (default: $WORDCHAIN_ENV or development)")
    parser.add_argument("--host", help="Bind address (default: from settings)")
    parser.add_argument("--port", type=int, help="Bind port (default: from settings)")
    parser.add_argument("--log-file", default="",
                        help="JSON log file (default: logs/wordchain.log)")
    args = parser.parse_args(argv)
    environment = resolve_environment(args.env)

    logger = get_logger("wordchain", log_file=args.log_file, environment=environment)
    logger.info("Welcome to wordchain")

    try:
        settings = load_settings(environment, logger=logger)
    except SettingsError as e:
        logger.error(f"Failed to load settings: {e}")
        return 1

    chain_store = ChainStorePostgreSqlAdapter(
        environment=settings["environment"],
        logger=logger,
        db_config=settings["database"],
    )
    if not chain_store.is_usable():
        logger.error("Database adapter is not usable")
        return 1

    learner = None
    try:
        chain_store.setup_database()

        # More workers than connections would only queue on the pool
        max_workers = min(settings["ingest"]["max_workers"],
                          settings["database"]["max_connections"])
        learner = ChainLearner(chain_store, logger=logger, max_workers=max_workers)
        synthesizer = TextSynthesizer(chain_store, logger=logger)
        app = create_app(learner, synthesizer, logger)

        host = args.host or settings["server"]["host"]
        port = args.port or settings["server"]["port"]
        logger.info(f"Starting web server on http://{host}:{port}")
        app.run(host=host, port=port, threaded=True)
    except ChainError as e:
        logger.error(f"Server startup failed: {e}")
        return 1
    finally:
        if learner is not None:
            learner.close()
        chain_store.close_connections()

    return 0


if __name__ == "__main__":
    sys.exit(main())
