"""
JSON logging for the wordchain service.

Every record is one JSON object per line. Records carry the service name and
environment, the emitting thread (edge increments run on a worker pool), and
whatever the caller passed under `extra={"metrics": {...}}`.
"""

from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
import os
import logging
import json
import sys
import tempfile

SERVICE_NAME = "wordchain"
DEFAULT_LOG_FILE = "wordchain.log"


class JsonLogger(logging.Formatter):
    """Formatter that renders a log record, plus fixed service fields, as JSON."""

    def __init__(self, service=SERVICE_NAME, environment=None):
        super().__init__()
        self.service = service
        self.environment = environment

    def format(self, record):
        """
        Format the log record as a JSON string.

        Args:
            record: The log record to format

        Returns:
            str: JSON formatted log string
        """
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'service': self.service,
            'environment': self.environment,
            'logger': record.name,
            'thread': record.threadName,
            'message': record.getMessage(),
            'path': record.pathname,
            'line': record.lineno,
            'function': record.funcName
        }

        metrics = getattr(record, 'metrics', None)
        if metrics is not None:
            log_data['metrics'] = metrics

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        # Token values in metrics may not be JSON-native
        return json.dumps(log_data, default=str)


def get_project_root():
    """Directory that holds models/, utils/ and configs/"""
    current_dir = os.path.dirname(os.path.abspath(__file__))
    return os.path.abspath(os.path.join(current_dir, '..', '..'))


def determine_log_path(log_file=""):
    """
    Resolve the log file path and create its directory.

    Args:
        log_file (str): Explicit path, or "" for logs/wordchain.log under the
            project root

    Returns:
        str: Path to write to; falls back to the temp directory when the
            log directory cannot be created
    """
    log_path = log_file or os.path.join(get_project_root(), 'logs', DEFAULT_LOG_FILE)

    log_dir = os.path.dirname(log_path)
    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
        except OSError as e:
            print(f"Error creating log directory {log_dir}: {e}", file=sys.stderr)
            log_path = os.path.join(tempfile.gettempdir(), os.path.basename(log_path))

    return log_path


def resolve_log_level(default="INFO"):
    """Read the console log level from LOG_LEVEL, falling back to `default`."""
    level_name = os.getenv("LOG_LEVEL", default).upper()
    return getattr(logging, level_name, logging.INFO)


def get_logger(logger_name, log_file=None, clear_existing=True, environment=None):
    """
    Get a logger writing JSON to stdout and, optionally, to an hourly file.

    Args:
        logger_name (str): Name for the logger
        log_file (str, optional): None for stdout only, "" for the default
            file under the project logs directory, or an explicit path
        clear_existing (bool): Whether to clear existing handlers
        environment (str, optional): Environment name stamped on every record

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)

    if clear_existing and logger.handlers:
        logger.handlers.clear()

    if logger.handlers:
        return logger

    formatter = JsonLogger(environment=environment)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(resolve_log_level())
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        file_handler = TimedRotatingFileHandler(determine_log_path(log_file), when="H")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
