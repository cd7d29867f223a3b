"""
Logging configuration for the First-Goal Pick'em application
"""

import copy
import logging
import logging.handlers
import os
from logging import Filter

from flask import g, has_request_context, request

_FIELDS = ("url", "remote_addr", "method", "user")


class RequestContextFilter(Filter):
    """Stamp each record with the request and signed-in user, or N/A"""

    def filter(self, record):
        if not has_request_context():
            for field in _FIELDS:
                setattr(record, field, "N/A")
            return True

        record.url = request.path
        record.remote_addr = request.headers.get("X-Forwarded-For", request.remote_addr)
        record.method = request.method
        # Only read the user Flask-Login already loaded; never trigger a load here
        user = g.get("_login_user")
        record.user = user.get_id() if user is not None and user.is_authenticated else "anonymous"
        return True


class ColoredFormatter(logging.Formatter):
    """Level names in color for the debug console"""

    PALETTE = {
        "DEBUG": "36",
        "INFO": "32",
        "WARNING": "33",
        "ERROR": "31",
        "CRITICAL": "35",
    }

    def format(self, record):
        code = self.PALETTE.get(record.levelname)
        if not code:
            return super().format(record)

        # Records are shared with the file handlers; color a copy only
        colored = copy.copy(record)
        colored.levelname = f"\033[{code}m{record.levelname}\033[0m"
        return super().format(colored)


def _rotating_handler(path, level, fmt, max_bytes, backup_count):
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(app):
    """
    Setup logging for the Flask application

    Args:
        app: Flask application instance
    """
    log_level = getattr(logging, app.config.get("LOG_LEVEL", "INFO").upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates when the factory runs twice
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if app.config.get("LOG_TO_CONSOLE", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)

        if app.debug:
            console_formatter = ColoredFormatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s "
                "[%(filename)s:%(lineno)d]",
                datefmt="%H:%M:%S",
            )
        else:
            console_formatter = logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )

        console_handler.setFormatter(console_formatter)
        console_handler.addFilter(RequestContextFilter())
        root_logger.addHandler(console_handler)

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)

        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "firstgoal.log"),
                log_level,
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s "
                "[%(method)s %(url)s] [%(remote_addr)s] [user=%(user)s]",
                max_bytes=10 * 1024 * 1024,
                backup_count=5,
            )
        )
        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "errors.log"),
                logging.ERROR,
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s "
                "[%(pathname)s:%(lineno)d] [%(url)s] [%(remote_addr)s]",
                max_bytes=5 * 1024 * 1024,
                backup_count=3,
            )
        )

        # Background sweeps and feed syncs get their own file
        scheduler_handler = _rotating_handler(
            os.path.join(log_dir, "scheduler.log"),
            logging.INFO,
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            max_bytes=5 * 1024 * 1024,
            backup_count=3,
        )
        logging.getLogger("firstgoal.services.scheduler_service").addHandler(
            scheduler_handler
        )

    # Configure third-party loggers
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("flask_limiter").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    app.logger.info(f"Logging configured - Level: {logging.getLevelName(log_level)}")
