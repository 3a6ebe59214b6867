"""
Structured logging setup.
"""

import logging
from typing import Optional

from flask import Flask
from pythonjsonlogger import jsonlogger

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def setup_logging(app: Flask, level: str = "INFO", log_file: Optional[str] = None):
    """Setup structured JSON logging"""

    json_formatter = jsonlogger.JsonFormatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Re-running the app factory (tests) must not stack handlers
    for handler in list(root_logger.handlers):
        if getattr(handler, "_nosql_sanitizer", False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(json_formatter)
    console_handler._nosql_sanitizer = True
    root_logger.addHandler(console_handler)

    # File handler (optional)
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except FileNotFoundError:
            root_logger.warning(f"Log directory missing, file logging disabled: {log_file}")
        else:
            file_handler.setFormatter(json_formatter)
            file_handler._nosql_sanitizer = True
            root_logger.addHandler(file_handler)

    app.logger.setLevel(level)
