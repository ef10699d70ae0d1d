"""Structured JSON logging for the exporter."""

import logging
import sys
from pythonjsonlogger.json import JsonFormatter


LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'

# Short keys for log shippers; collector failures add "collector" and
# "duration_seconds" through the record's extra fields.
RENAMED_FIELDS = {"asctime": "time", "levelname": "level", "name": "logger"}


def setup_logger(name: str = "hyperv_exporter", level: str = "INFO") -> logging.Logger:
    """
    Configure structured JSON logging on stdout.

    Child loggers (``hyperv_exporter.http``, ``<name>.ScrapeOrchestrator``, ...)
    propagate to the returned logger and share its handler.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        logging.Logger: Configured logger instance

    Raises:
        ValueError: If level is not a known logging level
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    # Reconfiguring replaces the previous handler
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(
        LOG_FORMAT,
        rename_fields=RENAMED_FIELDS,
        timestamp=False
    ))
    logger.addHandler(handler)

    logger.propagate = False

    return logger
