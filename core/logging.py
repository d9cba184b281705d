"""
Structured logging for PlaceMatch

Library modules only emit records. Importing the package attaches a
NullHandler to the package loggers and leaves the host application's root
logger untouched; applications that want PlaceMatch's JSON or text output
call setup_logging() themselves.
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from core.config import settings

PACKAGE_LOGGERS = ("core", "place_matching")

# Marks handlers installed by setup_logging so reconfiguring replaces only them
_HANDLER_MARKER = "_placematch_handler"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping app, environment and logger name on each record"""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["app"] = settings.app_name
        log_record["environment"] = settings.environment
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        log_record.pop("msg", None)


def build_formatter(log_format: Optional[str] = None) -> logging.Formatter:
    """Formatter for the configured log format, json or text"""
    if (log_format or settings.log_format) == "json":
        return CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    return logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(
    logger_name: Optional[str] = None,
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    stream=None,
) -> logging.Logger:
    """
    Attach a PlaceMatch console handler to a logger

    Never called on import. Handlers added by the host application are kept;
    only a handler from a previous setup_logging call is replaced.

    Args:
        logger_name: Logger to configure, the root logger when None
        level: Log level name, defaults to settings.log_level
        log_format: "json" or "text", defaults to settings.log_format
        stream: Output stream, defaults to stdout

    Returns:
        The configured logger
    """
    target = logging.getLogger(logger_name)
    target.setLevel(getattr(logging, (level or settings.log_level).upper()))

    for handler in target.handlers[:]:
        if getattr(handler, _HANDLER_MARKER, False):
            target.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(build_formatter(log_format))
    setattr(handler, _HANDLER_MARKER, True)
    target.addHandler(handler)
    return target


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter to add context to all log messages"""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        """Merge adapter context under the call's own extra fields"""
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def with_context(self, **context) -> "LoggerAdapter":
        """Create a new logger with additional context"""
        return LoggerAdapter(self.logger, {**self.extra, **context})


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger instance with optional context

    Example:
        logger = get_logger(__name__, domain="place_matching")
        logger.debug("Scored candidate", extra={"candidate_id": "abc", "score": 91})
    """
    return LoggerAdapter(logging.getLogger(name), context)


for _name in PACKAGE_LOGGERS:
    _package_logger = logging.getLogger(_name)
    if not any(isinstance(h, logging.NullHandler) for h in _package_logger.handlers):
        _package_logger.addHandler(logging.NullHandler())
