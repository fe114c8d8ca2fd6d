"""Structured logging configuration for the CRI Assessment Platform.

Log lines are key=value pairs. Assessment events carry the assessment
session and the diagnostic they concern, so one user's edits can be followed
through response saves, evidence uploads and report generation.
"""

import logging
import sys
from typing import Any

# Record attributes rendered right after the message, in this order
CONTEXT_FIELDS = ("session", "diagnostic_id")

# Session ids are bearer tokens; only a prefix goes to the log
SESSION_PREFIX_LENGTH = 8


class StructuredFormatter(logging.Formatter):
    """Key=value structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        parts = [f"{k}={v}" for k, v in log_data.items()]
        return " ".join(parts)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        try:
            from cri_assessment.config import get_settings

            settings = get_settings()
            if settings.CRI_ENV == "dev":
                logger.setLevel(logging.DEBUG)
            else:
                logger.setLevel(logging.INFO)
        except Exception:
            # Settings unavailable (e.g. missing Supabase credentials)
            logger.setLevel(logging.INFO)

    return logger


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    session_id: str | None = None,
    diagnostic_id: str | None = None,
    **fields: Any,
) -> None:
    """
    Log an assessment event.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        session_id: Assessment session the event belongs to, logged as a prefix
        diagnostic_id: Diagnostic the event concerns
        **fields: Additional key=value fields
    """
    extra: dict[str, Any] = {"extra_data": fields}
    if session_id:
        extra["session"] = session_id[:SESSION_PREFIX_LENGTH]
    if diagnostic_id is not None:
        extra["diagnostic_id"] = diagnostic_id

    logger.log(level, msg, extra=extra)
