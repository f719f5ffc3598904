"""Logging configuration helpers for the portal."""
import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure root logging once and return the package logger."""
    global _configured
    if not _configured:
        level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
        logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
        # SQL echo is noisy at INFO
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        _configured = True
    return logging.getLogger("quizportal")
