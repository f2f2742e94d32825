"""Logging setup shared by the Streamlit host and the scripts."""

import logging

from classroom.config import LOG_LEVEL

_configured = False


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure root logging once and return the package logger."""
    global _configured
    if not _configured:
        logging.basicConfig(
            level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
            format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        )
        _configured = True
    return logging.getLogger("classroom")
