"""Logging configuration shared by the CLI and embedding applications."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

ROOT_LOGGER = "voice_shop"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a rich console handler to the package logger once."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.propagate = False
    return logger
