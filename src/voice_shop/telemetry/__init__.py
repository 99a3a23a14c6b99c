"""Logging setup for the assistant."""

from .logging import configure_logging

__all__ = ["configure_logging"]
