"""Logging micro API for talegen."""

from .lib import get_logger, resolve_level, setup_logging

__all__ = ["get_logger", "setup_logging", "resolve_level"]
