"""Core utilities: logging and error base classes."""

from .errors import GenerationCancelledError, GenerationError, RetryableError
from .log import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "GenerationError",
    "RetryableError",
    "GenerationCancelledError",
]
