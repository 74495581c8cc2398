"""Error base classes for talegen."""

from .lib import GenerationCancelledError, GenerationError, RetryableError

__all__ = ["GenerationError", "RetryableError", "GenerationCancelledError"]
