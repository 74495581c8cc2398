"""Base exception types shared by every generation component."""

from typing import Any

__all__ = ["GenerationError", "RetryableError", "GenerationCancelledError"]


class GenerationError(Exception):
    """Base exception for all talegen generation failures.

    Attributes:
        stats: Statistics of the pipeline invocation that raised it, if any.
    """

    stats: Any = None


class RetryableError(GenerationError):
    """Failure of a single attempt that the retry coordinator may retry.

    Provider errors and contract violations derive from this class.
    Anything else raised inside an attempt propagates immediately.
    """


class GenerationCancelledError(GenerationError):
    """The caller's cancel signal fired while waiting on a backend call or backoff."""
