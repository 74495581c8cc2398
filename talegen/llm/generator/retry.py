"""Bounded retry for generation attempts.

Provides a retry combinator shared by every generation flow: a fixed attempt
budget, linear backoff between attempts, cancellation, and a single terminal
error once the budget is spent.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from talegen.config import EnvVar, get_environment
from talegen.core.errors import (
    GenerationCancelledError,
    GenerationError,
    RetryableError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for RetryCoordinator.

    Attributes:
        max_attempts: Attempts before giving up (at least 1).
        backoff_unit: Seconds of backoff per failed attempt. The wait after
            attempt N is ``backoff_unit * N``; 0 disables backoff.
        call_timeout: Seconds to wait for one backend call.
    """

    max_attempts: int = 3
    backoff_unit: float = 0.5
    call_timeout: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.backoff_unit < 0:
            raise ValueError(f"backoff_unit must be non-negative, got {self.backoff_unit}")
        if self.call_timeout <= 0:
            raise ValueError(f"call_timeout must be positive, got {self.call_timeout}")

    @classmethod
    def from_environment(cls, **overrides: Any) -> "RetryConfig":
        """Build a config from GENERATION_* environment variables.

        Example:
            >>> RetryConfig.from_environment(backoff_unit=0)  # tests
        """
        values: dict[str, Any] = {
            "max_attempts": get_environment(EnvVar.GENERATION_MAX_ATTEMPTS),
            "backoff_unit": get_environment(EnvVar.GENERATION_BACKOFF_UNIT),
            "call_timeout": get_environment(EnvVar.GENERATION_CALL_TIMEOUT),
        }
        values.update(overrides)
        return cls(**values)

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt after ``attempt`` (1-based).

        Args:
            attempt: The attempt that just failed.

        Returns:
            Delay in seconds.
        """
        return self.backoff_unit * attempt


class ExhaustedRetriesError(GenerationError):
    """Every attempt failed.

    Attributes:
        subject: What was being generated.
        attempts: Attempts made.
        last_error: The failure of the final attempt.
    """

    def __init__(self, subject: str, attempts: int, last_error: BaseException | None):
        self.subject = subject
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"Failed to generate {subject!r} after {attempts} attempt(s){detail}")


@dataclass
class RetryOutcome(Generic[T]):
    """Result of a successful RetryCoordinator.run.

    Attributes:
        value: What the successful attempt returned.
        attempts: Attempts made, including the successful one.
        delays: Backoff waited before each retry, in order.
        errors: Failures of the earlier attempts, in order.
    """

    value: T
    attempts: int
    delays: list[float] = field(default_factory=list)
    errors: list[RetryableError] = field(default_factory=list)


class RetryCoordinator:
    """Runs a fallible operation within an attempt budget.

    Only ``RetryableError`` is retried. Anything else, including
    ``GenerationCancelledError``, propagates from the attempt that raised it.

    Example:
        >>> coordinator = RetryCoordinator(RetryConfig(backoff_unit=0))
        >>> outcome = coordinator.run(lambda attempt: call_backend(), subject="Mage")
        >>> outcome.attempts
        1
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: Callable[[float], None] | None = None,
    ):
        """Initialize the coordinator.

        Args:
            config: Retry configuration. Defaults to RetryConfig().
            sleep: Replacement for the backoff wait when no cancel signal is
                given. Tests pass a recorder here.
        """
        self._config = config or RetryConfig()
        self._sleep = sleep or time.sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    def run(
        self,
        operation: Callable[[int], T],
        *,
        subject: str,
        cancel: threading.Event | None = None,
        on_failure: Callable[[int, RetryableError], None] | None = None,
    ) -> RetryOutcome[T]:
        """Run ``operation`` until it succeeds or the budget is spent.

        Args:
            operation: Called with the 1-based attempt number.
            subject: What is being generated, for errors and logs.
            cancel: Optional signal checked before each attempt and during
                backoff.
            on_failure: Called with (attempt, error) after each retryable
                failure, before the backoff.

        Returns:
            RetryOutcome with the successful value.

        Raises:
            ExhaustedRetriesError: If every attempt failed.
            GenerationCancelledError: If cancel fired.
        """
        delays: list[float] = []
        errors: list[RetryableError] = []
        attempt = 0

        while attempt < self._config.max_attempts:
            self._check_cancel(cancel, subject)
            attempt += 1
            try:
                value = operation(attempt)
            except RetryableError as e:
                errors.append(e)
                if on_failure is not None:
                    on_failure(attempt, e)
                if attempt >= self._config.max_attempts:
                    break
                delay = self._config.delay_for(attempt)
                logger.info(
                    f"Retrying {subject!r} in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{self._config.max_attempts})"
                )
                self._wait(delay, cancel, subject)
                delays.append(delay)
                continue

            return RetryOutcome(
                value=value, attempts=attempt, delays=delays, errors=errors
            )

        last_error = errors[-1] if errors else None
        logger.error(
            f"Giving up on {subject!r} after {attempt} attempt(s): {last_error}"
        )
        raise ExhaustedRetriesError(subject, attempt, last_error) from last_error

    def _wait(self, delay: float, cancel: threading.Event | None, subject: str) -> None:
        if cancel is not None:
            if cancel.wait(delay):
                raise GenerationCancelledError(
                    f"Generation for {subject!r} cancelled during backoff"
                )
        elif delay > 0:
            self._sleep(delay)

    @staticmethod
    def _check_cancel(cancel: threading.Event | None, subject: str) -> None:
        if cancel is not None and cancel.is_set():
            raise GenerationCancelledError(f"Generation for {subject!r} cancelled")


__all__ = [
    "RetryConfig",
    "RetryOutcome",
    "RetryCoordinator",
    "ExhaustedRetriesError",
    "GenerationCancelledError",
]
