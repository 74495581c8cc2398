"""GenerationPipeline orchestrator for validated content generation.

Binds a GenerativeAdapter to a Contract: every candidate the backend returns
is validated before use, failed attempts are retried within the budget, and
only a fully accepted value ever leaves the pipeline.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from talegen.contract import Contract, ContractViolationError

from ..adapter import GenerationRequest, GenerativeAdapter
from ..backend import ProviderError
from .retry import (
    ExhaustedRetriesError,
    GenerationCancelledError,
    RetryConfig,
    RetryCoordinator,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class PipelineState(str, Enum):
    """States a single pipeline invocation moves through."""

    IDLE = "idle"
    REQUESTING = "requesting"
    VALIDATING = "validating"
    RETRYING = "retrying"
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass
class GenerationStats:
    """Statistics from one pipeline invocation.

    Attributes:
        attempts: Number of generation attempts made.
        provider_errors: Attempts that failed in the backend.
        validation_retries: Attempts whose candidate broke the contract.
        json_repairs: Replies that needed JSON repair to parse.
        total_tokens: Total tokens used across all attempts.
        final_model: Model identifier of the last candidate received.
        states: Every state visited, in order.
    """

    attempts: int = 0
    provider_errors: int = 0
    validation_retries: int = 0
    json_repairs: int = 0
    total_tokens: int = 0
    final_model: str = ""
    states: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])

    @property
    def state(self) -> PipelineState:
        return self.states[-1]


@dataclass
class GenerationOutput(Generic[ModelT]):
    """Complete output from a pipeline invocation.

    Attributes:
        value: The accepted, validated model.
        stats: Generation statistics.
        raw_response: Raw backend reply the value was built from.
    """

    value: ModelT
    stats: GenerationStats
    raw_response: str


class GenerationPipeline(Generic[ModelT]):
    """Orchestrates request, validation and retry for one content type.

    Pipeline:
        1. Invoke the adapter (a ProviderError fails the attempt)
        2. Validate the candidate against the contract (a violation fails
           the attempt)
        3. Retry with the violation as feedback, within the budget
        4. Return the accepted value, or raise ExhaustedRetriesError

    The pipeline holds no per-call state, so one instance can serve
    concurrent invocations.

    Example:
        >>> pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT)
        >>> output = pipeline.run(request)
        >>> output.value.class_name
        'Druid'
    """

    def __init__(
        self,
        adapter: GenerativeAdapter,
        contract: Contract[ModelT],
        retry_config: RetryConfig | None = None,
        *,
        feedback: bool = True,
        coordinator: RetryCoordinator | None = None,
    ):
        """Initialize GenerationPipeline.

        Args:
            adapter: Produces raw candidates.
            contract: What a candidate must satisfy.
            retry_config: Attempt budget and backoff. Resolved from the
                environment if None.
            feedback: Re-prompt with the last violation on retries.
            coordinator: Prebuilt coordinator (overrides retry_config).
        """
        self._adapter = adapter
        self._contract = contract
        self._feedback = feedback
        self._coordinator = coordinator or RetryCoordinator(
            retry_config or RetryConfig.from_environment()
        )

    @property
    def contract(self) -> Contract[ModelT]:
        return self._contract

    def run(
        self,
        request: GenerationRequest,
        *,
        cancel: threading.Event | None = None,
    ) -> GenerationOutput[ModelT]:
        """Generate and validate until a candidate is accepted.

        Args:
            request: What to generate.
            cancel: Optional signal that aborts the invocation.

        Returns:
            GenerationOutput with the accepted value.

        Raises:
            ExhaustedRetriesError: If every attempt failed.
            GenerationCancelledError: If cancel fired.

            Both carry the invocation's GenerationStats as ``stats``.
        """
        stats = GenerationStats()
        max_attempts = self._coordinator.config.max_attempts
        feedback: str | None = None
        raw_response = ""

        def attempt(number: int) -> ModelT:
            nonlocal feedback, raw_response
            stats.attempts = number
            stats.states.append(PipelineState.REQUESTING)
            logger.info(
                f"Generating {self._contract.name} for {request.subject!r} "
                f"(attempt {number}/{max_attempts})"
            )

            effective = request.with_feedback(feedback) if self._feedback else request
            try:
                candidate = self._adapter.invoke(effective, cancel=cancel)
            except ProviderError as e:
                stats.provider_errors += 1
                logger.error(f"Provider error on attempt {number}: {e}")
                raise

            stats.total_tokens += candidate.total_tokens
            stats.final_model = candidate.model
            if candidate.repaired:
                stats.json_repairs += 1

            stats.states.append(PipelineState.VALIDATING)
            try:
                value = self._contract.validate(candidate.data)
            except ContractViolationError as e:
                stats.validation_retries += 1
                feedback = str(e.violation)
                logger.warning(f"Contract violation on attempt {number}: {feedback}")
                raise

            raw_response = candidate.raw_content
            return value

        def on_failure(number: int, error: Exception) -> None:
            if number < max_attempts:
                stats.states.append(PipelineState.RETRYING)

        try:
            outcome = self._coordinator.run(
                attempt,
                subject=request.subject,
                cancel=cancel,
                on_failure=on_failure,
            )
        except ExhaustedRetriesError as e:
            stats.states.append(PipelineState.EXHAUSTED)
            e.stats = stats
            raise
        except GenerationCancelledError as e:
            stats.states.append(PipelineState.CANCELLED)
            e.stats = stats
            logger.warning(f"Generation for {request.subject!r} cancelled")
            raise

        stats.states.append(PipelineState.ACCEPTED)
        logger.info(
            f"Generated {self._contract.name} for {request.subject!r} "
            f"after {outcome.attempts} attempt(s)"
        )
        return GenerationOutput(value=outcome.value, stats=stats, raw_response=raw_response)


__all__ = [
    "PipelineState",
    "GenerationStats",
    "GenerationOutput",
    "GenerationPipeline",
]
