"""Adapter between the generation pipeline and an LLM backend.

The pipeline only needs ``invoke(request, *, cancel=None) -> Candidate``.
``LLMAdapter`` provides it on top of any ``LLMBackend``: it renders the
prompt, runs the backend call on a worker thread of its own so the wait can
be bounded and cancelled, and parses the reply into a raw candidate. It
never checks the candidate's shape; that is the contract's job.
"""

import logging
import threading
import time
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from talegen.config import EnvVar, get_environment
from talegen.core.errors import GenerationCancelledError
from talegen.prompt import Flow, PromptBuilder

from ..backend import (
    GenerationConfig,
    GenerationResult,
    InvalidResponseError,
    LLMBackend,
    ProviderTimeoutError,
)
from .repair import parse_json_object

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    """What to generate.

    Attributes:
        flow: Generation flow (selects the prompt template).
        subject: Human-readable subject, used in errors and logs.
        params: Flow parameters for the prompt.
        schema: JSON schema of the expected answer. Biases the backend; never
            trusted for correctness.
        feedback: Why the previous attempt was rejected, on a retry.
    """

    flow: Flow
    subject: str
    params: Mapping[str, Any] = field(default_factory=dict)
    schema: Mapping[str, Any] | None = None
    feedback: str | None = None

    def with_feedback(self, feedback: str | None) -> "GenerationRequest":
        return replace(self, feedback=feedback)


@dataclass(frozen=True)
class Candidate:
    """A raw, unvalidated answer from the backend.

    Attributes:
        data: Parsed JSON value.
        raw_content: Reply text as received.
        model: Model that produced it.
        usage: Token usage reported by the backend.
        repaired: Whether the JSON needed repair to parse.
    """

    data: Any
    raw_content: str
    model: str
    usage: Mapping[str, int] = field(default_factory=dict)
    repaired: bool = False

    @property
    def total_tokens(self) -> int:
        return self.usage.get("total_tokens", 0)


class GenerativeAdapter(Protocol):
    """Anything that can turn a request into a raw candidate.

    Implementations raise ``ProviderError`` when no usable answer was
    produced and ``GenerationCancelledError`` when the cancel signal fires.
    They must be safe for concurrent use.
    """

    def invoke(
        self,
        request: GenerationRequest,
        *,
        cancel: threading.Event | None = None,
    ) -> Candidate: ...


@dataclass
class AdapterConfig:
    """Configuration for LLMAdapter.

    Attributes:
        call_timeout: Seconds to wait for one backend call.
        temperature: Sampling temperature.
        max_tokens: Maximum tokens per reply.
        repair_json: Whether to repair malformed JSON replies.
    """

    call_timeout: float = 60.0
    temperature: float = 0.7
    max_tokens: int = 4096
    repair_json: bool = True

    @classmethod
    def from_environment(cls, **overrides: Any) -> "AdapterConfig":
        """Build a config from GENERATION_* environment variables."""
        values: dict[str, Any] = {
            "call_timeout": get_environment(EnvVar.GENERATION_CALL_TIMEOUT),
            "temperature": get_environment(EnvVar.GENERATION_TEMPERATURE),
        }
        values.update(overrides)
        return cls(**values)


class LLMAdapter:
    """GenerativeAdapter backed by an LLMBackend.

    Example:
        >>> adapter = LLMAdapter(create_llm_backend("gemini-2.0-flash"))
        >>> request = GenerationRequest(
        ...     Flow.SKILL_TREE, "Druid", {"class_name": "Druid"}
        ... )
        >>> candidate = adapter.invoke(request)
        >>> candidate.data["className"]
        'Druid'
    """

    def __init__(
        self,
        backend: LLMBackend,
        config: AdapterConfig | None = None,
        prompt_builder: PromptBuilder | None = None,
    ):
        self._backend = backend
        self._config = config or AdapterConfig()
        self._prompts = prompt_builder or PromptBuilder()
        self._closed = False

    @property
    def backend(self) -> LLMBackend:
        return self._backend

    def invoke(
        self,
        request: GenerationRequest,
        *,
        cancel: threading.Event | None = None,
    ) -> Candidate:
        """Call the backend once and parse its reply.

        Args:
            request: What to generate.
            cancel: Optional signal that aborts the wait.

        Returns:
            Candidate with the parsed (but unvalidated) reply.

        Raises:
            ProviderError: If the backend fails, times out or replies with
                text that is not JSON.
            GenerationCancelledError: If cancel is set while waiting.
            RuntimeError: If the adapter has been closed.
        """
        if self._closed:
            raise RuntimeError(f"Adapter for {self._backend.name} is closed")

        prompt = self._prompts.build(
            request.flow,
            request.params,
            schema=request.schema,
            feedback=request.feedback,
        )
        gen_config = GenerationConfig(
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
            json_mode=True,
        )

        # One worker per call, so no invocation waits in a queue on its timeout
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="talegen-llm")
        try:
            future = executor.submit(
                self._backend.generate,
                prompt.user,
                system_prompt=prompt.system,
                config=gen_config,
            )
            result = self._await(future, request, cancel)
        finally:
            executor.shutdown(wait=False)

        try:
            data, repaired = parse_json_object(
                result.content, repair=self._config.repair_json
            )
        except ValueError as e:
            raise InvalidResponseError(
                f"{e}. Content: {result.content[:500]}",
                provider=self._backend.provider,
            ) from e
        if repaired:
            logger.debug(f"Repaired JSON reply for {request.subject!r}")

        return Candidate(
            data=data,
            raw_content=result.content,
            model=result.model,
            usage=dict(result.usage),
            repaired=repaired,
        )

    def _await(
        self,
        future: "Future[GenerationResult]",
        request: GenerationRequest,
        cancel: threading.Event | None,
    ) -> GenerationResult:
        """Wait for a backend call, honouring the timeout and cancel signal."""
        timeout = self._config.call_timeout
        deadline = time.monotonic() + timeout
        while not future.done():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                future.cancel()
                raise ProviderTimeoutError(
                    f"{self._backend.name} did not respond within {timeout:g}s "
                    f"for {request.subject!r}",
                    provider=self._backend.provider,
                )
            if cancel is None:
                wait([future], timeout=remaining)
            elif cancel.wait(min(remaining, 0.05)):
                future.cancel()
                raise GenerationCancelledError(
                    f"Generation for {request.subject!r} cancelled while waiting "
                    f"for {self._backend.name}"
                )
        return future.result()

    def close(self) -> None:
        """Refuse further invocations. Calls still running are not interrupted."""
        self._closed = True

    def __enter__(self) -> "LLMAdapter":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


__all__ = [
    "GenerationRequest",
    "Candidate",
    "GenerativeAdapter",
    "AdapterConfig",
    "LLMAdapter",
]
