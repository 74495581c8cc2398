"""Backend interface, shared request plumbing and provider errors.

A backend turns a prompt into raw text and nothing more. Parsing the text
belongs to the adapter, and judging it belongs to the contracts.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any

from talegen.config import EnvVar, get_environment
from talegen.core.errors import RetryableError

from .model_spec import LLMCapability, LLMSpec, get_llm_spec

logger = logging.getLogger(__name__)


@dataclass
class GenerationConfig:
    """Sampling knobs for one backend call.

    ``json_mode`` asks the provider for a bare JSON object where it can
    enforce one. ``seed`` is only forwarded to models that accept it.
    """

    temperature: float = 0.7
    max_tokens: int = 4096
    json_mode: bool = True
    stop_sequences: list[str] = field(default_factory=list)
    top_p: float = 1.0
    seed: int | None = None


@dataclass
class GenerationResult:
    """What a backend call returned.

    ``usage`` always carries prompt_tokens, completion_tokens and
    total_tokens, zero where the provider did not report them.
    """

    content: str
    finish_reason: str
    usage: dict[str, int]
    model: str
    raw_response: Any = None

    @property
    def total_tokens(self) -> int:
        return self.usage.get("total_tokens", 0)


def token_usage(
    prompt_tokens: int | None, completion_tokens: int | None
) -> dict[str, int]:
    prompt_tokens = prompt_tokens or 0
    completion_tokens = completion_tokens or 0
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": prompt_tokens + completion_tokens,
    }


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(RetryableError):
    """A backend call failed or came back unusable."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class RateLimitError(ProviderError):
    """The provider throttled the call.

    Attributes:
        retry_after: Seconds the provider asked us to wait, if it said.
    """

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        provider: str | None = None,
    ):
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


class ContextLengthError(ProviderError):
    """Prompt did not fit the model's context window."""


class InvalidResponseError(ProviderError):
    """Reply could not be read as a JSON object."""


class AuthenticationError(ProviderError):
    """Missing, invalid or unauthorized API key."""


class ProviderTimeoutError(ProviderError):
    """Call did not finish in time."""


# Lowercased message fragments -> error class, checked in order
_ERROR_PATTERNS: tuple[tuple[tuple[str, ...], type[ProviderError]], ...] = (
    (("rate limit", "rate_limit", "resource_exhausted", "429"), RateLimitError),
    (("context length", "maximum context", "too long"), ContextLengthError),
    (
        ("authentication", "invalid api key", "api key not valid", "permission_denied"),
        AuthenticationError,
    ),
    (("timed out", "timeout", "deadline"), ProviderTimeoutError),
)


class LLMBackend(ABC):
    """Prompt in, text out.

    Backends keep no per-call state, so one instance may be shared by
    concurrent generations.
    """

    @abstractmethod
    def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        """Run one completion.

        Raises:
            ProviderError: Or a subclass naming the failure.
        """

    def generate_json(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> dict[str, Any]:
        """Run one completion in JSON mode and decode the reply.

        No repair is attempted here; the adapter does that.

        Raises:
            InvalidResponseError: If the reply is not a JSON object.
        """
        json_config = replace(config or GenerationConfig(), json_mode=True)
        result = self.generate(prompt, system_prompt=system_prompt, config=json_config)

        try:
            data = json.loads(result.content)
        except json.JSONDecodeError as e:
            raise InvalidResponseError(
                f"Reply is not JSON ({e}): {result.content[:500]}",
                provider=self.provider,
            ) from e
        if not isinstance(data, dict):
            raise InvalidResponseError(
                f"Expected a JSON object, got {type(data).__name__}",
                provider=self.provider,
            )
        return data

    @property
    @abstractmethod
    def model_name(self) -> str: ...

    @property
    @abstractmethod
    def provider(self) -> str: ...

    @property
    def name(self) -> str:
        """'provider:model', used in logs and stats."""
        return f"{self.provider}:{self.model_name}"

    @property
    @abstractmethod
    def supports_json_mode(self) -> bool: ...

    @property
    @abstractmethod
    def context_window(self) -> int: ...

    def _handle_error(self, error: Exception) -> None:
        """Re-raise an SDK exception as the closest ProviderError.

        SDKs disagree on exception types but their messages name the same
        conditions, so matching is done on the text.
        """
        message = str(error)
        lowered = message.lower()
        for fragments, error_cls in _ERROR_PATTERNS:
            if any(fragment in lowered for fragment in fragments):
                raise error_cls(message, provider=self.provider) from error
        raise ProviderError(message, provider=self.provider) from error


class SpecBackend(LLMBackend):
    """Backend for a registered model reached through a vendor SDK.

    Subclasses supply the SDK client and translate requests and replies;
    this class owns key lookup, lazy client creation and error mapping.
    The client is created on first use so that constructing a backend
    never needs the network.
    """

    def __init__(
        self,
        model: str | LLMSpec,
        *,
        api_key: str | None = None,
        timeout: float = 60.0,
    ):
        """Resolve the model and, where the provider needs one, its key.

        Raises:
            ValueError: If the model is unknown.
            AuthenticationError: If a key is required and none is set.
        """
        self._spec = get_llm_spec(model)
        self._timeout = timeout
        self._client: Any = None
        self._api_key = api_key
        key_var = self._spec.api_key_env_var
        if key_var and not self._api_key:
            self._api_key = get_environment(EnvVar[key_var])
            if not self._api_key:
                raise AuthenticationError(
                    f"{self.provider} API key required. Set {key_var} "
                    "or pass api_key.",
                    provider=self.provider,
                )

    @abstractmethod
    def _create_client(self) -> Any:
        """Build the SDK client."""

    @abstractmethod
    def _build_request(
        self, prompt: str, system_prompt: str | None, config: GenerationConfig
    ) -> dict[str, Any]:
        """Keyword arguments for the SDK call."""

    @abstractmethod
    def _send(self, client: Any, request: dict[str, Any]) -> Any: ...

    @abstractmethod
    def _parse(self, response: Any, config: GenerationConfig) -> GenerationResult: ...

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    @property
    def model_name(self) -> str:
        return self._spec.name

    @property
    def provider(self) -> str:
        return self._spec.provider.value

    @property
    def supports_json_mode(self) -> bool:
        return self._spec.supports(LLMCapability.JSON_MODE)

    @property
    def context_window(self) -> int:
        return self._spec.context_window

    def _output_cap(self, config: GenerationConfig) -> int:
        return min(config.max_tokens, self._spec.max_output_tokens)

    def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        config = config or GenerationConfig()
        request = self._build_request(prompt, system_prompt, config)
        client = self.client
        logger.debug("Calling %s", self.name)
        try:
            response = self._send(client, request)
        except Exception as e:
            self._handle_error(e)
            raise
        try:
            return self._parse(response, config)
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise InvalidResponseError(
                f"Malformed {self.name} reply ({type(e).__name__}: {e})",
                provider=self.provider,
            ) from e


__all__ = [
    "LLMBackend",
    "SpecBackend",
    "GenerationConfig",
    "GenerationResult",
    "token_usage",
    "ProviderError",
    "RateLimitError",
    "ContextLengthError",
    "InvalidResponseError",
    "AuthenticationError",
    "ProviderTimeoutError",
]
