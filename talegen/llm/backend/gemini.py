"""Google Gemini backend via the google-genai SDK."""

from typing import Any

from .base import (
    AuthenticationError,
    GenerationConfig,
    GenerationResult,
    RateLimitError,
    SpecBackend,
    token_usage,
)
from .model_spec import DEFAULT_GEMINI_MODEL


class GeminiBackend(SpecBackend):
    """Gemini through ``client.models.generate_content``.

    This is the game's default backend. JSON mode maps to a response MIME
    type of application/json.

    Example:
        >>> backend = GeminiBackend()
        >>> backend.model_name
        'gemini-2.0-flash'
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_GEMINI_MODEL.spec.name,
        timeout: float = 60.0,
    ):
        super().__init__(model, api_key=api_key, timeout=timeout)

    def _create_client(self) -> Any:
        from google import genai

        # genai takes its HTTP timeout in milliseconds
        return genai.Client(
            api_key=self._api_key,
            http_options={"timeout": int(self._timeout * 1000)},
        )

    def _build_request(
        self, prompt: str, system_prompt: str | None, config: GenerationConfig
    ) -> dict[str, Any]:
        options: dict[str, Any] = {
            "temperature": config.temperature,
            "max_output_tokens": self._output_cap(config),
            "top_p": config.top_p,
        }
        if system_prompt:
            options["system_instruction"] = system_prompt
        if config.json_mode and self.supports_json_mode:
            options["response_mime_type"] = "application/json"
        if config.stop_sequences:
            options["stop_sequences"] = config.stop_sequences
        if config.seed is not None:
            options["seed"] = config.seed
        return {"model": self._spec.name, "contents": prompt, "config": options}

    def _send(self, client: Any, request: dict[str, Any]) -> Any:
        return client.models.generate_content(**request)

    def _parse(self, response: Any, config: GenerationConfig) -> GenerationResult:
        candidates = response.candidates or []
        reason = candidates[0].finish_reason if candidates else None
        # FinishReason.STOP -> "stop"
        finish_reason = str(reason).rsplit(".", 1)[-1].lower() if reason else "unknown"

        meta = response.usage_metadata
        return GenerationResult(
            content=response.text or "",
            finish_reason=finish_reason,
            usage=token_usage(
                getattr(meta, "prompt_token_count", 0),
                getattr(meta, "candidates_token_count", 0),
            ),
            model=self._spec.name,
            raw_response=response,
        )

    def _handle_error(self, error: Exception) -> None:
        """Prefer the genai status code over the message text."""
        code = getattr(error, "code", None)
        if code == 429:
            raise RateLimitError(str(error), provider=self.provider) from error
        if code in (401, 403):
            raise AuthenticationError(str(error), provider=self.provider) from error
        super()._handle_error(error)


__all__ = ["GeminiBackend"]
