"""Ollama backend for models served on the local machine.

No API key is involved. The model has to be pulled before first use.
"""

from typing import Any

from talegen.config import EnvVar, get_environment

from .base import (
    GenerationConfig,
    GenerationResult,
    ProviderError,
    SpecBackend,
    token_usage,
)
from .model_spec import DEFAULT_OLLAMA_MODEL


class OllamaBackend(SpecBackend):
    """Local inference through an Ollama server.

    The server address comes from ``base_url``, then OLLAMA_HOST.
    Local models are slow to warm up, so the default timeout is longer
    than for hosted providers.
    """

    def __init__(
        self,
        model: str = DEFAULT_OLLAMA_MODEL.spec.name,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        super().__init__(model, timeout=timeout)
        self._base_url = base_url or get_environment(EnvVar.OLLAMA_HOST)

    def _create_client(self) -> Any:
        import ollama

        return ollama.Client(host=self._base_url, timeout=self._timeout)

    def _build_request(
        self, prompt: str, system_prompt: str | None, config: GenerationConfig
    ) -> dict[str, Any]:
        messages = [{"role": "user", "content": prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})

        # Ollama takes sampling settings as model options
        options: dict[str, Any] = {
            "temperature": config.temperature,
            "num_predict": config.max_tokens,
            "top_p": config.top_p,
        }
        if config.seed is not None:
            options["seed"] = config.seed
        if config.stop_sequences:
            options["stop"] = config.stop_sequences

        request: dict[str, Any] = {
            "model": self._spec.name,
            "messages": messages,
            "options": options,
        }
        if config.json_mode and self.supports_json_mode:
            request["format"] = "json"
        return request

    def _send(self, client: Any, request: dict[str, Any]) -> Any:
        return client.chat(**request)

    def _parse(self, response: Any, config: GenerationConfig) -> GenerationResult:
        message = response["message"]
        return GenerationResult(
            content=message.get("content", ""),
            finish_reason=response.get("done_reason") or "stop",
            usage=token_usage(
                response.get("prompt_eval_count"), response.get("eval_count")
            ),
            model=self._spec.name,
            raw_response=response,
        )

    def _handle_error(self, error: Exception) -> None:
        lowered = str(error).lower()
        if "not found" in lowered or "pull" in lowered:
            raise ProviderError(
                f"{self._spec.name} is not available locally. "
                f"Run: ollama pull {self._spec.name}",
                provider=self.provider,
            ) from error
        if "connect" in lowered or "refused" in lowered:
            raise ProviderError(
                f"No Ollama server at {self._base_url}. Start it with: ollama serve",
                provider=self.provider,
            ) from error
        super()._handle_error(error)


__all__ = ["OllamaBackend"]
