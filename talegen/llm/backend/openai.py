"""OpenAI chat completions backend.

DeepSeek and Qwen speak the same protocol, so they are served here too;
the model's provider picks the key variable and default endpoint.
"""

from typing import Any

from .base import GenerationConfig, GenerationResult, SpecBackend, token_usage
from .model_spec import DEFAULT_OPENAI_MODEL, LLMCapability


class OpenAIBackend(SpecBackend):
    """OpenAI-compatible chat backend.

    Example:
        >>> backend = OpenAIBackend(model="deepseek-chat")
        >>> backend.provider
        'deepseek'
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_OPENAI_MODEL.spec.name,
        base_url: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 0,
    ):
        """Initialize the backend.

        Args:
            api_key: Falls back to OPENAI_API_KEY, DEEPSEEK_API_KEY or
                QWEN_API_KEY depending on the model.
            model: gpt-4.1-mini, deepseek-chat, qwen-turbo, ...
            base_url: Overrides the provider's endpoint.
            timeout: Seconds per request.
            max_retries: Retries inside the SDK. The generation pipeline
                keeps its own budget, so this stays at zero unless asked.
        """
        super().__init__(model, api_key=api_key, timeout=timeout)
        self._base_url = base_url or self._spec.base_url
        self._max_retries = max_retries

    def _create_client(self) -> Any:
        from openai import OpenAI

        return OpenAI(
            api_key=self._api_key,
            base_url=self._base_url,
            timeout=self._timeout,
            max_retries=self._max_retries,
        )

    def _build_request(
        self, prompt: str, system_prompt: str | None, config: GenerationConfig
    ) -> dict[str, Any]:
        messages = [{"role": "user", "content": prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})

        request: dict[str, Any] = {
            "model": self._spec.name,
            "messages": messages,
            "temperature": config.temperature,
            "max_tokens": self._output_cap(config),
            "top_p": config.top_p,
        }
        if config.json_mode and self.supports_json_mode:
            request["response_format"] = {"type": "json_object"}
        if config.stop_sequences:
            request["stop"] = config.stop_sequences
        if config.seed is not None and self._spec.supports(LLMCapability.SEED):
            request["seed"] = config.seed
        return request

    def _send(self, client: Any, request: dict[str, Any]) -> Any:
        return client.chat.completions.create(**request)

    def _parse(self, response: Any, config: GenerationConfig) -> GenerationResult:
        choice = response.choices[0]
        usage = response.usage
        return GenerationResult(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "unknown",
            usage=token_usage(
                getattr(usage, "prompt_tokens", 0),
                getattr(usage, "completion_tokens", 0),
            ),
            model=response.model or self._spec.name,
            raw_response=response,
        )


__all__ = ["OpenAIBackend"]
