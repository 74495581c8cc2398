"""Anthropic Claude backend."""

from typing import Any

from .base import GenerationConfig, GenerationResult, SpecBackend, token_usage
from .model_spec import DEFAULT_ANTHROPIC_MODEL

_JSON_INSTRUCTION = (
    "Reply with exactly one JSON object and nothing else: no prose, "
    "no markdown fences."
)
# Assistant prefill that opens the reply inside the object
_PREFILL = "{"


class AnthropicBackend(SpecBackend):
    """Claude via the messages API.

    Claude has no JSON mode. When one is requested the system prompt gets a
    JSON-only instruction and the assistant turn is prefilled with ``{``,
    which is put back in front of the returned text.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_ANTHROPIC_MODEL.spec.name,
        timeout: float = 60.0,
        max_retries: int = 0,
    ):
        super().__init__(model, api_key=api_key, timeout=timeout)
        self._max_retries = max_retries

    def _create_client(self) -> Any:
        import anthropic

        return anthropic.Anthropic(
            api_key=self._api_key,
            timeout=self._timeout,
            max_retries=self._max_retries,
        )

    def _build_request(
        self, prompt: str, system_prompt: str | None, config: GenerationConfig
    ) -> dict[str, Any]:
        messages = [{"role": "user", "content": prompt}]
        system = system_prompt or ""
        if config.json_mode:
            system = f"{system}\n\n{_JSON_INSTRUCTION}".strip()
            messages.append({"role": "assistant", "content": _PREFILL})

        request: dict[str, Any] = {
            "model": self._spec.name,
            "messages": messages,
            "max_tokens": self._output_cap(config),
            "temperature": config.temperature,
        }
        if system:
            request["system"] = system
        if config.stop_sequences:
            request["stop_sequences"] = config.stop_sequences
        return request

    def _send(self, client: Any, request: dict[str, Any]) -> Any:
        return client.messages.create(**request)

    def _parse(self, response: Any, config: GenerationConfig) -> GenerationResult:
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        if config.json_mode:
            text = _PREFILL + text
        return GenerationResult(
            content=text,
            finish_reason=response.stop_reason or "unknown",
            usage=token_usage(response.usage.input_tokens, response.usage.output_tokens),
            model=response.model,
            raw_response=response,
        )


__all__ = ["AnthropicBackend"]
