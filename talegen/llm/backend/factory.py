"""Create a backend for any registered model."""

import importlib
from typing import Any

from .base import LLMBackend
from .model_spec import DEFAULT_MODEL, LLMModel, LLMProviderType, LLMSpec, get_llm_spec

# provider -> (module, class, accepts api_key, accepts base_url)
_ROUTES: dict[LLMProviderType, tuple[str, str, bool, bool]] = {
    LLMProviderType.GEMINI: (".gemini", "GeminiBackend", True, False),
    LLMProviderType.OPENAI: (".openai", "OpenAIBackend", True, True),
    LLMProviderType.DEEPSEEK: (".openai", "OpenAIBackend", True, True),
    LLMProviderType.QWEN: (".openai", "OpenAIBackend", True, True),
    LLMProviderType.ANTHROPIC: (".anthropic", "AnthropicBackend", True, False),
    LLMProviderType.OLLAMA: (".ollama", "OllamaBackend", False, True),
}


def create_llm_backend(
    model: str | LLMModel | LLMSpec = DEFAULT_MODEL,
    *,
    api_key: str | None = None,
    base_url: str | None = None,
    **kwargs: Any,
) -> LLMBackend:
    """Build the backend that serves ``model``.

    Backend modules are imported on demand, so only the SDK that is
    actually used needs to import cleanly.

    Args:
        model: Model name, registry member or spec. Defaults to
            gemini-2.0-flash.
        api_key: Key for hosted providers. Ignored by Ollama. Read from
            the provider's variable when omitted.
        base_url: Endpoint override for OpenAI-compatible providers and
            Ollama. Ignored elsewhere.
        **kwargs: Passed to the backend, e.g. ``timeout``.

    Raises:
        ValueError: If the model is not registered.
        AuthenticationError: If a hosted provider has no key.

    Example:
        >>> backend = create_llm_backend("deepseek-chat", timeout=30.0)
        >>> backend.name
        'deepseek:deepseek-chat'
    """
    spec = get_llm_spec(model)
    route = _ROUTES.get(spec.provider)
    if route is None:
        raise ValueError(f"No backend for provider {spec.provider.value}")

    module_name, class_name, takes_key, takes_url = route
    backend_cls = getattr(importlib.import_module(module_name, __package__), class_name)
    if takes_key:
        kwargs["api_key"] = api_key
    if takes_url:
        kwargs["base_url"] = base_url
    return backend_cls(model=spec.name, **kwargs)


__all__ = ["create_llm_backend"]
