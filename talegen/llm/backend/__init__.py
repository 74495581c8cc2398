"""LLM backend implementations.

Provides the abstract base class, provider errors, a model registry and
backends for Gemini, OpenAI-compatible APIs (OpenAI, DeepSeek, Qwen),
Anthropic and Ollama.
"""

from .base import (
    AuthenticationError,
    ContextLengthError,
    GenerationConfig,
    GenerationResult,
    InvalidResponseError,
    LLMBackend,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    SpecBackend,
    token_usage,
)
from .factory import create_llm_backend
from .model_spec import (
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_DEEPSEEK_MODEL,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_MODEL,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_QWEN_MODEL,
    LLMCapability,
    LLMModel,
    LLMProviderType,
    LLMSpec,
    get_llm_spec,
)

__all__ = [
    # Base classes and types
    "LLMBackend",
    "SpecBackend",
    "token_usage",
    "GenerationConfig",
    "GenerationResult",
    # Exceptions
    "ProviderError",
    "RateLimitError",
    "ContextLengthError",
    "InvalidResponseError",
    "AuthenticationError",
    "ProviderTimeoutError",
    # Model specification
    "LLMCapability",
    "LLMProviderType",
    "LLMSpec",
    "LLMModel",
    "get_llm_spec",
    # Defaults
    "DEFAULT_MODEL",
    "DEFAULT_GEMINI_MODEL",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_ANTHROPIC_MODEL",
    "DEFAULT_DEEPSEEK_MODEL",
    "DEFAULT_QWEN_MODEL",
    "DEFAULT_OLLAMA_MODEL",
    # Factory
    "create_llm_backend",
]
