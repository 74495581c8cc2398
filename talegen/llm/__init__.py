"""LLM integration layer for Endless Tales content generation.

This module turns natural-language requests into validated game content
using any of several LLM providers.

Main components:
- SkillTreeGenerator: Five-stage skill trees for a character class
- CharacterDescriber, CharacterSuggester, DifficultyAssessor,
  CraftingEvaluator, Narrator, AdventureSummarizer: Other flows
- GenerationPipeline: Adapter + contract + bounded retry
- LLMAdapter: Prompt rendering, per-call timeout and JSON parsing
- LLMBackend / create_llm_backend: Provider backends

Supported providers:
- Google Gemini (default: gemini-2.0-flash)
- OpenAI (GPT-4.1)
- Anthropic (Claude 4.5)
- DeepSeek, Qwen (OpenAI-compatible endpoints)
- Ollama (local models)

Example:
    >>> from talegen.llm import SkillTreeGenerator
    >>> tree = SkillTreeGenerator().generate("Necromancer")
    >>> tree.get_stage(4).stage_name

    >>> # With specific model
    >>> from talegen.llm import create_llm_backend, LLMModel
    >>> backend = create_llm_backend(LLMModel.CLAUDE_SONNET_4_5)
    >>> generator = SkillTreeGenerator(backend=backend)
"""

from .adapter import (
    AdapterConfig,
    Candidate,
    GenerationRequest,
    GenerativeAdapter,
    LLMAdapter,
)
from .backend import (
    DEFAULT_MODEL,
    AuthenticationError,
    ContextLengthError,
    GenerationConfig,
    GenerationResult,
    InvalidResponseError,
    LLMBackend,
    LLMCapability,
    LLMModel,
    LLMProviderType,
    LLMSpec,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    create_llm_backend,
    get_llm_spec,
)
from .generator import (
    AdventureSummarizer,
    CharacterDescriber,
    CharacterSuggester,
    CraftingEvaluator,
    DifficultyAssessor,
    ExhaustedRetriesError,
    GenerationCancelledError,
    GenerationOutput,
    GenerationPipeline,
    GenerationStats,
    Narrator,
    PipelineState,
    RetryConfig,
    RetryCoordinator,
    SkillTreeGenerator,
)

__all__ = [
    # Main API
    "SkillTreeGenerator",
    "CharacterDescriber",
    "DifficultyAssessor",
    "CraftingEvaluator",
    "Narrator",
    "AdventureSummarizer",
    "CharacterSuggester",
    "create_llm_backend",
    # Pipeline
    "GenerationPipeline",
    "GenerationStats",
    "GenerationOutput",
    "PipelineState",
    "RetryConfig",
    "RetryCoordinator",
    # Adapter
    "GenerativeAdapter",
    "LLMAdapter",
    "AdapterConfig",
    "GenerationRequest",
    "Candidate",
    # Backend types
    "LLMBackend",
    "GenerationConfig",
    "GenerationResult",
    # Model specification
    "LLMCapability",
    "LLMProviderType",
    "LLMSpec",
    "LLMModel",
    "get_llm_spec",
    "DEFAULT_MODEL",
    # Exceptions
    "ProviderError",
    "RateLimitError",
    "ContextLengthError",
    "InvalidResponseError",
    "AuthenticationError",
    "ProviderTimeoutError",
    "ExhaustedRetriesError",
    "GenerationCancelledError",
]
