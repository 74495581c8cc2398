"""Model registry for LLM backends.

Lists the models talegen knows how to reach, with the provider that serves
each one and the few capabilities the backends care about. Credentials and
endpoints belong to the provider, so a model only names its limits.
"""

from dataclasses import dataclass, field
from enum import Enum


class LLMCapability(Enum):
    """Request features a backend may switch on for a model."""

    JSON_MODE = "json_mode"
    SYSTEM_PROMPT = "system_prompt"
    SEED = "seed"


class LLMProviderType(Enum):
    """Services that serve talegen models."""

    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    DEEPSEEK = "deepseek"
    QWEN = "qwen"
    OLLAMA = "ollama"


# provider -> (API key variable, base URL)
_PROVIDER_ENDPOINTS: dict[LLMProviderType, tuple[str, str | None]] = {
    LLMProviderType.GEMINI: ("GOOGLE_API_KEY", None),
    LLMProviderType.OPENAI: ("OPENAI_API_KEY", None),
    LLMProviderType.ANTHROPIC: ("ANTHROPIC_API_KEY", None),
    LLMProviderType.DEEPSEEK: ("DEEPSEEK_API_KEY", "https://api.deepseek.com/v1"),
    LLMProviderType.QWEN: (
        "QWEN_API_KEY",
        "https://dashscope-intl.aliyuncs.com/compatible-mode/v1",
    ),
    LLMProviderType.OLLAMA: ("", "http://localhost:11434"),
}


@dataclass(frozen=True)
class LLMSpec:
    """Limits and features of one model.

    ``api_key_env_var`` and ``base_url`` come from the provider.
    """

    name: str
    provider: LLMProviderType
    context_window: int
    max_output_tokens: int
    capabilities: frozenset[LLMCapability] = field(default_factory=frozenset)
    description: str = ""

    def supports(self, capability: LLMCapability) -> bool:
        return capability in self.capabilities

    @property
    def api_key_env_var(self) -> str:
        return _PROVIDER_ENDPOINTS[self.provider][0]

    @property
    def base_url(self) -> str | None:
        return _PROVIDER_ENDPOINTS[self.provider][1]

    @property
    def requires_api_key(self) -> bool:
        return bool(self.api_key_env_var)

    @property
    def is_local(self) -> bool:
        return self.provider is LLMProviderType.OLLAMA


_ALL = frozenset(LLMCapability)
_NO_SEED = _ALL - {LLMCapability.SEED}
_PROMPT_ONLY = frozenset({LLMCapability.SYSTEM_PROMPT})

_G = LLMProviderType.GEMINI
_O = LLMProviderType.OPENAI
_A = LLMProviderType.ANTHROPIC
_L = LLMProviderType.OLLAMA


class LLMModel(Enum):
    """Every model a backend can be created for.

    Rows read: name, provider, context window, output cap, capabilities,
    description.
    """

    GEMINI_2_0_FLASH = LLMSpec(
        "gemini-2.0-flash", _G, 1_048_576, 8192, _ALL, "Gemini fast default"
    )
    GEMINI_2_5_FLASH = LLMSpec(
        "gemini-2.5-flash", _G, 1_048_576, 65536, _ALL, "Gemini 2.5 with thinking"
    )
    GEMINI_2_5_PRO = LLMSpec(
        "gemini-2.5-pro", _G, 1_048_576, 65536, _ALL, "Gemini 2.5 largest model"
    )

    GPT_4_1 = LLMSpec("gpt-4.1", _O, 128000, 16384, _ALL, "OpenAI general model")
    GPT_4_1_MINI = LLMSpec("gpt-4.1-mini", _O, 128000, 16384, _ALL, "OpenAI small model")

    CLAUDE_SONNET_4_5 = LLMSpec(
        "claude-sonnet-4-5", _A, 200000, 64000, _PROMPT_ONLY, "Anthropic balanced model"
    )
    CLAUDE_HAIKU_4_5 = LLMSpec(
        "claude-haiku-4-5", _A, 200000, 64000, _PROMPT_ONLY, "Anthropic fastest model"
    )

    DEEPSEEK_CHAT = LLMSpec(
        "deepseek-chat", LLMProviderType.DEEPSEEK, 64000, 8192, _NO_SEED, "DeepSeek"
    )

    QWEN_TURBO = LLMSpec(
        "qwen-turbo", LLMProviderType.QWEN, 131072, 8192, _NO_SEED, "Qwen fast"
    )
    QWEN_PLUS = LLMSpec(
        "qwen-plus", LLMProviderType.QWEN, 131072, 8192, _NO_SEED, "Qwen mid-size"
    )

    OLLAMA_LLAMA3_2 = LLMSpec("llama3.2", _L, 128000, 4096, _ALL, "Llama 3.2 on Ollama")
    OLLAMA_QWEN3 = LLMSpec("qwen3", _L, 32768, 8192, _ALL, "Qwen3 on Ollama")
    OLLAMA_GEMMA3 = LLMSpec("gemma3", _L, 32768, 8192, _ALL, "Gemma 3 on Ollama")

    @property
    def spec(self) -> LLMSpec:
        return self.value

    @classmethod
    def by_name(cls, name: str) -> "LLMModel | None":
        """Find a model by its provider-side name."""
        return next((m for m in cls if m.value.name == name), None)

    @classmethod
    def list_by_provider(cls, provider: LLMProviderType) -> list["LLMModel"]:
        return [m for m in cls if m.value.provider is provider]


DEFAULT_GEMINI_MODEL = LLMModel.GEMINI_2_0_FLASH
DEFAULT_OPENAI_MODEL = LLMModel.GPT_4_1_MINI
DEFAULT_ANTHROPIC_MODEL = LLMModel.CLAUDE_SONNET_4_5
DEFAULT_DEEPSEEK_MODEL = LLMModel.DEEPSEEK_CHAT
DEFAULT_QWEN_MODEL = LLMModel.QWEN_TURBO
DEFAULT_OLLAMA_MODEL = LLMModel.OLLAMA_LLAMA3_2

DEFAULT_MODEL = DEFAULT_GEMINI_MODEL


def get_llm_spec(model: str | LLMModel | LLMSpec) -> LLMSpec:
    """Accept a name, registry member or spec and return the spec.

    Raises:
        ValueError: For a name that is not in the registry.
    """
    if isinstance(model, LLMSpec):
        return model
    if isinstance(model, LLMModel):
        return model.value
    found = LLMModel.by_name(model)
    if found is None:
        raise ValueError(f"Unknown model: {model}")
    return found.value


__all__ = [
    "LLMCapability",
    "LLMProviderType",
    "LLMSpec",
    "LLMModel",
    "DEFAULT_GEMINI_MODEL",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_ANTHROPIC_MODEL",
    "DEFAULT_DEEPSEEK_MODEL",
    "DEFAULT_QWEN_MODEL",
    "DEFAULT_OLLAMA_MODEL",
    "DEFAULT_MODEL",
    "get_llm_spec",
]
