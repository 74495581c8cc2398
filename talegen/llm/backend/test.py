"""Tests for LLM backend implementations."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from talegen.core.errors import RetryableError

from .anthropic import AnthropicBackend
from .base import (
    AuthenticationError,
    ContextLengthError,
    GenerationConfig,
    InvalidResponseError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    token_usage,
)
from .factory import create_llm_backend
from .gemini import GeminiBackend
from .model_spec import (
    DEFAULT_MODEL,
    LLMCapability,
    LLMModel,
    LLMProviderType,
    get_llm_spec,
)
from .ollama import OllamaBackend
from .openai import OpenAIBackend

_KEY_VARS = (
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "DEEPSEEK_API_KEY",
    "QWEN_API_KEY",
)


@pytest.fixture
def no_keys(monkeypatch):
    for var in _KEY_VARS:
        monkeypatch.delenv(var, raising=False)


def _openai_response(content: str) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                message=SimpleNamespace(content=content), finish_reason="stop"
            )
        ],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=30, total_tokens=42),
        model="gpt-4.1-mini-2025",
    )


class TestModelRegistry:
    """Tests for LLMModel and get_llm_spec."""

    @pytest.mark.unit
    def test_default_is_gemini_flash(self):
        assert DEFAULT_MODEL.spec.name == "gemini-2.0-flash"
        assert DEFAULT_MODEL.spec.provider == LLMProviderType.GEMINI
        assert DEFAULT_MODEL.spec.api_key_env_var == "GOOGLE_API_KEY"

    @pytest.mark.unit
    def test_lookup_by_name(self):
        assert LLMModel.by_name("deepseek-chat") is LLMModel.DEEPSEEK_CHAT
        assert LLMModel.by_name("nonexistent") is None
        assert get_llm_spec("qwen-turbo").base_url.startswith("https://dashscope")

    @pytest.mark.unit
    def test_unknown_model(self):
        with pytest.raises(ValueError, match="Unknown model"):
            get_llm_spec("gpt-0")

    @pytest.mark.unit
    def test_local_models_need_no_key(self):
        for model in LLMModel.list_by_provider(LLMProviderType.OLLAMA):
            assert model.spec.is_local
            assert not model.spec.requires_api_key

    @pytest.mark.unit
    def test_anthropic_has_no_json_mode(self):
        assert not LLMModel.CLAUDE_SONNET_4_5.spec.supports(LLMCapability.JSON_MODE)


class TestFactory:
    """Tests for create_llm_backend routing."""

    @pytest.mark.unit
    def test_routes_by_provider(self):
        assert isinstance(create_llm_backend(api_key="k"), GeminiBackend)
        assert isinstance(create_llm_backend("gpt-4.1", api_key="k"), OpenAIBackend)
        assert isinstance(
            create_llm_backend("claude-haiku-4-5", api_key="k"), AnthropicBackend
        )
        assert isinstance(create_llm_backend("gemma3"), OllamaBackend)

    @pytest.mark.unit
    def test_openai_compatible_providers(self):
        deepseek = create_llm_backend("deepseek-chat", api_key="k")
        assert isinstance(deepseek, OpenAIBackend)
        assert deepseek.provider == "deepseek"
        assert deepseek.name == "deepseek:deepseek-chat"
        assert deepseek._base_url == "https://api.deepseek.com/v1"

    @pytest.mark.unit
    def test_missing_key(self, no_keys):
        with pytest.raises(AuthenticationError, match="GOOGLE_API_KEY"):
            create_llm_backend("gemini-2.0-flash")
        with pytest.raises(AuthenticationError, match="QWEN_API_KEY"):
            create_llm_backend("qwen-plus")

    @pytest.mark.unit
    def test_key_from_environment(self, no_keys, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "ds-key")
        backend = create_llm_backend("deepseek-chat")
        assert backend._api_key == "ds-key"


class TestProviderErrors:
    """Tests for the provider error hierarchy and SDK error mapping."""

    @pytest.mark.unit
    def test_all_retryable(self):
        for error_cls in (
            RateLimitError,
            ContextLengthError,
            InvalidResponseError,
            AuthenticationError,
            ProviderTimeoutError,
        ):
            assert issubclass(error_cls, ProviderError)
        assert issubclass(ProviderError, RetryableError)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Error code: 429 - rate_limit_exceeded", RateLimitError),
            ("This model's maximum context length is 128000", ContextLengthError),
            ("Incorrect API key provided: invalid api key", AuthenticationError),
            ("Request timed out.", ProviderTimeoutError),
            ("Internal server error", ProviderError),
        ],
    )
    def test_openai_error_mapping(self, message, expected):
        backend = OpenAIBackend(api_key="k")
        backend._client = MagicMock()
        backend._client.chat.completions.create.side_effect = RuntimeError(message)

        with pytest.raises(expected) as exc_info:
            backend.generate("hi")

        assert type(exc_info.value) is expected
        assert exc_info.value.provider == "openai"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.unit
    def test_gemini_status_codes(self):
        backend = GeminiBackend(api_key="k")
        backend._client = MagicMock()
        error = RuntimeError("quota")
        error.code = 429
        backend._client.models.generate_content.side_effect = error

        with pytest.raises(RateLimitError):
            backend.generate("hi")

    @pytest.mark.unit
    def test_ollama_missing_model(self):
        backend = OllamaBackend(model="qwen3", base_url="http://localhost:11434")
        backend._client = MagicMock()
        backend._client.chat.side_effect = RuntimeError("model 'qwen3' not found")

        with pytest.raises(ProviderError, match="ollama pull qwen3"):
            backend.generate("hi")


class TestOpenAIBackend:
    """Tests for OpenAIBackend request building."""

    @pytest.mark.unit
    def test_generate(self):
        backend = OpenAIBackend(api_key="k")
        backend._client = MagicMock()
        backend._client.chat.completions.create.return_value = _openai_response('{"a": 1}')

        result = backend.generate(
            "Make a tree", system_prompt="You are a designer", config=GenerationConfig(seed=7)
        )

        kwargs = backend._client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "You are a designer"}
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["seed"] == 7
        assert result.content == '{"a": 1}'
        assert result.total_tokens == 42

    @pytest.mark.unit
    def test_generate_json(self):
        backend = OpenAIBackend(api_key="k")
        backend._client = MagicMock()
        backend._client.chat.completions.create.return_value = _openai_response(
            '{"className": "Bard"}'
        )
        assert backend.generate_json("x") == {"className": "Bard"}

    @pytest.mark.unit
    @pytest.mark.parametrize("content", ["not json", "[1, 2]"])
    def test_generate_json_rejects_non_objects(self, content):
        backend = OpenAIBackend(api_key="k")
        backend._client = MagicMock()
        backend._client.chat.completions.create.return_value = _openai_response(content)
        with pytest.raises(InvalidResponseError):
            backend.generate_json("x")


class TestAnthropicBackend:
    """Tests for AnthropicBackend JSON prefill."""

    @pytest.mark.unit
    def test_json_mode_prefills_brace(self):
        backend = AnthropicBackend(api_key="k")
        backend._client = MagicMock()
        backend._client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="text", text='"className": "Rogue"}')],
            stop_reason="end_turn",
            usage=SimpleNamespace(input_tokens=10, output_tokens=5),
            model="claude-sonnet-4-5",
        )

        result = backend.generate("Make a tree", system_prompt="Be terse")

        kwargs = backend._client.messages.create.call_args.kwargs
        assert kwargs["messages"][-1] == {"role": "assistant", "content": "{"}
        assert kwargs["system"].startswith("Be terse")
        assert result.content == '{"className": "Rogue"}'
        assert result.total_tokens == 15


class TestGeminiBackend:
    """Tests for GeminiBackend request building."""

    @pytest.mark.unit
    def test_generate(self):
        backend = GeminiBackend(api_key="k")
        backend._client = MagicMock()
        backend._client.models.generate_content.return_value = SimpleNamespace(
            text='{"className": "Mage"}',
            candidates=[SimpleNamespace(finish_reason="FinishReason.STOP")],
            usage_metadata=SimpleNamespace(
                prompt_token_count=20, candidates_token_count=8, total_token_count=28
            ),
        )

        result = backend.generate("Make a tree", system_prompt="You are a game master")

        kwargs = backend._client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert kwargs["config"]["response_mime_type"] == "application/json"
        assert kwargs["config"]["system_instruction"] == "You are a game master"
        assert result.finish_reason == "stop"
        assert result.usage["total_tokens"] == 28


class TestOllamaBackend:
    """Tests for OllamaBackend request building."""

    @pytest.mark.unit
    def test_generate(self):
        backend = OllamaBackend(base_url="http://ollama:11434")
        backend._client = MagicMock()
        backend._client.chat.return_value = {
            "message": {"content": '{"difficulty": "Easy"}'},
            "prompt_eval_count": 7,
            "eval_count": 3,
        }

        result = backend.generate("Assess", config=GenerationConfig(json_mode=True))

        kwargs = backend._client.chat.call_args.kwargs
        assert kwargs["format"] == "json"
        assert kwargs["model"] == "llama3.2"
        assert result.total_tokens == 10
        assert result.finish_reason == "stop"


class TestSpecBackend:
    """Tests for the shared SDK backend plumbing."""

    @pytest.mark.unit
    def test_client_created_once(self, monkeypatch):
        backend = OllamaBackend()
        created = MagicMock()
        factory = MagicMock(return_value=created)
        monkeypatch.setattr(backend, "_create_client", factory)

        assert backend.client is created
        assert backend.client is created
        factory.assert_called_once()

    @pytest.mark.unit
    def test_output_cap(self):
        backend = GeminiBackend(api_key="k")
        assert backend._output_cap(GenerationConfig(max_tokens=100_000)) == 8192
        assert backend._output_cap(GenerationConfig(max_tokens=512)) == 512

    @pytest.mark.unit
    def test_anthropic_key_error_names_variable(self, no_keys):
        with pytest.raises(AuthenticationError, match="ANTHROPIC_API_KEY") as exc_info:
            AnthropicBackend()
        assert exc_info.value.provider == "anthropic"

    @pytest.mark.unit
    def test_token_usage_fills_missing_counts(self):
        assert token_usage(None, 5) == {
            "prompt_tokens": 0,
            "completion_tokens": 5,
            "total_tokens": 5,
        }


def _stub_client(backend, call: str, reply) -> MagicMock:
    client = MagicMock()
    target = client
    for part in call.split("."):
        target = getattr(target, part)
    target.return_value = reply
    backend._client = client
    return target


class TestMalformedReplies:
    """Replies missing parts of the provider envelope surface as InvalidResponseError."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "reply",
        [
            SimpleNamespace(choices=[], usage=None, model="gpt-4.1-mini"),
            SimpleNamespace(
                choices=[SimpleNamespace(message=None, finish_reason="stop")],
                usage=None,
                model="gpt-4.1-mini",
            ),
        ],
        ids=["no-choices", "no-message"],
    )
    def test_openai(self, reply):
        backend = OpenAIBackend(api_key="k")
        _stub_client(backend, "chat.completions.create", reply)
        with pytest.raises(InvalidResponseError, match="Malformed") as exc_info:
            backend.generate("x")
        assert exc_info.value.provider == "openai"
        assert isinstance(exc_info.value, RetryableError)

    @pytest.mark.unit
    def test_anthropic_without_usage(self):
        backend = AnthropicBackend(api_key="k")
        _stub_client(
            backend,
            "messages.create",
            SimpleNamespace(
                content=[SimpleNamespace(type="text", text='"a": 1}')],
                stop_reason="end_turn",
                usage=None,
                model="claude-sonnet-4-5",
            ),
        )
        with pytest.raises(InvalidResponseError):
            backend.generate("x")

    @pytest.mark.unit
    def test_gemini_without_candidates(self):
        backend = GeminiBackend(api_key="k")
        _stub_client(backend, "models.generate_content", SimpleNamespace(text="{}"))
        with pytest.raises(InvalidResponseError):
            backend.generate("x")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "reply",
        [{"done": True}, {"message": "oops"}, None],
        ids=["no-message", "message-not-object", "none"],
    )
    def test_ollama(self, reply):
        backend = OllamaBackend()
        _stub_client(backend, "chat", reply)
        with pytest.raises(InvalidResponseError) as exc_info:
            backend.generate("x")
        assert exc_info.value.provider == "ollama"
