"""Tests for configuration management."""

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from .lib import (
    EnvConfig,
    EnvVar,
    get_available_llm_providers,
    get_default_llm_model,
    get_environment,
    get_environment_info,
    list_environment_variables,
    _convert,
)

_KEY_VARS = [
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "DEEPSEEK_API_KEY",
    "QWEN_API_KEY",
    "LLM_MODEL",
]


@pytest.fixture
def clean_keys(monkeypatch):
    """Remove every provider key and model override from the environment."""
    for name in _KEY_VARS:
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Tests for get_environment (main interface)
# =============================================================================


class TestGetEnvironment:
    """Tests for the unified get_environment interface."""

    @pytest.mark.unit
    def test_returns_default_when_not_set(self, monkeypatch):
        """Returns default value when env var is not set."""
        monkeypatch.delenv("GENERATION_MAX_ATTEMPTS", raising=False)
        assert get_environment(EnvVar.GENERATION_MAX_ATTEMPTS) == 3

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Override parameter takes highest priority."""
        monkeypatch.setenv("GENERATION_MAX_ATTEMPTS", "7")
        assert get_environment(EnvVar.GENERATION_MAX_ATTEMPTS, override=1) == 1

    @pytest.mark.unit
    def test_env_var_overrides_default(self, monkeypatch):
        """Environment variable overrides default value."""
        monkeypatch.setenv("GENERATION_MAX_ATTEMPTS", "5")
        result = get_environment(EnvVar.GENERATION_MAX_ATTEMPTS)
        assert result == 5
        assert isinstance(result, int)

    @pytest.mark.unit
    def test_float_type_conversion(self, monkeypatch):
        """Float values are parsed from strings."""
        monkeypatch.setenv("GENERATION_BACKOFF_UNIT", "0.25")
        result = get_environment(EnvVar.GENERATION_BACKOFF_UNIT)
        assert result == 0.25
        assert isinstance(result, float)

    @pytest.mark.unit
    def test_invalid_number_falls_back_to_default(self, monkeypatch):
        """Unparseable numbers resolve to the default."""
        monkeypatch.setenv("GENERATION_CALL_TIMEOUT", "soon")
        assert get_environment(EnvVar.GENERATION_CALL_TIMEOUT) == 60.0

        monkeypatch.setenv("GENERATION_MAX_ATTEMPTS", "three")
        assert get_environment(EnvVar.GENERATION_MAX_ATTEMPTS) == 3

    @pytest.mark.unit
    def test_string_type(self, monkeypatch):
        """String type returns as-is."""
        monkeypatch.setenv("GOOGLE_API_KEY", "g-test-key")
        result = get_environment(EnvVar.GOOGLE_API_KEY)
        assert result == "g-test-key"

    @pytest.mark.unit
    def test_unset_key_is_none(self, clean_keys):
        assert get_environment(EnvVar.OPENAI_API_KEY) is None


class TestConvert:
    """Tests for raw string conversion by declared type."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("YES", True), ("on", True), ("0", False), ("off", False)],
    )
    def test_bool(self, raw, expected):
        config = EnvConfig(name="TALEGEN_FLAG", default=None, var_type=bool)
        assert _convert(config, raw) is expected

    @pytest.mark.unit
    def test_bad_bool_uses_default(self):
        config = EnvConfig(name="TALEGEN_FLAG", default=False, var_type=bool)
        assert _convert(config, "maybe") is False

    @pytest.mark.unit
    def test_path(self):
        config = EnvConfig(name="TALEGEN_DIR", default=None, var_type=Path)
        assert _convert(config, "saves/tales") == Path("saves/tales")

    @pytest.mark.unit
    def test_empty_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "")
        assert get_environment(EnvVar.LOG_LEVEL) == "INFO"


class TestEnvironmentInfo:
    """Tests for metadata introspection."""

    @pytest.mark.unit
    def test_info_returns_config(self):
        info = get_environment_info(EnvVar.GENERATION_BACKOFF_UNIT)
        assert isinstance(info, EnvConfig)
        assert info.name == "GENERATION_BACKOFF_UNIT"
        assert info.var_type is float
        assert info.category == "generation"

    @pytest.mark.unit
    def test_list_all(self):
        assert list_environment_variables() == list(EnvVar)

    @pytest.mark.unit
    def test_list_by_category(self):
        generation = list_environment_variables("generation")
        assert EnvVar.GENERATION_MAX_ATTEMPTS in generation
        assert EnvVar.OPENAI_API_KEY not in generation
        assert all(v.value.category == "generation" for v in generation)

    @pytest.mark.unit
    def test_names_match_members(self):
        """Every member's EnvConfig name matches the member name."""
        for var in EnvVar:
            assert var.value.name == var.name


class TestDefaultModel:
    """Tests for get_default_llm_model resolution."""

    @pytest.mark.unit
    def test_override_wins(self, clean_keys, monkeypatch):
        monkeypatch.setenv("LLM_MODEL", "gpt-4.1")
        assert get_default_llm_model("qwen3") == "qwen3"

    @pytest.mark.unit
    def test_configured_model(self, clean_keys, monkeypatch):
        monkeypatch.setenv("LLM_MODEL", "claude-haiku-4-5")
        assert get_default_llm_model() == "claude-haiku-4-5"

    @pytest.mark.unit
    def test_first_provider_with_key(self, clean_keys, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "a-key")
        assert get_default_llm_model() == "claude-sonnet-4-5"

    @pytest.mark.unit
    def test_fallback_is_gemini(self, clean_keys):
        assert get_default_llm_model() == "gemini-2.0-flash"


class TestAvailableProviders:
    """Tests for provider discovery."""

    @pytest.mark.unit
    def test_cloud_providers_by_key(self, clean_keys, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "g")
        monkeypatch.setenv("QWEN_API_KEY", "q")
        monkeypatch.setattr(
            httpx, "get", MagicMock(side_effect=httpx.ConnectError("refused"))
        )
        assert get_available_llm_providers() == ["gemini", "qwen"]

    @pytest.mark.unit
    def test_ollama_detected(self, clean_keys, monkeypatch):
        monkeypatch.setattr(httpx, "get", MagicMock(return_value=MagicMock(status_code=200)))
        assert get_available_llm_providers() == ["ollama"]
