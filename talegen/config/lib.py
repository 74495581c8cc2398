"""Environment configuration for talegen.

Every setting is a member of ``EnvVar`` carrying its variable name, type,
default and a short description. ``get_environment()`` is the only reader:
an explicit override wins, then the process environment, then the default.

Example:
    >>> from talegen.config import EnvVar, get_environment
    >>> get_environment(EnvVar.GENERATION_MAX_ATTEMPTS)
    3
    >>> get_environment(EnvVar.GENERATION_MAX_ATTEMPTS, override=5)
    5
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, NamedTuple, overload

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvConfig:
    """One environment variable and how to read it.

    ``var_type`` selects the converter applied to the raw string and
    ``category`` groups variables in listings.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"


class EnvVar(Enum):
    """Settings read from the environment, grouped by category.

    llm: provider keys and model choice. service: local hosts.
    generation: attempt budget, backoff, timeout and temperature.
    logging: log level.
    """

    # LLM
    GOOGLE_API_KEY = EnvConfig(
        name="GOOGLE_API_KEY",
        default=None,
        var_type=str,
        description="Key for Gemini, the default provider",
        category="llm",
    )
    OPENAI_API_KEY = EnvConfig(
        name="OPENAI_API_KEY",
        default=None,
        var_type=str,
        description="Key for OpenAI GPT models",
        category="llm",
    )
    ANTHROPIC_API_KEY = EnvConfig(
        name="ANTHROPIC_API_KEY",
        default=None,
        var_type=str,
        description="Key for Anthropic Claude models",
        category="llm",
    )
    DEEPSEEK_API_KEY = EnvConfig(
        name="DEEPSEEK_API_KEY",
        default=None,
        var_type=str,
        description="Key for the DeepSeek API",
        category="llm",
    )
    QWEN_API_KEY = EnvConfig(
        name="QWEN_API_KEY",
        default=None,
        var_type=str,
        description="Key for Alibaba DashScope (Qwen)",
        category="llm",
    )
    LLM_MODEL = EnvConfig(
        name="LLM_MODEL",
        default=None,
        var_type=str,
        description="Model name used when none is given explicitly",
        category="llm",
    )

    # Services
    OLLAMA_HOST = EnvConfig(
        name="OLLAMA_HOST",
        default="http://localhost:11434",
        var_type=str,
        description="Base URL of the local Ollama server",
        category="service",
    )

    # Generation
    GENERATION_MAX_ATTEMPTS = EnvConfig(
        name="GENERATION_MAX_ATTEMPTS",
        default=3,
        var_type=int,
        description="Attempts per generation request before giving up",
        category="generation",
    )
    GENERATION_BACKOFF_UNIT = EnvConfig(
        name="GENERATION_BACKOFF_UNIT",
        default=0.5,
        var_type=float,
        description="Seconds of backoff per attempt number (unit x attempt)",
        category="generation",
    )
    GENERATION_CALL_TIMEOUT = EnvConfig(
        name="GENERATION_CALL_TIMEOUT",
        default=60.0,
        var_type=float,
        description="Seconds to wait for a single backend call",
        category="generation",
    )
    GENERATION_TEMPERATURE = EnvConfig(
        name="GENERATION_TEMPERATURE",
        default=0.7,
        var_type=float,
        description="Sampling temperature passed to the backend",
        category="generation",
    )

    # Logging
    LOG_LEVEL = EnvConfig(
        name="LOG_LEVEL",
        default="INFO",
        var_type=str,
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
        category="logging",
    )


_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


def _to_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


_CONVERTERS: dict[type, Callable[[str], Any]] = {
    str: str,
    int: int,
    float: float,
    bool: _to_bool,
    Path: Path,
}


def _convert(config: EnvConfig, raw: str) -> Any:
    """Convert a raw environment string, falling back to the default.

    A value that does not parse is logged and ignored, so a typo in .env
    never stops the CLI from starting.
    """
    converter = _CONVERTERS.get(config.var_type, str)
    try:
        return converter(raw)
    except ValueError:
        logger.warning(
            f"Ignoring {config.name}={raw!r}: expected {config.var_type.__name__}, "
            f"using default {config.default!r}"
        )
        return config.default


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: float) -> float: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: bool) -> bool: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Read a configuration value.

    Environment strings are converted to the member's declared type. An
    empty string counts as unset.

    Example:
        >>> get_environment(EnvVar.GENERATION_BACKOFF_UNIT)
        0.5
        >>> get_environment(EnvVar.GENERATION_BACKOFF_UNIT, override=0.0)
        0.0
    """
    if override is not None:
        return override

    spec = env_var.value
    raw = os.environ.get(spec.name)
    if not raw:
        return spec.default
    return _convert(spec, raw)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    return env_var.value


class _Provider(NamedTuple):
    key: EnvVar
    default_model: str


# Hosted providers in preference order
_HOSTED_PROVIDERS: dict[str, _Provider] = {
    "gemini": _Provider(EnvVar.GOOGLE_API_KEY, "gemini-2.0-flash"),
    "openai": _Provider(EnvVar.OPENAI_API_KEY, "gpt-4.1-mini"),
    "anthropic": _Provider(EnvVar.ANTHROPIC_API_KEY, "claude-sonnet-4-5"),
    "deepseek": _Provider(EnvVar.DEEPSEEK_API_KEY, "deepseek-chat"),
    "qwen": _Provider(EnvVar.QWEN_API_KEY, "qwen-turbo"),
}


def _ollama_reachable(host: str) -> bool:
    try:
        return httpx.get(f"{host}/api/tags", timeout=2.0).status_code == 200
    except httpx.HTTPError:
        logger.debug(f"No Ollama server at {host}")
        return False


def get_available_llm_providers() -> list[str]:
    """Name the providers that could serve a request right now.

    Hosted providers count when their key is set. Ollama counts when its
    server answers on OLLAMA_HOST.
    """
    available = [
        name
        for name, provider in _HOSTED_PROVIDERS.items()
        if get_environment(provider.key)
    ]
    host = get_environment(EnvVar.OLLAMA_HOST)
    if host and _ollama_reachable(host):
        available.append("ollama")
    return available


def get_default_llm_model(override: str | None = None) -> str:
    """Pick the model to use when the caller does not name one.

    Order: override, LLM_MODEL, the default model of the first hosted
    provider with a key, then gemini-2.0-flash.
    """
    chosen = override or get_environment(EnvVar.LLM_MODEL)
    if chosen:
        return chosen
    for provider in _HOSTED_PROVIDERS.values():
        if get_environment(provider.key):
            return provider.default_model
    return _HOSTED_PROVIDERS["gemini"].default_model


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """All EnvVar members, or those in one category."""
    return [var for var in EnvVar if category in (None, var.value.category)]


__all__ = [
    "EnvConfig",
    "EnvVar",
    "get_environment",
    "get_environment_info",
    "get_available_llm_providers",
    "get_default_llm_model",
    "list_environment_variables",
]
