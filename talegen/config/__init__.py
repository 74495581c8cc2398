"""Settings for talegen, read from the environment (and .env via the CLI).

Example:
    >>> from talegen.config import list_environment_variables
    >>> len(list_environment_variables("generation"))
    4
"""

from .lib import (
    EnvConfig,
    EnvVar,
    get_available_llm_providers,
    get_default_llm_model,
    get_environment,
    get_environment_info,
    list_environment_variables,
)

__all__ = [
    "EnvConfig",
    "EnvVar",
    "get_environment",
    "get_environment_info",
    "get_available_llm_providers",
    "get_default_llm_model",
    "list_environment_variables",
]
