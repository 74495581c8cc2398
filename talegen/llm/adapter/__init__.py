"""Adapter from generation requests to raw backend candidates.

Provides LLMAdapter, which renders the flow prompt, calls an LLMBackend with
a per-call timeout and cancel support, and parses the reply as JSON.
"""

from .lib import (
    AdapterConfig,
    Candidate,
    GenerationRequest,
    GenerativeAdapter,
    LLMAdapter,
)
from .repair import JSON_REPAIR_PATTERNS, parse_json_object, repair_json

__all__ = [
    "GenerationRequest",
    "Candidate",
    "GenerativeAdapter",
    "AdapterConfig",
    "LLMAdapter",
    "JSON_REPAIR_PATTERNS",
    "repair_json",
    "parse_json_object",
]
