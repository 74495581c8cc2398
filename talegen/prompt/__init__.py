"""Prompt building module for generation flows.

Provides PromptBuilder for rendering per-flow prompts with an embedded
output schema and retry feedback.
"""

from talegen.prompt.lib import (
    FLOW_TEMPLATES,
    GAME_TITLE,
    Flow,
    FlowTemplate,
    Prompt,
    PromptBuilder,
    PromptConfig,
    PromptContext,
)

__all__ = [
    "Flow",
    "Prompt",
    "PromptBuilder",
    "PromptConfig",
    "PromptContext",
    "FlowTemplate",
    "FLOW_TEMPLATES",
    "GAME_TITLE",
]
