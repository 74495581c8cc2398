"""Validated generation orchestrator.

Provides GenerationPipeline, which binds an adapter to a contract under a
bounded retry budget, and one generator per content flow.
"""

from .flows import (
    AdventureSummarizer,
    CharacterDescriber,
    CharacterSuggester,
    CraftingEvaluator,
    DifficultyAssessor,
    FlowGenerator,
    Narrator,
    SkillTreeGenerator,
)
from .lib import GenerationOutput, GenerationPipeline, GenerationStats, PipelineState
from .retry import (
    ExhaustedRetriesError,
    GenerationCancelledError,
    RetryConfig,
    RetryCoordinator,
    RetryOutcome,
)

__all__ = [
    "GenerationPipeline",
    "GenerationStats",
    "GenerationOutput",
    "PipelineState",
    "RetryConfig",
    "RetryCoordinator",
    "RetryOutcome",
    "ExhaustedRetriesError",
    "GenerationCancelledError",
    "FlowGenerator",
    "SkillTreeGenerator",
    "CharacterDescriber",
    "DifficultyAssessor",
    "CraftingEvaluator",
    "Narrator",
    "AdventureSummarizer",
    "CharacterSuggester",
]
