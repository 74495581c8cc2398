"""Content models produced by the generation pipeline."""

from talegen.schema.lib import (
    MAX_SKILLS_PER_STAGE,
    MAX_STAGE,
    MAX_SUGGESTIONS,
    MIN_SKILLS_PER_STAGE,
    MIN_STAGE,
    NO_ROLL_DIFFICULTIES,
    STAGE_COUNT,
    AdventureSummary,
    CharacterProfile,
    CharacterSuggestions,
    CraftedItem,
    CraftingOutcome,
    DiceType,
    DifficultyAssessment,
    DifficultyLevel,
    ItemQuality,
    NarrationResult,
    Skill,
    SkillTree,
    SkillTreeStage,
    SkillType,
    export_json_schema,
)

__all__ = [
    # Skill tree
    "SkillTree",
    "SkillTreeStage",
    "Skill",
    "SkillType",
    "STAGE_COUNT",
    "MIN_STAGE",
    "MAX_STAGE",
    "MIN_SKILLS_PER_STAGE",
    "MAX_SKILLS_PER_STAGE",
    # Character
    "CharacterProfile",
    # Difficulty
    "DifficultyAssessment",
    "DifficultyLevel",
    "DiceType",
    "NO_ROLL_DIFFICULTIES",
    # Crafting
    "CraftingOutcome",
    "CraftedItem",
    "ItemQuality",
    # Narration, summary, suggestions
    "NarrationResult",
    "AdventureSummary",
    "CharacterSuggestions",
    "MAX_SUGGESTIONS",
    # Export
    "export_json_schema",
]
