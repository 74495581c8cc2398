"""Generated content models.

These pydantic models are the accepted, immutable form of everything the
generation pipeline produces. Raw backend output never reaches callers;
contracts in ``talegen.contract`` check the raw candidate first and only
then build one of these models.

Wire names are camelCase (``className``, ``manaCost``) to match the JSON the
backend is asked for. Attributes are snake_case.
"""

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Skill tree shape
STAGE_COUNT = 5
MIN_STAGE = 0
MAX_STAGE = STAGE_COUNT - 1
MIN_SKILLS_PER_STAGE = 1
MAX_SKILLS_PER_STAGE = 3

_FROZEN = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


def _check_amount(value: int | float | None) -> int | float | None:
    if value is None:
        return value
    if isinstance(value, bool) or not math.isfinite(value):
        raise ValueError("must be a finite number")
    if value < 0:
        raise ValueError("must be non-negative")
    return value


# =============================================================================
# Skill Tree
# =============================================================================


class SkillType(str, Enum):
    """How a character came to have a skill."""

    STARTER = "Starter"
    LEARNED = "Learned"


class Skill(BaseModel):
    """An unlockable ability.

    Attributes:
        name: Skill name, unique within its stage.
        description: What the skill does.
        skill_type: Optional Starter/Learned marker.
        mana_cost: Optional non-negative mana cost.
        stamina_cost: Optional non-negative stamina cost.
    """

    model_config = _FROZEN

    name: str = Field(..., min_length=1, description="The name of the skill")
    description: str = Field(
        ..., min_length=1, description="What the skill does or represents"
    )
    skill_type: SkillType | None = Field(
        default=None, alias="type", description="Starter or Learned"
    )
    mana_cost: int | float | None = Field(
        default=None, alias="manaCost", description="Mana cost to use the skill"
    )
    stamina_cost: int | float | None = Field(
        default=None, alias="staminaCost", description="Stamina cost to use the skill"
    )

    validate_costs = field_validator("mana_cost", "stamina_cost")(_check_amount)


class SkillTreeStage(BaseModel):
    """One progression tier of a skill tree.

    Attributes:
        stage: Stage number, 0-4. Stage 0 is the pre-specialization tier.
        stage_name: Thematic label (e.g. "Potential", "Squire", "Warlord").
        skills: Skills unlocked at this stage (none for stage 0, else 1-3).
    """

    model_config = _FROZEN

    stage: int = Field(..., ge=MIN_STAGE, le=MAX_STAGE)
    stage_name: str = Field(..., min_length=1, alias="stageName")
    skills: tuple[Skill, ...] = Field(default=(), max_length=MAX_SKILLS_PER_STAGE)


class SkillTree(BaseModel):
    """A five-stage skill tree for one character class.

    Stages are always held sorted by stage number.

    Example:
        >>> tree = SkillTree.model_validate(candidate)
        >>> [s.stage for s in tree.stages]
        [0, 1, 2, 3, 4]
    """

    model_config = _FROZEN

    class_name: str = Field(..., min_length=1, alias="className")
    stages: tuple[SkillTreeStage, ...] = Field(
        ..., min_length=STAGE_COUNT, max_length=STAGE_COUNT
    )

    @field_validator("stages")
    @classmethod
    def sort_stages(
        cls, stages: tuple[SkillTreeStage, ...]
    ) -> tuple[SkillTreeStage, ...]:
        return tuple(sorted(stages, key=lambda s: s.stage))

    def get_stage(self, number: int) -> SkillTreeStage:
        """Return the stage with the given number.

        Raises:
            KeyError: If no such stage exists.
        """
        for stage in self.stages:
            if stage.stage == number:
                return stage
        raise KeyError(number)

    def all_skills(self) -> list[Skill]:
        """All skills in stage order."""
        return [skill for stage in self.stages for skill in stage.skills]


# =============================================================================
# Character Profile
# =============================================================================


class CharacterProfile(BaseModel):
    """Expanded character description with inferred attributes."""

    model_config = _FROZEN

    detailed_description: str = Field(..., min_length=1, alias="detailedDescription")
    inferred_class: str = Field(..., min_length=1, alias="inferredClass")
    inferred_traits: tuple[str, ...] = Field(default=(), alias="inferredTraits")
    inferred_knowledge: tuple[str, ...] = Field(default=(), alias="inferredKnowledge")
    inferred_background: str = Field(..., min_length=1, alias="inferredBackground")


# =============================================================================
# Action Difficulty
# =============================================================================


class DifficultyLevel(str, Enum):
    """Assessed difficulty of a player action."""

    TRIVIAL = "Trivial"
    EASY = "Easy"
    NORMAL = "Normal"
    HARD = "Hard"
    VERY_HARD = "Very Hard"
    IMPOSSIBLE = "Impossible"


class DiceType(str, Enum):
    """Die suggested for resolving an action."""

    D6 = "d6"
    D10 = "d10"
    D20 = "d20"
    D100 = "d100"
    NONE = "None"


# Outcomes that need no roll
NO_ROLL_DIFFICULTIES = frozenset({DifficultyLevel.TRIVIAL, DifficultyLevel.IMPOSSIBLE})


class DifficultyAssessment(BaseModel):
    """Difficulty verdict for a player action."""

    model_config = _FROZEN

    difficulty: DifficultyLevel
    reasoning: str = Field(..., min_length=1)
    suggested_dice: DiceType = Field(..., alias="suggestedDice")

    @property
    def requires_roll(self) -> bool:
        return self.suggested_dice is not DiceType.NONE


# =============================================================================
# Crafting
# =============================================================================


class ItemQuality(str, Enum):
    """Quality tier of a crafted item."""

    POOR = "Poor"
    COMMON = "Common"
    UNCOMMON = "Uncommon"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"


class CraftedItem(BaseModel):
    """An item produced by a successful crafting attempt."""

    model_config = _FROZEN

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    quality: ItemQuality | None = None
    weight: int | float | None = None
    durability: int | float | None = None
    magical_effect: str | None = Field(default=None, alias="magicalEffect")

    validate_amounts = field_validator("weight", "durability")(_check_amount)


class CraftingOutcome(BaseModel):
    """Result of a crafting attempt."""

    model_config = _FROZEN

    success: bool
    message: str = Field(..., min_length=1)
    crafted_item: CraftedItem | None = Field(default=None, alias="craftedItem")
    consumed_items: tuple[str, ...] = Field(default=(), alias="consumedItems")


# =============================================================================
# Narration, Summary and Suggestions
# =============================================================================

MAX_SUGGESTIONS = 5


class NarrationResult(BaseModel):
    """The next story beat and the game state after the player's choice."""

    model_config = _FROZEN

    narration: str = Field(..., min_length=1)
    updated_game_state: str = Field(..., min_length=1, alias="updatedGameState")


class AdventureSummary(BaseModel):
    model_config = _FROZEN

    summary: str = Field(..., min_length=1)


class CharacterSuggestions(BaseModel):
    """Character names or concepts a player could take into a universe."""

    model_config = _FROZEN

    suggestions: tuple[str, ...] = Field(..., min_length=1, max_length=MAX_SUGGESTIONS)


# =============================================================================
# Schema Export
# =============================================================================


def export_json_schema(model: type[BaseModel]) -> dict[str, Any]:
    """Export the JSON Schema for a content model using wire names.

    The schema goes into prompts to bias the backend towards the right
    shape. It is never trusted for correctness.

    Args:
        model: One of the content model classes.

    Returns:
        JSON Schema dict.
    """
    return model.model_json_schema(by_alias=True)


__all__ = [
    "STAGE_COUNT",
    "MIN_STAGE",
    "MAX_STAGE",
    "MIN_SKILLS_PER_STAGE",
    "MAX_SKILLS_PER_STAGE",
    "SkillType",
    "Skill",
    "SkillTreeStage",
    "SkillTree",
    "CharacterProfile",
    "DifficultyLevel",
    "DiceType",
    "NO_ROLL_DIFFICULTIES",
    "DifficultyAssessment",
    "ItemQuality",
    "CraftedItem",
    "CraftingOutcome",
    "MAX_SUGGESTIONS",
    "NarrationResult",
    "AdventureSummary",
    "CharacterSuggestions",
    "export_json_schema",
]
