"""Action difficulty contract."""

from typing import Any

from talegen.schema import (
    NO_ROLL_DIFFICULTIES,
    DiceType,
    DifficultyAssessment,
    DifficultyLevel,
)

from .lib import CheckResult, Contract, get_key, require_str_fields, semantic, structural

_LEVELS = tuple(level.value for level in DifficultyLevel)
_DICE = tuple(die.value for die in DiceType)
_NO_ROLL = {level.value for level in NO_ROLL_DIFFICULTIES}


@structural("assessment_fields")
def check_assessment_fields(candidate: Any) -> CheckResult:
    return require_str_fields(
        candidate, ("difficulty", "reasoning", "suggestedDice"), "difficulty assessment"
    )


@semantic("difficulty_level")
def check_difficulty_level(candidate: Any) -> CheckResult:
    difficulty = get_key(candidate, "difficulty")
    if difficulty not in _LEVELS:
        return (
            f"unknown difficulty {difficulty!r} (must be one of {', '.join(_LEVELS)})",
            "difficulty",
        )
    return None


@semantic("dice_type")
def check_dice_type(candidate: Any) -> CheckResult:
    dice = get_key(candidate, "suggestedDice")
    if dice not in _DICE:
        return (
            f"unknown dice {dice!r} (must be one of {', '.join(_DICE)})",
            "suggestedDice",
        )
    return None


@semantic("dice_matches_difficulty")
def check_dice_matches_difficulty(candidate: Any) -> CheckResult:
    """Trivial and Impossible actions need no roll; everything else does."""
    difficulty = get_key(candidate, "difficulty")
    dice = get_key(candidate, "suggestedDice")
    no_roll = dice == DiceType.NONE.value
    if difficulty in _NO_ROLL and not no_roll:
        return f"{difficulty} actions must suggest 'None', got {dice!r}", "suggestedDice"
    if difficulty not in _NO_ROLL and no_roll:
        return f"{difficulty} actions must suggest a die, got 'None'", "suggestedDice"
    return None


DIFFICULTY_CONTRACT: Contract[DifficultyAssessment] = Contract(
    "difficulty_assessment",
    DifficultyAssessment,
    (
        check_assessment_fields,
        check_difficulty_level,
        check_dice_type,
        check_dice_matches_difficulty,
    ),
)

__all__ = ["DIFFICULTY_CONTRACT"]
