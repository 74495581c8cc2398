"""Character profile contract."""

from typing import Any

from talegen.schema import MAX_SUGGESTIONS, CharacterProfile, CharacterSuggestions

from .lib import (
    CheckResult,
    Contract,
    check_string_list,
    get_key,
    is_mapping,
    is_sequence,
    require_str_fields,
    semantic,
    structural,
)

# Classes a profile may be assigned outside immersed mode
STANDARD_CLASSES = (
    "Warrior",
    "Mage",
    "Rogue",
    "Scholar",
    "Hunter",
    "Healer",
    "Bard",
    "Artisan",
    "Noble",
    "Commoner",
    "Adventurer",
)

_REQUIRED = (
    "detailedDescription",
    "inferredClass",
    "inferredBackground",
)


@structural("profile_fields")
def check_profile_fields(candidate: Any) -> CheckResult:
    """Description, class and background are present and non-empty."""
    return require_str_fields(candidate, _REQUIRED, "character profile")


@semantic("profile_lists")
def check_profile_lists(candidate: Any) -> CheckResult:
    """Traits and knowledge, when given, are lists of strings."""
    return check_string_list(
        candidate, "inferredTraits", "character profile"
    ) or check_string_list(candidate, "inferredKnowledge", "character profile")


@semantic("standard_class")
def check_standard_class(candidate: Any) -> CheckResult:
    """The inferred class is one of the standard classes."""
    inferred = get_key(candidate, "inferredClass")
    allowed = {c.casefold() for c in STANDARD_CLASSES}
    if isinstance(inferred, str) and inferred.strip().casefold() not in allowed:
        return (
            f"inferred class {inferred!r} is not one of {', '.join(STANDARD_CLASSES)}",
            "inferredClass",
        )
    return None


_BASE_RULES = (check_profile_fields, check_profile_lists)

# Immersed mode lets the class follow the universe's lore
IMMERSED_CHARACTER_CONTRACT: Contract[CharacterProfile] = Contract(
    "character_profile", CharacterProfile, _BASE_RULES
)
CHARACTER_CONTRACT: Contract[CharacterProfile] = Contract(
    "character_profile", CharacterProfile, (*_BASE_RULES, check_standard_class)
)


def character_contract(immersed: bool = False) -> Contract[CharacterProfile]:
    """Pick the profile contract for the adventure mode."""
    return IMMERSED_CHARACTER_CONTRACT if immersed else CHARACTER_CONTRACT


# =============================================================================
# Suggestions
# =============================================================================


@structural("suggestion_list")
def check_suggestion_list(candidate: Any) -> CheckResult:
    """suggestions holds 1 to 5 non-empty strings."""
    if not is_mapping(candidate):
        return f"suggestions must be a JSON object, got {type(candidate).__name__}", ""
    result = check_string_list(candidate, "suggestions", "suggestions", required=True)
    if result is not None:
        return result
    count = len(candidate["suggestions"])
    if not 1 <= count <= MAX_SUGGESTIONS:
        return (
            f"expected 1 to {MAX_SUGGESTIONS} suggestions, got {count}",
            "suggestions",
        )
    return None


@semantic("distinct_suggestions")
def check_distinct_suggestions(candidate: Any) -> CheckResult:
    suggestions = get_key(candidate, "suggestions")
    if not is_sequence(suggestions):
        return None
    seen: set[str] = set()
    for i, suggestion in enumerate(suggestions):
        key = suggestion.strip()
        if key in seen:
            return f"suggestion {suggestion!r} appears twice", f"suggestions[{i}]"
        seen.add(key)
    return None


SUGGESTIONS_CONTRACT: Contract[CharacterSuggestions] = Contract(
    "character_suggestions",
    CharacterSuggestions,
    (check_suggestion_list, check_distinct_suggestions),
)


__all__ = [
    "STANDARD_CLASSES",
    "CHARACTER_CONTRACT",
    "IMMERSED_CHARACTER_CONTRACT",
    "character_contract",
    "SUGGESTIONS_CONTRACT",
]
