"""Crafting outcome contract.

The ingredient rule depends on what the player actually put in, so the
contract is built per request with ``crafting_contract(ingredients)``.
"""

from collections.abc import Sequence
from typing import Any

from talegen.schema import CraftingOutcome, ItemQuality

from .lib import (
    CheckResult,
    Contract,
    Rule,
    check_string_list,
    get_key,
    is_mapping,
    is_non_empty_str,
    is_number,
    require_str_fields,
    semantic,
    structural,
)

_QUALITIES = tuple(q.value for q in ItemQuality)


@structural("outcome_fields")
def check_outcome_fields(candidate: Any) -> CheckResult:
    """success is a boolean, message is non-empty, consumedItems is a list."""
    if not is_mapping(candidate):
        return f"crafting outcome must be a JSON object, got {type(candidate).__name__}", ""
    if not isinstance(candidate.get("success"), bool):
        return "crafting outcome is missing a boolean 'success'", "success"
    if not is_non_empty_str(candidate.get("message")):
        return "crafting outcome is missing a non-empty 'message'", "message"
    return check_string_list(
        candidate, "consumedItems", "crafting outcome", required=True
    )


@semantic("item_matches_success")
def check_item_matches_success(candidate: Any) -> CheckResult:
    """A successful craft yields an item; a failed one yields none."""
    success = get_key(candidate, "success")
    item = get_key(candidate, "craftedItem")
    if success and item is None:
        return "successful craft is missing 'craftedItem'", "craftedItem"
    if not success and item is not None:
        return "failed craft must not produce a 'craftedItem'", "craftedItem"
    return None


@structural("item_fields")
def check_item_fields(candidate: Any) -> CheckResult:
    item = get_key(candidate, "craftedItem")
    if item is None:
        return None
    result = require_str_fields(item, ("name", "description"), "crafted item")
    if result is not None:
        message, path = result
        return message, f"craftedItem.{path}" if path else "craftedItem"
    return None


@semantic("item_values")
def check_item_values(candidate: Any) -> CheckResult:
    """Quality is a known tier; weight and durability are non-negative numbers."""
    item = get_key(candidate, "craftedItem")
    if not is_mapping(item):
        return None
    quality = item.get("quality")
    if quality is not None and quality not in _QUALITIES:
        return (
            f"unknown item quality {quality!r} (must be one of {', '.join(_QUALITIES)})",
            "craftedItem.quality",
        )
    for key in ("weight", "durability"):
        value = item.get(key)
        if value is None:
            continue
        if not is_number(value) or value < 0:
            return (
                f"crafted item {key} {value!r} must be a non-negative number",
                f"craftedItem.{key}",
            )
    effect = item.get("magicalEffect")
    if effect is not None and not isinstance(effect, str):
        return "crafted item 'magicalEffect' must be a string", "craftedItem.magicalEffect"
    return None


def consumed_from(ingredients: Sequence[str]) -> Rule:
    """Build a rule requiring consumed items to come from the given ingredients."""
    allowed = {name.strip().casefold() for name in ingredients}

    @semantic("consumed_from_ingredients")
    def check(candidate: Any) -> CheckResult:
        consumed = get_key(candidate, "consumedItems") or []
        for i, name in enumerate(consumed):
            if name.strip().casefold() not in allowed:
                return (
                    f"consumed item {name!r} was not among the ingredients used",
                    f"consumedItems[{i}]",
                )
        return None

    return check


_BASE_RULES = (
    check_outcome_fields,
    check_item_matches_success,
    check_item_fields,
    check_item_values,
)

CRAFTING_CONTRACT: Contract[CraftingOutcome] = Contract(
    "crafting_outcome", CraftingOutcome, _BASE_RULES
)


def crafting_contract(ingredients: Sequence[str] | None = None) -> Contract[CraftingOutcome]:
    """Crafting contract, optionally restricted to the supplied ingredients."""
    if ingredients is None:
        return CRAFTING_CONTRACT
    return Contract(
        "crafting_outcome", CraftingOutcome, (*_BASE_RULES, consumed_from(ingredients))
    )


__all__ = ["CRAFTING_CONTRACT", "crafting_contract", "consumed_from"]
