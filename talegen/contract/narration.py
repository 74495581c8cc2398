"""Narration and adventure summary contracts."""

from typing import Any

from talegen.schema import AdventureSummary, NarrationResult

from .lib import CheckResult, Contract, require_str_fields, structural


@structural("narration_fields")
def check_narration_fields(candidate: Any) -> CheckResult:
    """Both the story beat and the updated game state are non-empty."""
    return require_str_fields(candidate, ("narration", "updatedGameState"), "narration")


@structural("summary_fields")
def check_summary_fields(candidate: Any) -> CheckResult:
    return require_str_fields(candidate, ("summary",), "adventure summary")


NARRATION_CONTRACT: Contract[NarrationResult] = Contract(
    "narration", NarrationResult, (check_narration_fields,)
)
SUMMARY_CONTRACT: Contract[AdventureSummary] = Contract(
    "adventure_summary", AdventureSummary, (check_summary_fields,)
)

__all__ = ["NARRATION_CONTRACT", "SUMMARY_CONTRACT"]
