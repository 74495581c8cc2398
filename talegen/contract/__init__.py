"""Contracts that raw backend candidates must satisfy.

Each generation flow has one contract: an ordered list of rules that run
against the raw JSON candidate, then the content model it becomes.

Example:
    >>> from talegen.contract import SKILL_TREE_CONTRACT, SemanticError
    >>> violation = SKILL_TREE_CONTRACT.check(candidate)
    >>> if violation:
    ...     print(violation.rule, violation.message)
"""

from .character import (
    CHARACTER_CONTRACT,
    IMMERSED_CHARACTER_CONTRACT,
    STANDARD_CLASSES,
    SUGGESTIONS_CONTRACT,
    character_contract,
)
from .crafting import CRAFTING_CONTRACT, consumed_from, crafting_contract
from .difficulty import DIFFICULTY_CONTRACT
from .lib import (
    CheckResult,
    Contract,
    ContractViolationError,
    Rule,
    SemanticError,
    StructuralError,
    Violation,
    ViolationKind,
    raise_violation,
    semantic,
    structural,
)
from .narration import NARRATION_CONTRACT, SUMMARY_CONTRACT
from .skill_tree import SKILL_TREE_CONTRACT, SKILL_TREE_RULES, validate_skill_tree

__all__ = [
    # Engine
    "Contract",
    "Rule",
    "CheckResult",
    "structural",
    "semantic",
    "Violation",
    "ViolationKind",
    "raise_violation",
    # Errors
    "ContractViolationError",
    "StructuralError",
    "SemanticError",
    # Skill tree
    "SKILL_TREE_CONTRACT",
    "SKILL_TREE_RULES",
    "validate_skill_tree",
    # Other flows
    "CHARACTER_CONTRACT",
    "IMMERSED_CHARACTER_CONTRACT",
    "STANDARD_CLASSES",
    "character_contract",
    "DIFFICULTY_CONTRACT",
    "CRAFTING_CONTRACT",
    "crafting_contract",
    "consumed_from",
    "NARRATION_CONTRACT",
    "SUMMARY_CONTRACT",
    "SUGGESTIONS_CONTRACT",
]
