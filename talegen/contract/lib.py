"""Rule-based contract validation for raw backend candidates.

A contract is an ordered list of named rules plus the model that an
accepted candidate is turned into. Rules run in order against the raw
candidate and stop at the first failure, so every rejection names exactly
one broken rule.

Validation is pure: no I/O, no mutation of the candidate, same answer for
the same input.
"""

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from talegen.core.errors import RetryableError

ModelT = TypeVar("ModelT", bound=BaseModel)


class ViolationKind(str, Enum):
    """Category of a contract violation."""

    STRUCTURAL = "structural"  # Missing fields, wrong types, wrong lengths
    SEMANTIC = "semantic"  # Domain rules on values that are present


@dataclass(frozen=True)
class Violation:
    """A single broken contract rule.

    Attributes:
        rule: Name of the rule that failed.
        kind: Structural or semantic.
        message: Human-readable description naming the offending item.
        path: Location in the candidate (e.g. "stages[2].skills[0]").
    """

    rule: str
    kind: ViolationKind
    message: str
    path: str = ""

    def __str__(self) -> str:
        return f"[{self.rule}] {self.message}"


class ContractViolationError(RetryableError):
    """Raised when a candidate breaks a contract rule.

    Attributes:
        violation: The rule that was broken.
    """

    def __init__(self, violation: Violation):
        super().__init__(str(violation))
        self.violation = violation


class StructuralError(ContractViolationError):
    """Candidate is missing required fields or has wrong collection lengths."""


class SemanticError(ContractViolationError):
    """Candidate is well-formed but breaks a domain rule."""


def raise_violation(violation: Violation) -> None:
    """Raise the error class matching the violation's kind."""
    if violation.kind is ViolationKind.STRUCTURAL:
        raise StructuralError(violation)
    raise SemanticError(violation)


# A check returns None when the candidate passes, else (message, path).
CheckResult = tuple[str, str] | None
CheckFn = Callable[[Any], CheckResult]


@dataclass(frozen=True)
class Rule:
    """A named predicate over a raw candidate.

    Attributes:
        name: Stable rule identifier used in violation messages.
        kind: Violation kind reported when the check fails.
        check: Function returning None on success, or (message, path).
        description: What the rule enforces.
    """

    name: str
    kind: ViolationKind
    check: CheckFn
    description: str = ""

    def evaluate(self, candidate: Any) -> Violation | None:
        """Run the check and wrap a failure in a Violation."""
        result = self.check(candidate)
        if result is None:
            return None
        message, path = result
        return Violation(rule=self.name, kind=self.kind, message=message, path=path)


def structural(name: str, description: str = "") -> Callable[[CheckFn], Rule]:
    """Decorator turning a check function into a structural Rule."""

    def wrap(fn: CheckFn) -> Rule:
        return Rule(name, ViolationKind.STRUCTURAL, fn, description or (fn.__doc__ or ""))

    return wrap


def semantic(name: str, description: str = "") -> Callable[[CheckFn], Rule]:
    """Decorator turning a check function into a semantic Rule."""

    def wrap(fn: CheckFn) -> Rule:
        return Rule(name, ViolationKind.SEMANTIC, fn, description or (fn.__doc__ or ""))

    return wrap


class Contract(Generic[ModelT]):
    """Ordered rules plus the model an accepted candidate becomes.

    Example:
        >>> contract = Contract("skill_tree", SkillTree, SKILL_TREE_RULES)
        >>> tree = contract.validate(candidate)  # raises on first violation
        >>> contract.check(candidate) is None
        True
    """

    def __init__(self, name: str, model: type[ModelT], rules: Sequence[Rule]):
        self.name = name
        self.model = model
        self.rules: tuple[Rule, ...] = tuple(rules)

    def check(self, candidate: Any) -> Violation | None:
        """Return the first violation, or None if every rule passes."""
        for rule in self.rules:
            violation = rule.evaluate(candidate)
            if violation is not None:
                return violation
        return None

    def is_valid(self, candidate: Any) -> bool:
        return self.check(candidate) is None

    def validate(self, candidate: Any) -> ModelT:
        """Validate a candidate and build the accepted model.

        Args:
            candidate: Raw structure returned by the backend.

        Returns:
            Immutable model instance.

        Raises:
            StructuralError: If a structural rule fails.
            SemanticError: If a semantic rule fails.
        """
        violation = self.check(candidate)
        if violation is not None:
            raise_violation(violation)

        try:
            return self.model.model_validate(candidate)
        except PydanticValidationError as e:
            # Rules are meant to catch everything the model would reject.
            first = e.errors()[0]
            path = ".".join(str(part) for part in first["loc"])
            raise StructuralError(
                Violation(
                    rule="model",
                    kind=ViolationKind.STRUCTURAL,
                    message=f"{self.name} model rejected candidate at {path}: {first['msg']}",
                    path=path,
                )
            ) from e

    def __repr__(self) -> str:
        return f"Contract({self.name!r}, rules={[r.name for r in self.rules]})"


# =============================================================================
# Value Helpers
# =============================================================================


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_sequence(value: Any) -> bool:
    """True for lists and tuples; strings and mappings do not count."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_number(value: Any) -> bool:
    """True for finite ints and floats; booleans and strings do not count."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_int(value: Any) -> bool:
    """True for ints and integral floats such as 2.0; booleans do not count."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def get_key(candidate: Any, key: str) -> Any:
    """Get a key from a mapping candidate, or None."""
    if not is_mapping(candidate):
        return None
    return candidate.get(key)


def require_str_fields(candidate: Any, keys: Sequence[str], what: str) -> CheckResult:
    """Check that each key holds a non-empty string."""
    if not is_mapping(candidate):
        return f"{what} must be a JSON object, got {type(candidate).__name__}", ""
    for key in keys:
        if not is_non_empty_str(candidate.get(key)):
            return f"{what} is missing a non-empty '{key}'", key
    return None


def check_string_list(
    candidate: Any, key: str, what: str, *, required: bool = False
) -> CheckResult:
    """Check that an optional key holds a list of non-empty strings."""
    value = get_key(candidate, key)
    if value is None:
        return (f"{what} is missing '{key}'", key) if required else None
    if not is_sequence(value):
        return f"{what} '{key}' must be a list, got {type(value).__name__}", key
    for i, item in enumerate(value):
        if not is_non_empty_str(item):
            return f"{what} '{key}[{i}]' must be a non-empty string", f"{key}[{i}]"
    return None


__all__ = [
    "ViolationKind",
    "Violation",
    "ContractViolationError",
    "StructuralError",
    "SemanticError",
    "raise_violation",
    "Rule",
    "CheckResult",
    "structural",
    "semantic",
    "Contract",
    "is_mapping",
    "is_sequence",
    "is_non_empty_str",
    "is_number",
    "is_int",
    "get_key",
    "require_str_fields",
    "check_string_list",
]
