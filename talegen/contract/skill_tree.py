"""Skill tree contract.

Rules run in this order and stop at the first failure:

    1. class_name            candidate is an object with a non-empty className
    2. stage_count           stages is a list of exactly 5 entries
    3. stage_number_present  every stage is an object carrying a stage number
       stage_number_range    every stage number is an integer in 0-4
       stage_name            every stage has a non-empty stageName
    4. skills_list           every stage has a skills list
       stage_zero_skills     stage 0 has no skills
    5. skill_count           stages 1-4 have 1-3 skills
    6. skill_fields          every skill has a non-empty name and description
       skill_cost_type       manaCost/staminaCost are numbers when present
       skill_cost_range      costs are non-negative
       skill_type            type is Starter or Learned when present
       unique_stages         no stage number appears twice
       unique_skill_names    skill names are unique within a stage
    7. stage_zero_guard      a stage 0 exists, is named, and has no skills
"""

from collections.abc import Iterator, Mapping
from typing import Any

from talegen.schema import (
    MAX_SKILLS_PER_STAGE,
    MAX_STAGE,
    MIN_SKILLS_PER_STAGE,
    MIN_STAGE,
    STAGE_COUNT,
    SkillTree,
    SkillType,
)

from .lib import (
    CheckResult,
    Contract,
    get_key,
    is_int,
    is_mapping,
    is_non_empty_str,
    is_number,
    is_sequence,
    semantic,
    structural,
)

COST_FIELDS = ("manaCost", "staminaCost")


def _stages(candidate: Any) -> Iterator[tuple[int, Mapping[str, Any]]]:
    """Yield (index, stage) for every stage entry that is an object."""
    stages = get_key(candidate, "stages")
    if not is_sequence(stages):
        return
    for i, stage in enumerate(stages):
        if is_mapping(stage):
            yield i, stage


def _skills(candidate: Any) -> Iterator[tuple[int, Mapping[str, Any], int, Any]]:
    """Yield (stage_index, stage, skill_index, skill) for stages 1-4."""
    for i, stage in _stages(candidate):
        if stage.get("stage") == 0:
            continue
        skills = stage.get("skills")
        if not is_sequence(skills):
            continue
        for j, skill in enumerate(skills):
            yield i, stage, j, skill


def _label(stage: Mapping[str, Any]) -> str:
    return f"stage {stage.get('stage')!r}"


def _skill_label(skill: Any, index: int) -> str:
    name = get_key(skill, "name")
    return f"skill {name!r}" if is_non_empty_str(name) else f"skill #{index}"


# =============================================================================
# 1-2: Root shape
# =============================================================================


@structural("class_name")
def check_class_name(candidate: Any) -> CheckResult:
    """Candidate is present and has a non-empty className."""
    if candidate is None:
        return "skill tree candidate is missing", ""
    if not is_mapping(candidate):
        return (
            f"skill tree candidate must be a JSON object, got {type(candidate).__name__}",
            "",
        )
    if not is_non_empty_str(candidate.get("className")):
        return "skill tree is missing a non-empty 'className'", "className"
    return None


@structural("stage_count")
def check_stage_count(candidate: Any) -> CheckResult:
    """stages is a list with exactly five entries."""
    stages = get_key(candidate, "stages")
    if stages is None:
        return "skill tree is missing 'stages'", "stages"
    if not is_sequence(stages):
        return f"'stages' must be a list, got {type(stages).__name__}", "stages"
    if len(stages) != STAGE_COUNT:
        return (
            f"skill tree must have exactly {STAGE_COUNT} stages, got {len(stages)}",
            "stages",
        )
    return None


# =============================================================================
# 3: Per-stage fields
# =============================================================================


@structural("stage_number_present")
def check_stage_number_present(candidate: Any) -> CheckResult:
    """Every stage is an object with a stage number."""
    stages = get_key(candidate, "stages")
    if not is_sequence(stages):
        return None
    for i, stage in enumerate(stages):
        if not is_mapping(stage):
            return (
                f"stages[{i}] must be a JSON object, got {type(stage).__name__}",
                f"stages[{i}]",
            )
        if stage.get("stage") is None:
            return f"stages[{i}] is missing its 'stage' number", f"stages[{i}].stage"
    return None


@semantic("stage_number_range")
def check_stage_number_range(candidate: Any) -> CheckResult:
    """Every stage number is an integer between 0 and 4."""
    for i, stage in _stages(candidate):
        number = stage.get("stage")
        if number is None:
            continue
        if not is_int(number) or not MIN_STAGE <= number <= MAX_STAGE:
            return (
                f"invalid stage number {number!r} at stages[{i}] "
                f"(must be an integer {MIN_STAGE}-{MAX_STAGE})",
                f"stages[{i}].stage",
            )
    return None


@structural("stage_name")
def check_stage_name(candidate: Any) -> CheckResult:
    """Every stage has a non-empty stageName."""
    for i, stage in _stages(candidate):
        if not is_non_empty_str(stage.get("stageName")):
            return (
                f"{_label(stage)} is missing a non-empty 'stageName'",
                f"stages[{i}].stageName",
            )
    return None


# =============================================================================
# 4-5: Skill lists
# =============================================================================


@structural("skills_list")
def check_skills_list(candidate: Any) -> CheckResult:
    """Every stage carries a skills list."""
    for i, stage in _stages(candidate):
        skills = stage.get("skills")
        if skills is None:
            return f"{_label(stage)} is missing 'skills'", f"stages[{i}].skills"
        if not is_sequence(skills):
            return (
                f"{_label(stage)} 'skills' must be a list, got {type(skills).__name__}",
                f"stages[{i}].skills",
            )
    return None


@semantic("stage_zero_skills")
def check_stage_zero_skills(candidate: Any) -> CheckResult:
    """Stage 0 unlocks no skills."""
    for i, stage in _stages(candidate):
        skills = stage.get("skills")
        if stage.get("stage") == 0 and is_sequence(skills) and len(skills) != 0:
            return (
                f"stage 0 must have no skills, got {len(skills)}",
                f"stages[{i}].skills",
            )
    return None


@semantic("skill_count")
def check_skill_count(candidate: Any) -> CheckResult:
    """Stages 1-4 unlock between one and three skills."""
    for i, stage in _stages(candidate):
        skills = stage.get("skills")
        if stage.get("stage") == 0 or not is_sequence(skills):
            continue
        if not MIN_SKILLS_PER_STAGE <= len(skills) <= MAX_SKILLS_PER_STAGE:
            return (
                f"{_label(stage)} must have {MIN_SKILLS_PER_STAGE}-"
                f"{MAX_SKILLS_PER_STAGE} skills, got {len(skills)}",
                f"stages[{i}].skills",
            )
    return None


# =============================================================================
# 6: Skills
# =============================================================================


@structural("skill_fields")
def check_skill_fields(candidate: Any) -> CheckResult:
    """Every skill has a non-empty name and description."""
    for i, stage, j, skill in _skills(candidate):
        path = f"stages[{i}].skills[{j}]"
        if not is_mapping(skill):
            return (
                f"{_label(stage)} skill #{j} must be a JSON object, "
                f"got {type(skill).__name__}",
                path,
            )
        for key in ("name", "description"):
            if not is_non_empty_str(skill.get(key)):
                return (
                    f"{_label(stage)} {_skill_label(skill, j)} is missing "
                    f"a non-empty '{key}'",
                    f"{path}.{key}",
                )
    return None


@semantic("skill_cost_type")
def check_skill_cost_type(candidate: Any) -> CheckResult:
    """manaCost and staminaCost are numbers when present."""
    for i, stage, j, skill in _skills(candidate):
        for key in COST_FIELDS:
            value = get_key(skill, key)
            if value is not None and not is_number(value):
                return (
                    f"invalid {key} {value!r} for {_skill_label(skill, j)} "
                    f"in {_label(stage)} (must be a number)",
                    f"stages[{i}].skills[{j}].{key}",
                )
    return None


@semantic("skill_cost_range")
def check_skill_cost_range(candidate: Any) -> CheckResult:
    """Costs are non-negative."""
    for i, stage, j, skill in _skills(candidate):
        for key in COST_FIELDS:
            value = get_key(skill, key)
            if is_number(value) and value < 0:
                return (
                    f"{key} {value!r} for {_skill_label(skill, j)} "
                    f"in {_label(stage)} must not be negative",
                    f"stages[{i}].skills[{j}].{key}",
                )
    return None


@semantic("skill_type")
def check_skill_type(candidate: Any) -> CheckResult:
    """A skill's type, when given, is Starter or Learned."""
    allowed = {t.value for t in SkillType}
    for i, stage, j, skill in _skills(candidate):
        value = get_key(skill, "type")
        if value is not None and value not in allowed:
            return (
                f"invalid type {value!r} for {_skill_label(skill, j)} in "
                f"{_label(stage)} (must be one of {sorted(allowed)})",
                f"stages[{i}].skills[{j}].type",
            )
    return None


@semantic("unique_stages")
def check_unique_stages(candidate: Any) -> CheckResult:
    """No stage number appears twice."""
    seen: set[Any] = set()
    for i, stage in _stages(candidate):
        number = stage.get("stage")
        if number in seen:
            return f"duplicate stage number {number!r}", f"stages[{i}].stage"
        seen.add(number)
    return None


@semantic("unique_skill_names")
def check_unique_skill_names(candidate: Any) -> CheckResult:
    """Skill names are unique within their stage."""
    for i, stage in _stages(candidate):
        skills = stage.get("skills")
        if not is_sequence(skills):
            continue
        seen: set[str] = set()
        for j, skill in enumerate(skills):
            name = get_key(skill, "name")
            if not isinstance(name, str):
                continue
            key = name.strip()
            if key in seen:
                return (
                    f"duplicate skill name {name!r} in {_label(stage)}",
                    f"stages[{i}].skills[{j}].name",
                )
            seen.add(key)
    return None


# =============================================================================
# 7: Final guard
# =============================================================================


@semantic("stage_zero_guard")
def check_stage_zero_guard(candidate: Any) -> CheckResult:
    """A named, skill-less stage 0 exists."""
    stage_zero = next(
        (stage for _, stage in _stages(candidate) if stage.get("stage") == 0), None
    )
    if stage_zero is None:
        return "skill tree has no stage 0", "stages"
    if not is_non_empty_str(stage_zero.get("stageName")):
        return "stage 0 has no name", "stages"
    skills = stage_zero.get("skills")
    if skills is not None and (not is_sequence(skills) or len(skills) != 0):
        return f"stage 0 must have no skills, got {skills!r}", "stages"
    return None


SKILL_TREE_RULES = (
    check_class_name,
    check_stage_count,
    check_stage_number_present,
    check_stage_number_range,
    check_stage_name,
    check_skills_list,
    check_stage_zero_skills,
    check_skill_count,
    check_skill_fields,
    check_skill_cost_type,
    check_skill_cost_range,
    check_skill_type,
    check_unique_stages,
    check_unique_skill_names,
    check_stage_zero_guard,
)

SKILL_TREE_CONTRACT: Contract[SkillTree] = Contract(
    "skill_tree", SkillTree, SKILL_TREE_RULES
)


def validate_skill_tree(candidate: Any) -> SkillTree:
    """Validate a raw skill tree candidate.

    Raises:
        StructuralError: If the candidate is missing fields or has wrong lengths.
        SemanticError: If the candidate breaks a skill tree rule.
    """
    return SKILL_TREE_CONTRACT.validate(candidate)


__all__ = [
    "SKILL_TREE_RULES",
    "SKILL_TREE_CONTRACT",
    "validate_skill_tree",
]
