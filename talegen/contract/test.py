"""Unit tests for the contract engine and the skill tree contract."""

import pytest

from talegen.core.errors import RetryableError
from talegen.schema import SkillTree

from .lib import (
    Contract,
    ContractViolationError,
    SemanticError,
    StructuralError,
    Violation,
    ViolationKind,
    semantic,
    structural,
)
from .skill_tree import (
    SKILL_TREE_CONTRACT,
    check_stage_zero_guard,
    validate_skill_tree,
)


def _stage(candidate, number):
    return next(s for s in candidate["stages"] if s["stage"] == number)


# =============================================================================
# Engine
# =============================================================================


class TestRule:
    """Tests for rule decorators."""

    @pytest.mark.unit
    def test_structural_decorator(self):
        @structural("has_id")
        def check(candidate):
            """Candidate has an id."""
            return None if "id" in candidate else ("missing id", "id")

        assert check.name == "has_id"
        assert check.kind is ViolationKind.STRUCTURAL
        assert check.description == "Candidate has an id."
        assert check.evaluate({"id": 1}) is None

        violation = check.evaluate({})
        assert violation == Violation("has_id", ViolationKind.STRUCTURAL, "missing id", "id")

    @pytest.mark.unit
    def test_violation_str_names_rule(self):
        violation = Violation("stage_count", ViolationKind.STRUCTURAL, "too few")
        assert str(violation) == "[stage_count] too few"


class TestContract:
    """Tests for the Contract engine."""

    @pytest.mark.unit
    def test_first_violation_wins(self):
        calls = []

        @structural("first")
        def first(candidate):
            calls.append("first")
            return "first failed", ""

        @semantic("second")
        def second(candidate):
            calls.append("second")
            return "second failed", ""

        contract = Contract("demo", SkillTree, [first, second])
        violation = contract.check({})

        assert violation.rule == "first"
        assert calls == ["first"]

    @pytest.mark.unit
    def test_error_class_matches_kind(self):
        @semantic("always")
        def always(candidate):
            return "nope", "x"

        contract = Contract("demo", SkillTree, [always])
        with pytest.raises(SemanticError) as exc_info:
            contract.validate({})

        assert exc_info.value.violation.path == "x"
        assert isinstance(exc_info.value, ContractViolationError)
        assert isinstance(exc_info.value, RetryableError)

    @pytest.mark.unit
    def test_model_rejection_is_structural(self):
        contract = Contract("bare", SkillTree, [])
        with pytest.raises(StructuralError) as exc_info:
            contract.validate({"className": "Mage"})
        assert exc_info.value.violation.rule == "model"

    @pytest.mark.unit
    def test_is_valid(self, valid_skill_tree):
        assert SKILL_TREE_CONTRACT.is_valid(valid_skill_tree)
        assert not SKILL_TREE_CONTRACT.is_valid({})


# =============================================================================
# Skill Tree Contract
# =============================================================================


class TestSkillTreeAccepted:
    """Candidates the skill tree contract accepts."""

    @pytest.mark.unit
    def test_valid_tree_accepted_unchanged(self, valid_skill_tree):
        """Stage 2 with three distinct skills and a staminaCost of 10."""
        stage_two = _stage(valid_skill_tree, 2)
        assert len(stage_two["skills"]) == 3
        assert any(s.get("staminaCost") == 10 for s in stage_two["skills"])

        tree = validate_skill_tree(valid_skill_tree)

        assert tree.model_dump(mode="json", by_alias=True, exclude_none=True) == valid_skill_tree

    @pytest.mark.unit
    def test_revalidation_is_idempotent(self, valid_skill_tree):
        tree = validate_skill_tree(valid_skill_tree)
        again = validate_skill_tree(tree.model_dump(mode="json", by_alias=True))
        assert again == tree

    @pytest.mark.unit
    def test_does_not_mutate_candidate(self, valid_skill_tree):
        import copy

        before = copy.deepcopy(valid_skill_tree)
        validate_skill_tree(valid_skill_tree)
        assert valid_skill_tree == before

    @pytest.mark.unit
    def test_stages_sorted(self, valid_skill_tree):
        valid_skill_tree["stages"].reverse()
        tree = validate_skill_tree(valid_skill_tree)
        assert [s.stage for s in tree.stages] == [0, 1, 2, 3, 4]
        assert tree.get_stage(0).skills == ()

    @pytest.mark.unit
    def test_same_skill_name_in_different_stages(self, valid_skill_tree):
        _stage(valid_skill_tree, 4)["skills"][0]["name"] = "Shield Bash"
        assert validate_skill_tree(valid_skill_tree).class_name == "Warrior"

    @pytest.mark.unit
    def test_null_costs_count_as_absent(self, valid_skill_tree):
        _stage(valid_skill_tree, 1)["skills"][0]["manaCost"] = None
        tree = validate_skill_tree(valid_skill_tree)
        assert tree.get_stage(1).skills[0].mana_cost is None


class TestSkillTreeStructural:
    """Candidates rejected for shape problems."""

    @pytest.mark.unit
    def test_four_stages(self, valid_skill_tree):
        valid_skill_tree["stages"].pop()
        with pytest.raises(StructuralError) as exc_info:
            validate_skill_tree(valid_skill_tree)
        assert exc_info.value.violation.rule == "stage_count"
        assert "exactly 5 stages, got 4" in str(exc_info.value)

    @pytest.mark.unit
    @pytest.mark.parametrize("candidate", [None, [], "tree", {"stages": []}])
    def test_missing_candidate_or_class(self, candidate):
        with pytest.raises(StructuralError) as exc_info:
            validate_skill_tree(candidate)
        assert exc_info.value.violation.rule == "class_name"

    @pytest.mark.unit
    def test_blank_class_name(self, valid_skill_tree):
        valid_skill_tree["className"] = "   "
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "class_name"

    @pytest.mark.unit
    def test_stages_not_a_list(self, valid_skill_tree):
        valid_skill_tree["stages"] = {"0": {}}
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "stage_count"
        assert "must be a list" in violation.message

    @pytest.mark.unit
    def test_missing_stage_number(self, valid_skill_tree):
        del _stage(valid_skill_tree, 3)["stage"]
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "stage_number_present"
        assert violation.path == "stages[3].stage"

    @pytest.mark.unit
    def test_missing_stage_name(self, valid_skill_tree):
        _stage(valid_skill_tree, 2)["stageName"] = ""
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "stage_name"
        assert violation.kind is ViolationKind.STRUCTURAL
        assert "stage 2" in violation.message

    @pytest.mark.unit
    def test_missing_skills(self, valid_skill_tree):
        del _stage(valid_skill_tree, 0)["skills"]
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "skills_list"
        assert "stage 0" in violation.message

    @pytest.mark.unit
    def test_skill_missing_description(self, valid_skill_tree):
        _stage(valid_skill_tree, 3)["skills"][1]["description"] = ""
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "skill_fields"
        assert "'Challenge'" in violation.message
        assert "stage 3" in violation.message


class TestSkillTreeSemantic:
    """Candidates rejected for breaking skill tree rules."""

    @pytest.mark.unit
    def test_stage_zero_with_skills(self, valid_skill_tree):
        stage_one_skills = _stage(valid_skill_tree, 1)["skills"]
        _stage(valid_skill_tree, 0)["skills"] = [
            dict(stage_one_skills[0]),
            {"name": "Taunt", "description": "Draw attention."},
        ]
        with pytest.raises(SemanticError) as exc_info:
            validate_skill_tree(valid_skill_tree)
        assert exc_info.value.violation.rule == "stage_zero_skills"
        assert "stage 0 must have no skills, got 2" in str(exc_info.value)

    @pytest.mark.unit
    @pytest.mark.parametrize("number", [5, -1, 1.5, "2", True])
    def test_stage_number_out_of_range(self, valid_skill_tree, number):
        _stage(valid_skill_tree, 4)["stage"] = number
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "stage_number_range"
        assert violation.kind is ViolationKind.SEMANTIC

    @pytest.mark.unit
    def test_too_many_skills(self, valid_skill_tree):
        _stage(valid_skill_tree, 3)["skills"].extend(
            [
                {"name": "Rally", "description": "Lift spirits."},
                {"name": "Hold the Line", "description": "Stand firm."},
            ]
        )
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "skill_count"
        assert "got 4" in violation.message

    @pytest.mark.unit
    def test_empty_non_zero_stage(self, valid_skill_tree):
        _stage(valid_skill_tree, 1)["skills"] = []
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "skill_count"
        assert "stage 1" in violation.message

    @pytest.mark.unit
    @pytest.mark.parametrize("cost", ["ten", True, [5], {"amount": 5}, float("nan")])
    def test_non_numeric_cost(self, valid_skill_tree, cost):
        _stage(valid_skill_tree, 2)["skills"][0]["manaCost"] = cost
        with pytest.raises(SemanticError) as exc_info:
            validate_skill_tree(valid_skill_tree)
        assert exc_info.value.violation.rule == "skill_cost_type"
        assert "'Cleave'" in str(exc_info.value)

    @pytest.mark.unit
    def test_negative_cost(self, valid_skill_tree):
        _stage(valid_skill_tree, 4)["skills"][0]["staminaCost"] = -3
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "skill_cost_range"

    @pytest.mark.unit
    def test_unknown_skill_type(self, valid_skill_tree):
        _stage(valid_skill_tree, 1)["skills"][0]["type"] = "Innate"
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "skill_type"

    @pytest.mark.unit
    def test_duplicate_stage_number(self, valid_skill_tree):
        _stage(valid_skill_tree, 4)["stage"] = 3
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "unique_stages"
        assert "duplicate stage number 3" in violation.message

    @pytest.mark.unit
    def test_duplicate_skill_name_in_stage(self, valid_skill_tree):
        skills = _stage(valid_skill_tree, 2)["skills"]
        skills[2]["name"] = skills[0]["name"]
        violation = SKILL_TREE_CONTRACT.check(valid_skill_tree)
        assert violation.rule == "unique_skill_names"
        assert violation.path == "stages[2].skills[2].name"

    @pytest.mark.unit
    def test_names_differing_only_in_case_are_distinct(self, valid_skill_tree):
        skills = _stage(valid_skill_tree, 2)["skills"]
        skills[0]["name"] = "Fireball"
        skills[2]["name"] = "fireball"
        assert SKILL_TREE_CONTRACT.check(valid_skill_tree) is None

    @pytest.mark.unit
    def test_missing_stage_zero(self, valid_skill_tree):
        # Five stages numbered 1-4 with one duplicate is caught earlier, so the
        # guard is exercised directly on a candidate that lacks stage 0.
        candidate = {
            "className": "Warrior",
            "stages": [s for s in valid_skill_tree["stages"] if s["stage"] != 0],
        }
        violation = check_stage_zero_guard.evaluate(candidate)
        assert violation.rule == "stage_zero_guard"
        assert violation.kind is ViolationKind.SEMANTIC
        assert "no stage 0" in violation.message

    @pytest.mark.unit
    def test_stage_zero_guard_passes_valid_tree(self, valid_skill_tree):
        assert check_stage_zero_guard.evaluate(valid_skill_tree) is None
