"""Tests for content models."""

import pytest
from pydantic import ValidationError

from talegen.schema import (
    CharacterSuggestions,
    CraftingOutcome,
    DiceType,
    DifficultyAssessment,
    DifficultyLevel,
    NarrationResult,
    Skill,
    SkillTree,
    export_json_schema,
)


class TestSkill:
    """Tests for the Skill model."""

    @pytest.mark.unit
    def test_wire_names(self):
        skill = Skill.model_validate(
            {"name": "Cleave", "description": "Hits twice.", "staminaCost": 10}
        )
        assert skill.stamina_cost == 10
        assert skill.mana_cost is None
        assert skill.model_dump(by_alias=True, exclude_none=True) == {
            "name": "Cleave",
            "description": "Hits twice.",
            "staminaCost": 10,
        }

    @pytest.mark.unit
    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError, match="non-negative"):
            Skill(name="Drain", description="Costs nothing?", manaCost=-5)

    @pytest.mark.unit
    def test_frozen(self):
        skill = Skill(name="Parry", description="Blocks a blow.")
        with pytest.raises(ValidationError):
            skill.name = "Riposte"


class TestSkillTree:
    """Tests for the SkillTree model."""

    @pytest.mark.unit
    def test_stages_sorted(self, valid_skill_tree):
        shuffled = dict(valid_skill_tree)
        shuffled["stages"] = list(reversed(valid_skill_tree["stages"]))
        tree = SkillTree.model_validate(shuffled)
        assert [s.stage for s in tree.stages] == [0, 1, 2, 3, 4]

    @pytest.mark.unit
    def test_requires_five_stages(self, valid_skill_tree):
        short = dict(valid_skill_tree)
        short["stages"] = valid_skill_tree["stages"][:4]
        with pytest.raises(ValidationError):
            SkillTree.model_validate(short)

    @pytest.mark.unit
    def test_get_stage(self, valid_skill_tree):
        tree = SkillTree.model_validate(valid_skill_tree)
        assert tree.get_stage(0).stage_name == "Potential"
        with pytest.raises(KeyError):
            tree.get_stage(7)

    @pytest.mark.unit
    def test_all_skills(self, valid_skill_tree):
        tree = SkillTree.model_validate(valid_skill_tree)
        names = [skill.name for skill in tree.all_skills()]
        assert names[0] == "Shield Bash"
        assert len(names) == sum(len(s["skills"]) for s in valid_skill_tree["stages"])


class TestDifficultyAssessment:
    """Tests for the DifficultyAssessment model."""

    @pytest.mark.unit
    def test_requires_roll(self):
        assessment = DifficultyAssessment.model_validate(
            {"difficulty": "Very Hard", "reasoning": "Sheer cliff.", "suggestedDice": "d100"}
        )
        assert assessment.difficulty is DifficultyLevel.VERY_HARD
        assert assessment.requires_roll

        trivial = DifficultyAssessment(
            difficulty=DifficultyLevel.TRIVIAL,
            reasoning="Opening an unlocked door.",
            suggested_dice=DiceType.NONE,
        )
        assert not trivial.requires_roll


class TestCraftingOutcome:
    """Tests for the CraftingOutcome model."""

    @pytest.mark.unit
    def test_failed_outcome_without_item(self):
        outcome = CraftingOutcome.model_validate(
            {"success": False, "message": "The blade shatters.", "consumedItems": ["Iron Ore"]}
        )
        assert outcome.crafted_item is None
        assert outcome.consumed_items == ("Iron Ore",)


class TestNarrationResult:
    @pytest.mark.unit
    def test_wire_names(self):
        result = NarrationResult.model_validate(
            {"narration": "The bridge holds.", "updatedGameState": "Across the gorge"}
        )
        assert result.updated_game_state == "Across the gorge"
        assert result.model_dump(by_alias=True)["updatedGameState"] == "Across the gorge"

    @pytest.mark.unit
    def test_empty_state_rejected(self):
        with pytest.raises(ValidationError):
            NarrationResult(narration="The bridge holds.", updated_game_state="")


class TestCharacterSuggestions:
    @pytest.mark.unit
    @pytest.mark.parametrize("count", [0, 6])
    def test_count_bounds(self, count):
        with pytest.raises(ValidationError):
            CharacterSuggestions(suggestions=[f"Name {i}" for i in range(count)])


class TestExportSchema:
    """Tests for JSON schema export."""

    @pytest.mark.unit
    def test_uses_wire_names(self):
        schema = export_json_schema(SkillTree)
        assert "className" in schema["properties"]
        assert "stages" in schema["properties"]
        assert "className" in schema["required"]
