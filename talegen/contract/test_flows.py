"""Unit tests for the per-flow contracts other than the skill tree."""

import pytest

from talegen.schema import DiceType, ItemQuality

from .character import CHARACTER_CONTRACT, SUGGESTIONS_CONTRACT, character_contract
from .crafting import CRAFTING_CONTRACT, crafting_contract
from .difficulty import DIFFICULTY_CONTRACT
from .lib import SemanticError, StructuralError
from .narration import NARRATION_CONTRACT, SUMMARY_CONTRACT


class TestCharacterContract:
    """Tests for the character profile contract."""

    @pytest.mark.unit
    def test_valid_profile(self, valid_character_profile):
        profile = CHARACTER_CONTRACT.validate(valid_character_profile)
        assert profile.inferred_class == "Scholar"
        assert profile.inferred_traits == ("Curious", "Patient")

    @pytest.mark.unit
    def test_missing_background(self, valid_character_profile):
        del valid_character_profile["inferredBackground"]
        with pytest.raises(StructuralError) as exc_info:
            CHARACTER_CONTRACT.validate(valid_character_profile)
        assert exc_info.value.violation.rule == "profile_fields"

    @pytest.mark.unit
    def test_traits_must_be_strings(self, valid_character_profile):
        valid_character_profile["inferredTraits"] = "Curious, Patient"
        violation = CHARACTER_CONTRACT.check(valid_character_profile)
        assert violation.rule == "profile_lists"

    @pytest.mark.unit
    def test_nonstandard_class_rejected(self, valid_character_profile):
        valid_character_profile["inferredClass"] = "Chronomancer"
        with pytest.raises(SemanticError) as exc_info:
            character_contract(immersed=False).validate(valid_character_profile)
        assert exc_info.value.violation.rule == "standard_class"

    @pytest.mark.unit
    def test_immersed_allows_lore_class(self, valid_character_profile):
        valid_character_profile["inferredClass"] = "Jedi Padawan"
        profile = character_contract(immersed=True).validate(valid_character_profile)
        assert profile.inferred_class == "Jedi Padawan"

    @pytest.mark.unit
    def test_standard_class_case_insensitive(self, valid_character_profile):
        valid_character_profile["inferredClass"] = "scholar"
        assert CHARACTER_CONTRACT.is_valid(valid_character_profile)


class TestDifficultyContract:
    """Tests for the difficulty assessment contract."""

    @pytest.mark.unit
    def test_valid_assessment(self, valid_difficulty):
        assessment = DIFFICULTY_CONTRACT.validate(valid_difficulty)
        assert assessment.suggested_dice is DiceType.D20
        assert assessment.requires_roll

    @pytest.mark.unit
    def test_missing_reasoning(self, valid_difficulty):
        valid_difficulty["reasoning"] = ""
        violation = DIFFICULTY_CONTRACT.check(valid_difficulty)
        assert violation.rule == "assessment_fields"

    @pytest.mark.unit
    def test_unknown_difficulty(self, valid_difficulty):
        valid_difficulty["difficulty"] = "Legendary"
        violation = DIFFICULTY_CONTRACT.check(valid_difficulty)
        assert violation.rule == "difficulty_level"

    @pytest.mark.unit
    def test_unknown_die(self, valid_difficulty):
        valid_difficulty["suggestedDice"] = "d12"
        violation = DIFFICULTY_CONTRACT.check(valid_difficulty)
        assert violation.rule == "dice_type"

    @pytest.mark.unit
    @pytest.mark.parametrize("difficulty", ["Trivial", "Impossible"])
    def test_no_roll_difficulty_with_die(self, valid_difficulty, difficulty):
        valid_difficulty["difficulty"] = difficulty
        with pytest.raises(SemanticError) as exc_info:
            DIFFICULTY_CONTRACT.validate(valid_difficulty)
        assert exc_info.value.violation.rule == "dice_matches_difficulty"

    @pytest.mark.unit
    def test_rolled_difficulty_without_die(self, valid_difficulty):
        valid_difficulty["suggestedDice"] = "None"
        violation = DIFFICULTY_CONTRACT.check(valid_difficulty)
        assert violation.rule == "dice_matches_difficulty"
        assert "Hard actions must suggest a die" in violation.message

    @pytest.mark.unit
    def test_trivial_without_roll(self, valid_difficulty):
        valid_difficulty.update(difficulty="Trivial", suggestedDice="None")
        assessment = DIFFICULTY_CONTRACT.validate(valid_difficulty)
        assert not assessment.requires_roll


class TestCraftingContract:
    """Tests for the crafting outcome contract."""

    @pytest.mark.unit
    def test_successful_craft(self, valid_crafting_outcome):
        outcome = CRAFTING_CONTRACT.validate(valid_crafting_outcome)
        assert outcome.crafted_item.quality is ItemQuality.COMMON
        assert outcome.consumed_items == ("Iron Ingot", "Leather Strip")

    @pytest.mark.unit
    def test_failed_craft(self):
        outcome = CRAFTING_CONTRACT.validate(
            {
                "success": False,
                "message": "You lack the knowledge to temper steel.",
                "craftedItem": None,
                "consumedItems": [],
            }
        )
        assert outcome.crafted_item is None

    @pytest.mark.unit
    def test_success_must_be_boolean(self, valid_crafting_outcome):
        valid_crafting_outcome["success"] = "yes"
        violation = CRAFTING_CONTRACT.check(valid_crafting_outcome)
        assert violation.rule == "outcome_fields"

    @pytest.mark.unit
    def test_consumed_items_required(self, valid_crafting_outcome):
        del valid_crafting_outcome["consumedItems"]
        with pytest.raises(StructuralError):
            CRAFTING_CONTRACT.validate(valid_crafting_outcome)

    @pytest.mark.unit
    def test_success_without_item(self, valid_crafting_outcome):
        del valid_crafting_outcome["craftedItem"]
        violation = CRAFTING_CONTRACT.check(valid_crafting_outcome)
        assert violation.rule == "item_matches_success"

    @pytest.mark.unit
    def test_failure_with_item(self, valid_crafting_outcome):
        valid_crafting_outcome["success"] = False
        violation = CRAFTING_CONTRACT.check(valid_crafting_outcome)
        assert violation.rule == "item_matches_success"

    @pytest.mark.unit
    def test_item_without_name(self, valid_crafting_outcome):
        valid_crafting_outcome["craftedItem"]["name"] = " "
        violation = CRAFTING_CONTRACT.check(valid_crafting_outcome)
        assert violation.rule == "item_fields"
        assert violation.path == "craftedItem.name"

    @pytest.mark.unit
    def test_unknown_quality(self, valid_crafting_outcome):
        valid_crafting_outcome["craftedItem"]["quality"] = "Mythic"
        violation = CRAFTING_CONTRACT.check(valid_crafting_outcome)
        assert violation.rule == "item_values"

    @pytest.mark.unit
    def test_negative_weight(self, valid_crafting_outcome):
        valid_crafting_outcome["craftedItem"]["weight"] = -1
        violation = CRAFTING_CONTRACT.check(valid_crafting_outcome)
        assert violation.rule == "item_values"
        assert violation.path == "craftedItem.weight"

    @pytest.mark.unit
    def test_consumed_items_from_ingredients(self, valid_crafting_outcome):
        contract = crafting_contract(["iron ingot", "Leather Strip", "Oak Branch"])
        assert contract.is_valid(valid_crafting_outcome)

    @pytest.mark.unit
    def test_consumed_item_not_supplied(self, valid_crafting_outcome):
        contract = crafting_contract(["Iron Ingot"])
        with pytest.raises(SemanticError) as exc_info:
            contract.validate(valid_crafting_outcome)
        assert exc_info.value.violation.rule == "consumed_from_ingredients"
        assert "Leather Strip" in str(exc_info.value)


class TestNarrationContract:
    """Tests for the narration and summary contracts."""

    @pytest.mark.unit
    def test_valid_narration(self, valid_narration):
        beat = NARRATION_CONTRACT.validate(valid_narration)
        assert beat.updated_game_state.startswith("Whisperwood")

    @pytest.mark.unit
    @pytest.mark.parametrize("key", ["narration", "updatedGameState"])
    @pytest.mark.parametrize("value", [None, "", "   ", 42])
    def test_fields_must_be_non_empty_strings(self, valid_narration, key, value):
        valid_narration[key] = value
        violation = NARRATION_CONTRACT.check(valid_narration)
        assert violation.rule == "narration_fields"
        assert violation.path == key

    @pytest.mark.unit
    def test_narration_must_be_object(self):
        with pytest.raises(StructuralError):
            NARRATION_CONTRACT.validate(["The tracks lead north."])

    @pytest.mark.unit
    def test_valid_summary(self, valid_summary):
        assert SUMMARY_CONTRACT.validate(valid_summary).summary.startswith("A wary")

    @pytest.mark.unit
    def test_blank_summary(self):
        with pytest.raises(StructuralError) as exc_info:
            SUMMARY_CONTRACT.validate({"summary": ""})
        assert exc_info.value.violation.path == "summary"


class TestSuggestionsContract:
    """Tests for the character suggestions contract."""

    @pytest.mark.unit
    def test_valid_suggestions(self, valid_suggestions):
        result = SUGGESTIONS_CONTRACT.validate(valid_suggestions)
        assert result.suggestions == (
            "Paul Atreides",
            "Chani",
            "Duncan Idaho",
            "Gurney Halleck",
        )

    @pytest.mark.unit
    @pytest.mark.parametrize("count", [0, 6])
    def test_count_bounds(self, count):
        violation = SUGGESTIONS_CONTRACT.check(
            {"suggestions": [f"Fremen {i}" for i in range(count)]}
        )
        assert violation.rule == "suggestion_list"
        assert "got" in violation.message

    @pytest.mark.unit
    def test_blank_entry(self):
        violation = SUGGESTIONS_CONTRACT.check({"suggestions": ["Chani", " "]})
        assert violation.path == "suggestions[1]"

    @pytest.mark.unit
    def test_repeated_entry(self):
        with pytest.raises(SemanticError) as exc_info:
            SUGGESTIONS_CONTRACT.validate({"suggestions": ["Chani", "Stilgar", "Chani "]})
        assert exc_info.value.violation.path == "suggestions[2]"
