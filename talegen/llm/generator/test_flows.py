"""Tests for the per-flow generators."""

import pytest

from talegen.prompt import Flow
from talegen.schema import DiceType, DifficultyLevel

from ..adapter import LLMAdapter
from .flows import (
    AdventureSummarizer,
    CharacterDescriber,
    CharacterSuggester,
    CraftingEvaluator,
    DifficultyAssessor,
    Narrator,
    SkillTreeGenerator,
)
from .retry import ExhaustedRetriesError, RetryConfig

NO_BACKOFF = RetryConfig(backoff_unit=0)


class TestSkillTreeGenerator:
    """Tests for SkillTreeGenerator."""

    @pytest.mark.unit
    def test_generate(self, scripted_adapter, valid_skill_tree):
        adapter = scripted_adapter(valid_skill_tree)
        tree = SkillTreeGenerator(adapter, NO_BACKOFF).generate("Warrior")

        assert [stage.stage for stage in tree.stages] == [0, 1, 2, 3, 4]
        request = adapter.requests[0]
        assert request.flow == Flow.SKILL_TREE
        assert request.subject == "Warrior"
        assert request.params == {"class_name": "Warrior"}
        assert "className" in request.schema["properties"]

    @pytest.mark.unit
    def test_subject_is_stripped(self, scripted_adapter, valid_skill_tree):
        adapter = scripted_adapter(valid_skill_tree)
        SkillTreeGenerator(adapter, NO_BACKOFF).generate("  Warrior ")
        assert adapter.requests[0].subject == "Warrior"

    @pytest.mark.unit
    @pytest.mark.parametrize("class_name", ["", "   ", None])
    def test_blank_subject_rejected(self, scripted_adapter, valid_skill_tree, class_name):
        adapter = scripted_adapter(valid_skill_tree)
        with pytest.raises(ValueError, match="class_name"):
            SkillTreeGenerator(adapter, NO_BACKOFF).generate(class_name)
        assert adapter.attempts == 0

    @pytest.mark.unit
    def test_generate_with_stats(self, scripted_adapter, valid_skill_tree):
        adapter = scripted_adapter({"className": "Warrior"}, valid_skill_tree)
        output = SkillTreeGenerator(adapter, NO_BACKOFF).generate_with_stats("Warrior")
        assert output.stats.attempts == 2
        assert output.value.class_name == "Warrior"

    @pytest.mark.unit
    def test_exhausted(self, scripted_adapter):
        adapter = scripted_adapter({"className": "Warrior", "stages": []})
        with pytest.raises(ExhaustedRetriesError, match="Warrior"):
            SkillTreeGenerator(adapter, NO_BACKOFF).generate("Warrior")

    @pytest.mark.unit
    def test_default_adapter_wraps_backend(self, scripted_backend):
        generator = SkillTreeGenerator(retry_config=NO_BACKOFF, backend=scripted_backend("{}"))
        assert isinstance(generator.adapter, LLMAdapter)
        assert generator.adapter.backend.provider == "scripted"


class TestCharacterDescriber:
    """Tests for CharacterDescriber."""

    @pytest.mark.unit
    def test_standard_mode(self, scripted_adapter, valid_character_profile):
        adapter = scripted_adapter(valid_character_profile)
        profile = CharacterDescriber(adapter, NO_BACKOFF).describe("A quiet bookworm")

        assert profile.inferred_class == "Scholar"
        params = adapter.requests[0].params
        assert params["immersed"] is False
        assert "Warrior" in params["standard_classes"]

    @pytest.mark.unit
    def test_standard_mode_rejects_unknown_class(
        self, scripted_adapter, valid_character_profile
    ):
        jedi = {**valid_character_profile, "inferredClass": "Jedi"}
        adapter = scripted_adapter(jedi, valid_character_profile)

        output = CharacterDescriber(adapter, NO_BACKOFF).describe_with_stats(
            "A quiet bookworm"
        )

        assert output.stats.attempts == 2
        assert "Jedi" in adapter.requests[1].feedback

    @pytest.mark.unit
    def test_immersed_mode_accepts_any_role(
        self, scripted_adapter, valid_character_profile
    ):
        padawan = {**valid_character_profile, "inferredClass": "Jedi Padawan"}
        adapter = scripted_adapter(padawan)

        profile = CharacterDescriber(adapter, NO_BACKOFF).describe(
            "A young apprentice",
            immersed=True,
            universe_name="Star Wars",
            character_concept="Padawan",
        )

        assert profile.inferred_class == "Jedi Padawan"
        assert adapter.requests[0].params["universe_name"] == "Star Wars"

    @pytest.mark.unit
    def test_immersed_mode_needs_universe(self, scripted_adapter, valid_character_profile):
        adapter = scripted_adapter(valid_character_profile)
        with pytest.raises(ValueError, match="universe_name"):
            CharacterDescriber(adapter, NO_BACKOFF).describe("Someone", immersed=True)


class TestDifficultyAssessor:
    """Tests for DifficultyAssessor."""

    @pytest.mark.unit
    def test_assess(self, scripted_adapter, valid_difficulty):
        adapter = scripted_adapter(valid_difficulty)
        assessment = DifficultyAssessor(adapter, NO_BACKOFF).assess(
            "Pick the lock",
            current_situation="A locked cellar door",
            game_difficulty="Hard",
            turn_count=12,
        )

        assert assessment.difficulty == DifficultyLevel.HARD
        assert assessment.suggested_dice == DiceType.D20
        params = adapter.requests[0].params
        assert params["current_situation"] == "A locked cellar door"
        assert params["turn_count"] == 12
        assert "character_capabilities" not in params

    @pytest.mark.unit
    def test_trivial_with_dice_is_retried(self, scripted_adapter, valid_difficulty):
        trivial = {**valid_difficulty, "difficulty": "Trivial", "suggestedDice": "d20"}
        adapter = scripted_adapter(trivial, valid_difficulty)

        output = DifficultyAssessor(adapter, NO_BACKOFF).assess_with_stats("Open the door")

        assert output.stats.attempts == 2
        assert output.value.difficulty == DifficultyLevel.HARD


class TestCraftingEvaluator:
    """Tests for CraftingEvaluator."""

    @pytest.mark.unit
    def test_evaluate(self, scripted_adapter, valid_crafting_outcome):
        adapter = scripted_adapter(valid_crafting_outcome)
        outcome = CraftingEvaluator(adapter, NO_BACKOFF).evaluate(
            "Dagger",
            ["Iron Ingot", "Leather Strip"],
            character_skills=["Smithing"],
        )

        assert outcome.success
        assert outcome.crafted_item.name == "Crude Dagger"
        params = adapter.requests[0].params
        assert params["used_ingredients"] == ("Iron Ingot", "Leather Strip")
        assert params["character_skills"] == ("Smithing",)

    @pytest.mark.unit
    def test_consumed_items_must_be_ingredients(
        self, scripted_adapter, valid_crafting_outcome
    ):
        adapter = scripted_adapter(valid_crafting_outcome)
        with pytest.raises(ExhaustedRetriesError) as exc_info:
            CraftingEvaluator(adapter, NO_BACKOFF).evaluate("Dagger", ["Iron Ingot"])

        assert adapter.attempts == 3
        assert "Leather Strip" in str(exc_info.value)


class TestNarrator:
    """Tests for Narrator."""

    @pytest.mark.unit
    def test_narrate(self, scripted_adapter, valid_narration):
        adapter = scripted_adapter(valid_narration)
        beat = Narrator(adapter, NO_BACKOFF).narrate(
            "A wary ranger", " Follow the tracks north ", "Whisperwood, dusk"
        )

        assert beat.narration.startswith("The tracks lead you")
        assert beat.updated_game_state.startswith("Whisperwood, north trail")
        request = adapter.requests[0]
        assert request.flow == Flow.NARRATION
        assert request.subject == "Follow the tracks north"
        assert request.params["game_state"] == "Whisperwood, dusk"

    @pytest.mark.unit
    def test_empty_game_state_is_retried(self, scripted_adapter, valid_narration):
        blank = {**valid_narration, "updatedGameState": "  "}
        adapter = scripted_adapter(blank, valid_narration)

        output = Narrator(adapter, NO_BACKOFF).narrate_with_stats(
            "A wary ranger", "Wait", "Whisperwood, dusk"
        )

        assert output.stats.attempts == 2
        assert output.stats.validation_retries == 1
        assert "updatedGameState" in adapter.requests[1].feedback

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "args",
        [
            ("", "Wait", "Camp"),
            ("A ranger", "   ", "Camp"),
            ("A ranger", "Wait", None),
        ],
    )
    def test_blank_inputs_rejected(self, scripted_adapter, valid_narration, args):
        adapter = scripted_adapter(valid_narration)
        with pytest.raises(ValueError):
            Narrator(adapter, NO_BACKOFF).narrate(*args)
        assert adapter.attempts == 0


class TestAdventureSummarizer:
    """Tests for AdventureSummarizer."""

    @pytest.mark.unit
    def test_summarize(self, scripted_adapter, valid_summary):
        story = "You entered the Whisperwood. " * 10
        adapter = scripted_adapter(valid_summary)

        summary = AdventureSummarizer(adapter, NO_BACKOFF).summarize(story)

        assert summary.summary.startswith("A wary ranger")
        request = adapter.requests[0]
        assert request.flow == Flow.SUMMARY
        assert request.params["story"] == story.strip()
        assert request.subject.endswith("...")

    @pytest.mark.unit
    def test_missing_summary_exhausts(self, scripted_adapter):
        adapter = scripted_adapter({"recap": "Things happened."})
        with pytest.raises(ExhaustedRetriesError):
            AdventureSummarizer(adapter, NO_BACKOFF).summarize("A short tale.")
        assert adapter.attempts == 3


class TestCharacterSuggester:
    """Tests for CharacterSuggester."""

    @pytest.mark.unit
    def test_existing(self, scripted_adapter, valid_suggestions):
        adapter = scripted_adapter(valid_suggestions)
        result = CharacterSuggester(adapter, NO_BACKOFF).suggest_existing("Dune")

        assert result.suggestions[0] == "Paul Atreides"
        assert adapter.requests[0].params == {"universe_name": "Dune", "original": False}

    @pytest.mark.unit
    def test_original(self, scripted_adapter, valid_suggestions):
        adapter = scripted_adapter(valid_suggestions)
        CharacterSuggester(adapter, NO_BACKOFF).suggest_original("Dune")
        assert adapter.requests[0].params["original"] is True

    @pytest.mark.unit
    def test_repeated_name_is_retried(self, scripted_adapter, valid_suggestions):
        repeated = {"suggestions": ["Chani", "Chani"]}
        adapter = scripted_adapter(repeated, valid_suggestions)

        output = CharacterSuggester(adapter, NO_BACKOFF).suggest_with_stats("Dune")

        assert output.stats.attempts == 2
        assert "appears twice" in adapter.requests[1].feedback
