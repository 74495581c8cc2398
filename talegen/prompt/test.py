"""Unit tests for PromptBuilder."""

import pytest

from talegen.schema import SkillTree, export_json_schema

from .lib import Flow, PromptBuilder, PromptConfig


class TestPromptBuilder:
    """Tests for PromptBuilder."""

    @pytest.mark.unit
    def test_skill_tree_prompt(self):
        builder = PromptBuilder()
        prompt, context = builder.build_with_context(
            Flow.SKILL_TREE,
            {"class_name": "Necromancer"},
            schema=export_json_schema(SkillTree),
        )

        assert "Endless Tales" in prompt.system
        assert "**Character Class:** Necromancer" in prompt.user
        assert '"className"' in prompt.user
        assert context.schema_included
        assert not context.feedback_included
        assert context.total_tokens_estimate > 0

    @pytest.mark.unit
    def test_flow_by_name(self):
        prompt = PromptBuilder().build("skill_tree", {"class_name": "Bard"})
        assert "Bard" in prompt.user

    @pytest.mark.unit
    def test_feedback_appended(self):
        prompt, context = PromptBuilder().build_with_context(
            Flow.SKILL_TREE,
            {"class_name": "Bard"},
            feedback="[stage_count] skill tree must have exactly 5 stages, got 4",
        )
        assert "Previous Attempt Rejected" in prompt.user
        assert "got 4" in prompt.user
        assert context.feedback_included

    @pytest.mark.unit
    def test_schema_and_feedback_can_be_disabled(self):
        builder = PromptBuilder(PromptConfig(include_schema=False, include_feedback=False))
        prompt, context = builder.build_with_context(
            Flow.SKILL_TREE, {"class_name": "Bard"}, schema={"type": "object"}, feedback="bad"
        )
        assert "Output Schema" not in prompt.user
        assert "bad" not in prompt.user
        assert not context.schema_included

    @pytest.mark.unit
    @pytest.mark.parametrize("class_name", ["", "   ", None])
    def test_required_parameter(self, class_name):
        with pytest.raises(ValueError, match="class_name"):
            PromptBuilder().build(Flow.SKILL_TREE, {"class_name": class_name})

    @pytest.mark.unit
    def test_character_modes(self):
        builder = PromptBuilder()
        standard = builder.build(
            Flow.CHARACTER,
            {"description": "A quiet bookworm", "standard_classes": ("Mage", "Scholar")},
        )
        assert "STANDARD ADVENTURE MODE" in standard.user
        assert "Mage, Scholar" in standard.user

        immersed = builder.build(
            Flow.CHARACTER,
            {
                "description": "A young apprentice",
                "immersed": True,
                "universe_name": "Star Wars",
                "character_concept": "Padawan",
            },
        )
        assert "IMMERSED ADVENTURE MODE" in immersed.user
        assert "Universe: Star Wars" in immersed.user

    @pytest.mark.unit
    def test_list_parameters(self):
        prompt = PromptBuilder().build(
            Flow.CRAFTING,
            {"desired_item": "Dagger", "used_ingredients": ["Iron Ingot", "Leather Strip"]},
        )
        assert "Ingredients Used: Iron Ingot, Leather Strip" in prompt.user
        assert "Knowledge: None" in prompt.user

    @pytest.mark.unit
    def test_difficulty_defaults(self):
        prompt = PromptBuilder().build(Flow.DIFFICULTY, {"player_action": "Climb the wall"})
        assert "**Overall Game Difficulty:** Normal" in prompt.user
        assert "Climb the wall" in prompt.user

    @pytest.mark.unit
    def test_unknown_flow(self):
        with pytest.raises(ValueError):
            PromptBuilder().build("weather_report", {})

    @pytest.mark.unit
    def test_narration_prompt(self):
        prompt = PromptBuilder().build(
            Flow.NARRATION,
            {
                "character_description": "A wary ranger",
                "player_choice": "Follow the tracks north",
                "game_state": "Edge of the Whisperwood, dusk",
            },
        )
        assert "Endless Tales" in prompt.system
        assert "**Current Game State:** Edge of the Whisperwood, dusk" in prompt.user
        assert "Follow the tracks north" in prompt.user
        assert "updatedGameState" in prompt.user

    @pytest.mark.unit
    def test_narration_needs_game_state(self):
        with pytest.raises(ValueError, match="game_state"):
            PromptBuilder().build(
                Flow.NARRATION,
                {"character_description": "A wary ranger", "player_choice": "Wait"},
            )

    @pytest.mark.unit
    def test_summary_keeps_story_braces(self):
        prompt = PromptBuilder().build(Flow.SUMMARY, {"story": "The {sealed} door opened."})
        assert "The {sealed} door opened." in prompt.user

    @pytest.mark.unit
    def test_suggestion_modes(self):
        builder = PromptBuilder()
        existing = builder.build(Flow.CHARACTER_SUGGESTIONS, {"universe_name": "Dune"})
        original = builder.build(
            Flow.CHARACTER_SUGGESTIONS, {"universe_name": "Dune", "original": True}
        )
        assert "**Universe:** Dune" in existing.user
        assert "existing characters" in existing.user
        assert "*original* player" in original.user
