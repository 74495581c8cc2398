"""Generators for each Endless Tales content flow.

Each class pairs a flow prompt with its contract and runs it through a
GenerationPipeline. The skill tree generator is the primary entry point for
game logic; the others follow the same shape.
"""

import logging
import threading
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from talegen.config import get_default_llm_model
from talegen.contract import (
    DIFFICULTY_CONTRACT,
    NARRATION_CONTRACT,
    SKILL_TREE_CONTRACT,
    STANDARD_CLASSES,
    SUGGESTIONS_CONTRACT,
    SUMMARY_CONTRACT,
    Contract,
    character_contract,
    crafting_contract,
)
from talegen.prompt import Flow
from talegen.schema import (
    AdventureSummary,
    CharacterProfile,
    CharacterSuggestions,
    CraftingOutcome,
    DifficultyAssessment,
    NarrationResult,
    SkillTree,
    export_json_schema,
)

from ..adapter import AdapterConfig, GenerationRequest, GenerativeAdapter, LLMAdapter
from ..backend import LLMBackend, create_llm_backend
from .lib import GenerationOutput, GenerationPipeline
from .retry import RetryConfig

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def _require(value: str | None, what: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{what} must be a non-empty string")
    return value.strip()


class FlowGenerator(Generic[ModelT]):
    """Shared wiring for flow generators.

    Builds a default LLMAdapter when none is given, using LLM_MODEL (or the
    first provider with an API key) and the GENERATION_* settings.
    """

    flow: Flow
    model: type

    def __init__(
        self,
        adapter: GenerativeAdapter | None = None,
        retry_config: RetryConfig | None = None,
        *,
        backend: LLMBackend | None = None,
        feedback: bool = True,
    ):
        """Initialize the generator.

        Args:
            adapter: Produces raw candidates. Built from ``backend`` if None.
            retry_config: Attempt budget and backoff. Resolved from the
                environment if None.
            backend: Backend for the default adapter. Created from the
                default model if None.
            feedback: Re-prompt with the last violation on retries.
        """
        self._retry_config = retry_config or RetryConfig.from_environment()
        if adapter is None:
            backend = backend or create_llm_backend(
                get_default_llm_model(), timeout=self._retry_config.call_timeout
            )
            adapter = LLMAdapter(
                backend,
                AdapterConfig.from_environment(call_timeout=self._retry_config.call_timeout),
            )
            logger.debug(f"{type(self).__name__} using {backend.name}")
        self._adapter = adapter
        self._feedback = feedback
        self._schema = export_json_schema(self.model)

    @property
    def adapter(self) -> GenerativeAdapter:
        return self._adapter

    def _run(
        self,
        contract: Contract[ModelT],
        subject: str,
        params: dict[str, Any],
        cancel: threading.Event | None,
    ) -> GenerationOutput[ModelT]:
        pipeline = GenerationPipeline(
            self._adapter, contract, self._retry_config, feedback=self._feedback
        )
        request = GenerationRequest(
            flow=self.flow, subject=subject, params=params, schema=self._schema
        )
        return pipeline.run(request, cancel=cancel)


class SkillTreeGenerator(FlowGenerator[SkillTree]):
    """Generates validated five-stage skill trees.

    Example:
        >>> generator = SkillTreeGenerator()
        >>> tree = generator.generate("Necromancer")
        >>> [stage.stage for stage in tree.stages]
        [0, 1, 2, 3, 4]
    """

    flow = Flow.SKILL_TREE
    model = SkillTree

    def generate(
        self, class_name: str, *, cancel: threading.Event | None = None
    ) -> SkillTree:
        """Generate a skill tree for a character class.

        Args:
            class_name: Character class, e.g. "Necromancer".
            cancel: Optional signal that aborts generation.

        Returns:
            The accepted SkillTree.

        Raises:
            ValueError: If class_name is blank.
            ExhaustedRetriesError: If every attempt failed.
            GenerationCancelledError: If cancel fired.
        """
        return self.generate_with_stats(class_name, cancel=cancel).value

    def generate_with_stats(
        self, class_name: str, *, cancel: threading.Event | None = None
    ) -> GenerationOutput[SkillTree]:
        class_name = _require(class_name, "class_name")
        return self._run(
            SKILL_TREE_CONTRACT, class_name, {"class_name": class_name}, cancel
        )


class CharacterDescriber(FlowGenerator[CharacterProfile]):
    """Expands a short player description into a character profile.

    In standard mode the inferred class must be one of STANDARD_CLASSES. In
    immersed mode any role that fits the named universe is accepted.
    """

    flow = Flow.CHARACTER
    model = CharacterProfile

    def describe(
        self,
        description: str,
        *,
        immersed: bool = False,
        universe_name: str | None = None,
        character_concept: str | None = None,
        cancel: threading.Event | None = None,
    ) -> CharacterProfile:
        return self.describe_with_stats(
            description,
            immersed=immersed,
            universe_name=universe_name,
            character_concept=character_concept,
            cancel=cancel,
        ).value

    def describe_with_stats(
        self,
        description: str,
        *,
        immersed: bool = False,
        universe_name: str | None = None,
        character_concept: str | None = None,
        cancel: threading.Event | None = None,
    ) -> GenerationOutput[CharacterProfile]:
        """Describe a character and return the full pipeline output.

        Raises:
            ValueError: If description is blank, or immersed mode lacks a
                universe name.
        """
        description = _require(description, "description")
        params: dict[str, Any] = {
            "description": description,
            "immersed": immersed,
            "standard_classes": STANDARD_CLASSES,
        }
        if immersed:
            params["universe_name"] = _require(universe_name, "universe_name")
            if character_concept:
                params["character_concept"] = character_concept
        return self._run(character_contract(immersed), description, params, cancel)


class DifficultyAssessor(FlowGenerator[DifficultyAssessment]):
    """Rates how hard a player's intended action is."""

    flow = Flow.DIFFICULTY
    model = DifficultyAssessment

    def assess(
        self,
        player_action: str,
        *,
        character_capabilities: str | None = None,
        current_situation: str | None = None,
        game_state_summary: str | None = None,
        game_difficulty: str = "Normal",
        turn_count: int = 0,
        cancel: threading.Event | None = None,
    ) -> DifficultyAssessment:
        return self.assess_with_stats(
            player_action,
            character_capabilities=character_capabilities,
            current_situation=current_situation,
            game_state_summary=game_state_summary,
            game_difficulty=game_difficulty,
            turn_count=turn_count,
            cancel=cancel,
        ).value

    def assess_with_stats(
        self,
        player_action: str,
        *,
        character_capabilities: str | None = None,
        current_situation: str | None = None,
        game_state_summary: str | None = None,
        game_difficulty: str = "Normal",
        turn_count: int = 0,
        cancel: threading.Event | None = None,
    ) -> GenerationOutput[DifficultyAssessment]:
        player_action = _require(player_action, "player_action")
        params: dict[str, Any] = {
            "player_action": player_action,
            "game_difficulty": game_difficulty,
            "turn_count": turn_count,
        }
        optional = {
            "character_capabilities": character_capabilities,
            "current_situation": current_situation,
            "game_state_summary": game_state_summary,
        }
        params.update({k: v for k, v in optional.items() if v})
        return self._run(DIFFICULTY_CONTRACT, player_action, params, cancel)


class CraftingEvaluator(FlowGenerator[CraftingOutcome]):
    """Judges a crafting attempt.

    Consumed items must come from the ingredients the player supplied, so
    the contract is built per attempt from ``used_ingredients``.
    """

    flow = Flow.CRAFTING
    model = CraftingOutcome

    def evaluate(
        self,
        desired_item: str,
        used_ingredients: Sequence[str],
        *,
        inventory_items: Sequence[str] = (),
        character_knowledge: Sequence[str] = (),
        character_skills: Sequence[str] = (),
        cancel: threading.Event | None = None,
    ) -> CraftingOutcome:
        return self.evaluate_with_stats(
            desired_item,
            used_ingredients,
            inventory_items=inventory_items,
            character_knowledge=character_knowledge,
            character_skills=character_skills,
            cancel=cancel,
        ).value

    def evaluate_with_stats(
        self,
        desired_item: str,
        used_ingredients: Sequence[str],
        *,
        inventory_items: Sequence[str] = (),
        character_knowledge: Sequence[str] = (),
        character_skills: Sequence[str] = (),
        cancel: threading.Event | None = None,
    ) -> GenerationOutput[CraftingOutcome]:
        desired_item = _require(desired_item, "desired_item")
        params: dict[str, Any] = {
            "desired_item": desired_item,
            "used_ingredients": tuple(used_ingredients),
            "inventory_items": tuple(inventory_items),
            "character_knowledge": tuple(character_knowledge),
            "character_skills": tuple(character_skills),
        }
        contract = crafting_contract(used_ingredients)
        return self._run(contract, desired_item, params, cancel)


class Narrator(FlowGenerator[NarrationResult]):
    """Continues the story from the player's latest choice.

    Example:
        >>> beat = Narrator().narrate(
        ...     "A wary ranger", "Follow the tracks north", "Whisperwood, dusk"
        ... )
        >>> beat.updated_game_state
        'Deeper in the Whisperwood, night falling'
    """

    flow = Flow.NARRATION
    model = NarrationResult

    def narrate(
        self,
        character_description: str,
        player_choice: str,
        game_state: str,
        *,
        cancel: threading.Event | None = None,
    ) -> NarrationResult:
        return self.narrate_with_stats(
            character_description, player_choice, game_state, cancel=cancel
        ).value

    def narrate_with_stats(
        self,
        character_description: str,
        player_choice: str,
        game_state: str,
        *,
        cancel: threading.Event | None = None,
    ) -> GenerationOutput[NarrationResult]:
        """Narrate one turn and return the full pipeline output.

        Raises:
            ValueError: If any of the three inputs is blank.
        """
        params = {
            "character_description": _require(
                character_description, "character_description"
            ),
            "player_choice": _require(player_choice, "player_choice"),
            "game_state": _require(game_state, "game_state"),
        }
        return self._run(NARRATION_CONTRACT, params["player_choice"], params, cancel)


class AdventureSummarizer(FlowGenerator[AdventureSummary]):
    """Condenses a finished adventure into its key events and choices."""

    flow = Flow.SUMMARY
    model = AdventureSummary

    def summarize(
        self, story: str, *, cancel: threading.Event | None = None
    ) -> AdventureSummary:
        return self.summarize_with_stats(story, cancel=cancel).value

    def summarize_with_stats(
        self, story: str, *, cancel: threading.Event | None = None
    ) -> GenerationOutput[AdventureSummary]:
        story = _require(story, "story")
        subject = story if len(story) <= 40 else story[:40] + "..."
        return self._run(SUMMARY_CONTRACT, subject, {"story": story}, cancel)


class CharacterSuggester(FlowGenerator[CharacterSuggestions]):
    """Suggests characters a player could take into a named universe.

    ``suggest_existing`` names well-known characters of the universe;
    ``suggest_original`` proposes concepts for a new one.
    """

    flow = Flow.CHARACTER_SUGGESTIONS
    model = CharacterSuggestions

    def suggest_existing(
        self, universe_name: str, *, cancel: threading.Event | None = None
    ) -> CharacterSuggestions:
        return self.suggest_with_stats(universe_name, cancel=cancel).value

    def suggest_original(
        self, universe_name: str, *, cancel: threading.Event | None = None
    ) -> CharacterSuggestions:
        return self.suggest_with_stats(universe_name, original=True, cancel=cancel).value

    def suggest_with_stats(
        self,
        universe_name: str,
        *,
        original: bool = False,
        cancel: threading.Event | None = None,
    ) -> GenerationOutput[CharacterSuggestions]:
        universe_name = _require(universe_name, "universe_name")
        params = {"universe_name": universe_name, "original": original}
        return self._run(SUGGESTIONS_CONTRACT, universe_name, params, cancel)


__all__ = [
    "FlowGenerator",
    "SkillTreeGenerator",
    "CharacterDescriber",
    "DifficultyAssessor",
    "CraftingEvaluator",
    "Narrator",
    "AdventureSummarizer",
    "CharacterSuggester",
]
