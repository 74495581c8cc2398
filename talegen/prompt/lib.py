"""PromptBuilder for generation flows.

Builds the system and user prompt for each flow, with the flow's JSON
schema embedded and, on a retry, the reason the previous answer was
rejected.
"""

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

GAME_TITLE = "Endless Tales"


class Flow(str, Enum):
    """Generation flows the builder has templates for."""

    SKILL_TREE = "skill_tree"
    CHARACTER = "character"
    DIFFICULTY = "difficulty"
    CRAFTING = "crafting"
    NARRATION = "narration"
    SUMMARY = "summary"
    CHARACTER_SUGGESTIONS = "character_suggestions"


@dataclass(frozen=True)
class Prompt:
    """A rendered prompt pair."""

    system: str
    user: str


@dataclass
class PromptConfig:
    """Configuration for prompt building.

    Attributes:
        include_schema: Whether to embed the flow's JSON schema.
        include_feedback: Whether to append the previous rejection reason.
        schema_indent: Indentation for the embedded schema.
    """

    include_schema: bool = True
    include_feedback: bool = True
    schema_indent: int | None = 2


@dataclass
class PromptContext:
    """What went into a rendered prompt, for debugging.

    Attributes:
        flow: Flow the prompt was built for.
        schema_included: Whether a schema section was added.
        feedback_included: Whether a retry feedback section was added.
        total_tokens_estimate: Rough token count (4 characters per token).
    """

    flow: Flow
    schema_included: bool = False
    feedback_included: bool = False
    total_tokens_estimate: int = 0


@dataclass(frozen=True)
class FlowTemplate:
    """Prompt template for one flow.

    Attributes:
        system: System prompt.
        task: User prompt, formatted with the request parameters.
        required: Parameters that must be supplied.
        defaults: Values for optional parameters.
        prepare: Optional hook deriving extra parameters before formatting.
    """

    system: str
    task: str
    required: tuple[str, ...]
    defaults: Mapping[str, Any] = field(default_factory=dict)
    prepare: Callable[[dict[str, Any]], dict[str, Any]] | None = None


# =============================================================================
# Templates
# =============================================================================

_SKILL_TREE = FlowTemplate(
    system=(
        f'You are a creative game designer crafting skill trees for the text '
        f'adventure "{GAME_TITLE}". Output ONLY a JSON object. Do not include '
        "any text before or after the JSON."
    ),
    task="""Generate a unique and thematic 5-stage skill tree for this character class:

**Character Class:** {class_name}

**Requirements:**
1. Exactly five stages, numbered 0, 1, 2, 3 and 4.
2. Stage 0 is the starting point before specialization. Give it a stageName
   like "Potential" or "Initiate" and an empty skills array [].
3. Stages 1-4 get increasingly evocative stageNames for the class
   (e.g. Warrior: Squire -> Knight -> Champion -> Warlord) and unlock
   between 1 and 3 skills each.
4. Every skill has a name (unique within its stage) and a concise description.
   Add manaCost or staminaCost only when the skill needs resources, as a
   non-negative number such as 5, 10, 15 or 20.
5. Set className to "{class_name}".""",
    required=("class_name",),
)


def _character_mode(params: dict[str, Any]) -> dict[str, Any]:
    if params.get("immersed"):
        mode = (
            "**Context: IMMERSED ADVENTURE MODE**\n"
            f"* Universe: {params['universe_name']}\n"
            f"* Character Concept: {params['character_concept']}\n\n"
            "Infer a role or archetype (inferredClass) that fits the universe's "
            "lore, then traits, knowledge and a background that fit it too."
        )
    else:
        mode = (
            "**Context: STANDARD ADVENTURE MODE**\n\n"
            "Infer inferredClass from exactly one of: {classes}. Then infer "
            "traits, knowledge and background."
        ).format(classes=", ".join(params["standard_classes"]))
    return {**params, "mode": mode}


_CHARACTER = FlowTemplate(
    system=(
        "You are a fantasy and sci-fi story writer and character profiler. "
        "Output ONLY a JSON object."
    ),
    task="""{mode}

**User Description:** {description}

Elaborate on the description in detailedDescription and fill in every field.""",
    required=("description",),
    defaults={
        "immersed": False,
        "universe_name": "an original world",
        "character_concept": "unspecified",
        "standard_classes": (),
    },
    prepare=_character_mode,
)

_DIFFICULTY = FlowTemplate(
    system=(
        f'You are an expert Game Master for the text adventure "{GAME_TITLE}". '
        "You judge how hard a player's intended action is. Output ONLY a JSON object."
    ),
    task="""**Overall Game Difficulty:** {game_difficulty}
**Current Turn:** {turn_count}
**Character Capabilities:** {character_capabilities}
**Current Situation:** {current_situation}
**Game State Summary:** {game_state_summary}

**Player's Intended Action:**
{player_action}

Rate the action using ONLY these levels, with the matching dice:
* Trivial: obvious success. Dice: None.
* Easy: minor challenge. Dice: d6 or d10.
* Normal: standard challenge. Dice: d10 or d20.
* Hard: significant challenge. Dice: d20 or d100.
* Very Hard: borderline possible. Dice: d100.
* Impossible: cannot succeed as described. Dice: None.

Give a brief reasoning that accounts for the game difficulty setting.""",
    required=("player_action",),
    defaults={
        "character_capabilities": "Unknown",
        "current_situation": "Unknown",
        "game_state_summary": "None",
        "game_difficulty": "Normal",
        "turn_count": 0,
    },
)

_CRAFTING = FlowTemplate(
    system=(
        f'You are a Master Crafter for the text adventure "{GAME_TITLE}". '
        "You evaluate crafting attempts. Output ONLY a JSON object."
    ),
    task="""**Character Capabilities:**
* Knowledge: {character_knowledge}
* Skills: {character_skills}

**Inventory:** {inventory_items}

**Crafting Attempt:**
* Goal: {desired_item}
* Ingredients Used: {used_ingredients}

Decide whether the attempt is plausible given the character's know-how and
the ingredients.
* Success: set success to true, describe the item in craftedItem and list
  the ingredients used in consumedItems.
* Failure: set success to false, set craftedItem to null and list only the
  ingredients the failed attempt wasted.
consumedItems may only name ingredients from "Ingredients Used".""",
    required=("desired_item",),
    defaults={
        "used_ingredients": (),
        "inventory_items": (),
        "character_knowledge": (),
        "character_skills": (),
    },
)

_NARRATION = FlowTemplate(
    system=(
        "You are a dynamic and engaging narrator for the text adventure "
        f'"{GAME_TITLE}". Output ONLY a JSON object.'
    ),
    task="""**Character Description:** {character_description}
**Current Game State:** {game_state}

**Player Choice:**
{player_choice}

Continue the story from the player's choice in narration. Then write the
game state as it stands afterwards in updatedGameState, reflecting the
choice and its consequences. Never leave either field empty.""",
    required=("character_description", "player_choice", "game_state"),
)

_SUMMARY = FlowTemplate(
    system="You summarize adventure stories. Output ONLY a JSON object.",
    task="""Write a concise summary of this adventure in summary, covering the key
events, the choices the player made and their consequences.

**Story:**
{story}""",
    required=("story",),
)


def _suggestion_mode(params: dict[str, Any]) -> dict[str, Any]:
    if params.get("original"):
        mode = (
            "Suggest 3 to 5 creative, thematic concepts for an *original* player "
            "character who fits this universe. Keep each to a short phrase or a "
            'name with a title, e.g. "A former Imperial officer seeking redemption".'
        )
    else:
        mode = (
            "Suggest 3 to 5 *different*, well-known existing characters from this "
            "universe that a player might want to embody. Mix protagonists, "
            "plausible antagonists and important supporting characters."
        )
    return {**params, "mode": mode}


_CHARACTER_SUGGESTIONS = FlowTemplate(
    system=(
        "You are a creative assistant specializing in fictional universes. "
        "Output ONLY a JSON object."
    ),
    task="""**Universe:** {universe_name}

{mode}

List them in suggestions, one string each, with no repeats.""",
    required=("universe_name",),
    defaults={"original": False},
    prepare=_suggestion_mode,
)

FLOW_TEMPLATES: dict[Flow, FlowTemplate] = {
    Flow.SKILL_TREE: _SKILL_TREE,
    Flow.CHARACTER: _CHARACTER,
    Flow.DIFFICULTY: _DIFFICULTY,
    Flow.CRAFTING: _CRAFTING,
    Flow.NARRATION: _NARRATION,
    Flow.SUMMARY: _SUMMARY,
    Flow.CHARACTER_SUGGESTIONS: _CHARACTER_SUGGESTIONS,
}


def _display(value: Any) -> str:
    """Render a parameter value for a prompt."""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value) if value else "None"
    return str(value)


class PromptBuilder:
    """Builds prompts for generation flows.

    The builder is stateless after construction and safe to share.

    Example:
        >>> builder = PromptBuilder()
        >>> prompt = builder.build(
        ...     Flow.SKILL_TREE, {"class_name": "Druid"}, schema=tree_schema
        ... )
        >>> print(prompt.user)
    """

    def __init__(
        self,
        config: PromptConfig | None = None,
        templates: Mapping[Flow, FlowTemplate] | None = None,
    ):
        self._config = config or PromptConfig()
        self._templates = dict(templates or FLOW_TEMPLATES)

    def build(
        self,
        flow: Flow | str,
        params: Mapping[str, Any],
        *,
        schema: Mapping[str, Any] | None = None,
        feedback: str | None = None,
    ) -> Prompt:
        """Build a prompt for a flow."""
        prompt, _ = self.build_with_context(flow, params, schema=schema, feedback=feedback)
        return prompt

    def build_with_context(
        self,
        flow: Flow | str,
        params: Mapping[str, Any],
        *,
        schema: Mapping[str, Any] | None = None,
        feedback: str | None = None,
    ) -> tuple[Prompt, PromptContext]:
        """Build a prompt and return context metadata.

        Args:
            flow: Flow to build for.
            params: Flow parameters (e.g. {"class_name": "Mage"}).
            schema: JSON schema the answer should follow.
            feedback: Why the previous answer was rejected, if this is a retry.

        Returns:
            Tuple of (Prompt, PromptContext).

        Raises:
            KeyError: If the flow has no template.
            ValueError: If a required parameter is missing or blank.
        """
        flow = Flow(flow)
        template = self._templates[flow]
        context = PromptContext(flow=flow)

        values = {**template.defaults, **params}
        for name in template.required:
            if not str(values.get(name) or "").strip():
                raise ValueError(f"{flow.value} prompt requires '{name}'")
        if template.prepare is not None:
            values = template.prepare(values)

        parts = [template.task.format_map({k: _display(v) for k, v in values.items()})]

        if schema is not None and self._config.include_schema:
            parts.append(self._format_schema(schema))
            context.schema_included = True

        if feedback and self._config.include_feedback:
            parts.append(self._format_feedback(feedback))
            context.feedback_included = True

        prompt = Prompt(system=template.system, user="\n\n".join(parts))
        context.total_tokens_estimate = (len(prompt.system) + len(prompt.user)) // 4
        return prompt, context

    def _format_schema(self, schema: Mapping[str, Any]) -> str:
        rendered = json.dumps(schema, indent=self._config.schema_indent)
        return f"""## Output Schema

Respond with a single JSON object matching this schema:

{rendered}"""

    def _format_feedback(self, feedback: str) -> str:
        return f"""## Previous Attempt Rejected

{feedback}

Fix this issue in your response."""


__all__ = [
    "Flow",
    "Prompt",
    "PromptBuilder",
    "PromptConfig",
    "PromptContext",
    "FlowTemplate",
    "FLOW_TEMPLATES",
    "GAME_TITLE",
]
