"""Command line for talegen.

    python . generate <flow> ...   Run one generation flow and print its JSON
    python . test [--unit]         Run the test suite
"""

import argparse
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

from talegen.config import EnvVar, get_available_llm_providers, get_environment
from talegen.core import GenerationError, get_logger, setup_logging

load_dotenv()

logger = get_logger("talegen.cli")


def _build_adapter(args: argparse.Namespace):
    """Create the adapter and retry config for the selected model.

    Returns:
        Tuple of (LLMAdapter, RetryConfig), or None if the model is unknown.
    """
    from talegen.config import get_default_llm_model
    from talegen.llm import (
        AdapterConfig,
        LLMAdapter,
        LLMModel,
        RetryConfig,
        create_llm_backend,
    )

    model_name = get_default_llm_model(args.model)
    model = LLMModel.by_name(model_name)
    if model is None:
        known = ", ".join(m.spec.name for m in LLMModel)
        logger.error(f"Unknown model: {model_name} (known: {known})")
        return None

    retry_overrides = {"max_attempts": args.retries} if args.retries else {}
    retry_config = RetryConfig.from_environment(**retry_overrides)

    adapter_overrides = {"call_timeout": retry_config.call_timeout}
    if args.temperature is not None:
        adapter_overrides["temperature"] = args.temperature

    backend = create_llm_backend(
        model, api_key=args.api_key, timeout=retry_config.call_timeout
    )
    adapter = LLMAdapter(backend, AdapterConfig.from_environment(**adapter_overrides))
    return adapter, retry_config


def _run_flow(args: argparse.Namespace, generate) -> int:
    """Build the generator stack, run one flow and emit its JSON.

    Args:
        args: Parsed arguments.
        generate: Called with (adapter, retry_config), returns GenerationOutput.
    """
    try:
        built = _build_adapter(args)
        if built is None:
            return 1
        adapter, retry_config = built

        with adapter:
            logger.info(f"Using {adapter.backend.name}")
            output = generate(adapter, retry_config)

        result_text = output.value.model_dump_json(
            indent=2, by_alias=True, exclude_none=True
        )
        if args.output:
            args.output.write_text(result_text)
            logger.info(f"Result saved to {args.output}")
        else:
            print(result_text)

        stats = output.stats
        logger.info(
            f"Accepted after {stats.attempts} attempt(s) on {stats.final_model} "
            f"({stats.total_tokens} tokens)"
        )
        return 0

    except (GenerationError, ValueError) as e:
        logger.error(f"Generation failed ({type(e).__name__}): {e}")
        return 1


def cmd_generate_skill_tree(args: argparse.Namespace) -> int:
    """Handle the generate skill-tree command."""
    from talegen.llm import SkillTreeGenerator

    def generate(adapter, retry_config):
        logger.info(f"Generating skill tree for: {args.class_name}")
        generator = SkillTreeGenerator(adapter, retry_config)
        return generator.generate_with_stats(args.class_name)

    return _run_flow(args, generate)


def cmd_generate_character(args: argparse.Namespace) -> int:
    """Handle the generate character command."""
    from talegen.llm import CharacterDescriber

    def generate(adapter, retry_config):
        describer = CharacterDescriber(adapter, retry_config)
        return describer.describe_with_stats(
            args.description,
            immersed=args.universe is not None,
            universe_name=args.universe,
            character_concept=args.concept,
        )

    return _run_flow(args, generate)


def cmd_generate_difficulty(args: argparse.Namespace) -> int:
    """Handle the generate difficulty command."""
    from talegen.llm import DifficultyAssessor

    def generate(adapter, retry_config):
        assessor = DifficultyAssessor(adapter, retry_config)
        return assessor.assess_with_stats(
            args.action,
            character_capabilities=args.capabilities,
            current_situation=args.situation,
            game_state_summary=args.summary,
            game_difficulty=args.game_difficulty,
            turn_count=args.turn,
        )

    return _run_flow(args, generate)


def cmd_generate_craft(args: argparse.Namespace) -> int:
    """Handle the generate craft command."""
    from talegen.llm import CraftingEvaluator

    def generate(adapter, retry_config):
        evaluator = CraftingEvaluator(adapter, retry_config)
        return evaluator.evaluate_with_stats(
            args.item,
            args.ingredient,
            inventory_items=args.inventory,
            character_knowledge=args.knowledge,
            character_skills=args.skill,
        )

    return _run_flow(args, generate)


def cmd_generate_narration(args: argparse.Namespace) -> int:
    """Handle the generate narrate command."""
    from talegen.llm import Narrator

    def generate(adapter, retry_config):
        narrator = Narrator(adapter, retry_config)
        return narrator.narrate_with_stats(args.character, args.choice, args.state)

    return _run_flow(args, generate)


def cmd_generate_summary(args: argparse.Namespace) -> int:
    """Handle the generate summary command.

    The story is read from a file, or from stdin when the path is '-'.
    """
    from talegen.llm import AdventureSummarizer

    try:
        story = sys.stdin.read() if str(args.story) == "-" else args.story.read_text()
    except OSError as e:
        logger.error(f"Cannot read story: {e}")
        return 1

    def generate(adapter, retry_config):
        summarizer = AdventureSummarizer(adapter, retry_config)
        return summarizer.summarize_with_stats(story)

    return _run_flow(args, generate)


def cmd_generate_suggestions(args: argparse.Namespace) -> int:
    """Handle the generate suggest command."""
    from talegen.llm import CharacterSuggester

    def generate(adapter, retry_config):
        suggester = CharacterSuggester(adapter, retry_config)
        return suggester.suggest_with_stats(args.universe, original=args.original)

    return _run_flow(args, generate)


def cmd_list_models(_args: argparse.Namespace) -> int:
    """Print the model registry grouped by provider.

    Providers with a key set (or a reachable Ollama server) are marked ready.
    """
    from talegen.llm import LLMModel, LLMProviderType

    ready = set(get_available_llm_providers())
    for provider in LLMProviderType:
        names = [m.spec.name for m in LLMModel.list_by_provider(provider)]
        if not names:
            continue
        marker = "*" if provider.value in ready else " "
        print(f"{marker} {provider.value}: {', '.join(names)}")
    print("\n* = ready to use")
    return 0


def _add_llm_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--model",
        "-m",
        type=str,
        default=None,
        help="LLM model name (default: LLM_MODEL or gemini-2.0-flash)",
    )
    parser.add_argument(
        "--api-key",
        "-k",
        type=str,
        default=None,
        help="Provider API key (default: the provider's *_API_KEY variable)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write the JSON here instead of stdout",
    )
    parser.add_argument(
        "--temperature",
        type=float,
        default=None,
        help="LLM temperature (default: GENERATION_TEMPERATURE)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        help="Max generation attempts (default: GENERATION_MAX_ATTEMPTS)",
    )


def handle_generate_command(argv: list[str]) -> int:
    """Parse and dispatch 'python . generate <flow>'."""
    parser = argparse.ArgumentParser(
        prog="python . generate",
        description="Generate validated Endless Tales content",
    )
    subparsers = parser.add_subparsers(dest="command", help="Flow to run")

    # skill-tree command
    tree_parser = subparsers.add_parser(
        "skill-tree",
        help="Generate a five-stage skill tree for a character class",
    )
    tree_parser.add_argument("class_name", type=str, help="Character class name")
    _add_llm_options(tree_parser)
    tree_parser.set_defaults(func=cmd_generate_skill_tree)

    # character command
    character_parser = subparsers.add_parser(
        "character",
        help="Expand a short description into a character profile",
    )
    character_parser.add_argument(
        "description", type=str, help="Player's description of the character"
    )
    character_parser.add_argument(
        "--universe",
        type=str,
        default=None,
        help="Immersed mode: universe the character lives in",
    )
    character_parser.add_argument(
        "--concept",
        type=str,
        default=None,
        help="Immersed mode: character concept within the universe",
    )
    _add_llm_options(character_parser)
    character_parser.set_defaults(func=cmd_generate_character)

    # difficulty command
    difficulty_parser = subparsers.add_parser(
        "difficulty",
        help="Assess how hard a player action is",
    )
    difficulty_parser.add_argument("action", type=str, help="The player's intended action")
    difficulty_parser.add_argument("--situation", type=str, default=None)
    difficulty_parser.add_argument("--capabilities", type=str, default=None)
    difficulty_parser.add_argument("--summary", type=str, default=None)
    difficulty_parser.add_argument(
        "--game-difficulty",
        type=str,
        default="Normal",
        help="Overall game difficulty setting (default: Normal)",
    )
    difficulty_parser.add_argument("--turn", type=int, default=0)
    _add_llm_options(difficulty_parser)
    difficulty_parser.set_defaults(func=cmd_generate_difficulty)

    # craft command
    craft_parser = subparsers.add_parser(
        "craft",
        help="Evaluate a crafting attempt",
    )
    craft_parser.add_argument("item", type=str, help="Item the player wants to craft")
    craft_parser.add_argument(
        "--ingredient",
        "-i",
        action="append",
        default=[],
        help="Ingredient used (repeatable)",
    )
    craft_parser.add_argument("--inventory", action="append", default=[])
    craft_parser.add_argument("--knowledge", action="append", default=[])
    craft_parser.add_argument("--skill", action="append", default=[])
    _add_llm_options(craft_parser)
    craft_parser.set_defaults(func=cmd_generate_craft)

    # narrate command
    narrate_parser = subparsers.add_parser(
        "narrate",
        help="Continue the story from the player's choice",
    )
    narrate_parser.add_argument("choice", type=str, help="The player's choice or action")
    narrate_parser.add_argument(
        "--character", "-c", type=str, required=True, help="Character description"
    )
    narrate_parser.add_argument(
        "--state", "-s", type=str, required=True, help="Current game state"
    )
    _add_llm_options(narrate_parser)
    narrate_parser.set_defaults(func=cmd_generate_narration)

    # summary command
    summary_parser = subparsers.add_parser(
        "summary",
        help="Summarize an adventure story",
    )
    summary_parser.add_argument(
        "story", type=Path, help="File holding the story text, or - for stdin"
    )
    _add_llm_options(summary_parser)
    summary_parser.set_defaults(func=cmd_generate_summary)

    # suggest command
    suggest_parser = subparsers.add_parser(
        "suggest",
        help="Suggest characters to play in a universe",
    )
    suggest_parser.add_argument("universe", type=str, help="Universe name")
    suggest_parser.add_argument(
        "--original",
        action="store_true",
        help="Suggest original character concepts instead of existing characters",
    )
    _add_llm_options(suggest_parser)
    suggest_parser.set_defaults(func=cmd_generate_suggestions)

    # models command
    models_parser = subparsers.add_parser(
        "models",
        help="List registered models and which providers are ready",
    )
    models_parser.set_defaults(func=cmd_list_models)

    if not argv:
        parser.print_help()
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


_TEST_TIERS = {
    "--unit": ["-m", "unit"],
    "--integration": ["-m", "integration"],
    "--all": [],
}


def cmd_test(extra_args: list[str]) -> int:
    """Run pytest, translating tier flags into marker expressions.

    ``--unit`` selects tests that need no network, ``--integration`` the
    CLI and live provider tests. Anything else goes to pytest unchanged.
    """
    tier_args = [flag for arg in extra_args for flag in _TEST_TIERS.get(arg, [])]
    passthrough = [arg for arg in extra_args if arg not in _TEST_TIERS]

    cmd = [sys.executable, "-m", "pytest", *tier_args, *passthrough]
    logger.info(" ".join(cmd))
    try:
        return subprocess.call(cmd)
    except KeyboardInterrupt:
        return 130


_USAGE = """\
Usage: python . <command> [args]

Commands:
  generate   Skill trees, characters, difficulty, crafting, narration, summaries
  test       Run the test suite (--unit, --integration, --all)

Examples:
  python . generate skill-tree Necromancer
  python . generate skill-tree Bard -m claude-haiku-4-5 -o bard.json
  python . generate character 'a quiet bookworm'
  python . generate character 'a young apprentice' --universe 'Star Wars'
  python . generate difficulty 'pick the lock' --situation 'cellar door'
  python . generate craft Dagger -i 'Iron Ingot' -i 'Leather Strip'
  python . generate narrate 'open the chest' -c 'a wary ranger' -s 'camp, dusk'
  python . generate summary story.txt
  python . generate suggest 'Star Wars' --original
  python . generate models
  python . test --unit
"""


def show_help() -> None:
    print(_USAGE, end="")


def main() -> int:
    args = sys.argv[1:]
    if not args:
        show_help()
        return 1
    if args[0] in ("-h", "--help"):
        show_help()
        return 0

    handlers = {
        "generate": handle_generate_command,
        "test": cmd_test,
    }
    handler = handlers.get(args[0])
    if handler is None:
        logger.error(f"Unknown command: {args[0]}")
        show_help()
        return 1

    setup_logging(get_environment(EnvVar.LOG_LEVEL))
    return handler(args[1:])


if __name__ == "__main__":
    sys.exit(main())
