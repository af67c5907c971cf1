"""Cuisto entry point.

Text-driven cooking session: every line typed on stdin is treated as a
recognized voice transcript, and spoken feedback is printed.

Usage:
    python -m cuisto RECIPE.yaml [RECIPE.yaml ...] [OPTIONS]

Options:
    --config PATH    Path to YAML config file
    --profile NAME   Profile name (dev, prod, test)
    --user ID        Credit completed recipes to this user
    --hands-free     Start the first recipe in hands-free mode
    --help           Show this help message
    --version        Show version
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from . import __version__
from .config.loader import load_config
from .cooking.duration import format_clock
from .cooking.events import EngineEvents
from .cooking.orchestrator import CookingOrchestrator
from .cooking.session import Recipe
from .storage.recorder import CompletionRecorder, create_storage_client
from .voice.mock import MockRecognizer, MockSynthesizer, MockWakeLock

_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    load_dotenv()


def setup_logging(level: str) -> None:
    """Configure logging based on config."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="cuisto",
        description="Cuisto - guided, hands-free cooking sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m cuisto examples/pates.yaml                 # Cook one recipe
  python -m cuisto a.yaml b.yaml                       # Cook two recipes in parallel
  python -m cuisto pates.yaml --hands-free             # Start in hands-free mode
  python -m cuisto pates.yaml --config my.yaml         # Custom config file

Console commands:
  :timers            List running timers
  :select N          Send voice commands to recipe N
  :queue             Queue every timed step as a timer
  :hands-free        Toggle hands-free mode on the selected recipe
  :quit              Leave

Environment:
  CUISTO_MONGODB_URI    Enable cooking stats storage
  CUISTO_LOG_LEVEL      Override the log level
""",
    )

    parser.add_argument(
        "recipes",
        type=Path,
        nargs="*",
        metavar="RECIPE",
        help="Recipe YAML file(s) to cook",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to YAML config file",
        metavar="PATH",
    )

    parser.add_argument(
        "--profile",
        choices=["dev", "prod", "test"],
        default="dev",
        help="Configuration profile to use",
    )

    parser.add_argument(
        "--user",
        metavar="ID",
        help="User credited with completed recipes",
    )

    parser.add_argument(
        "--hands-free",
        action="store_true",
        help="Start the first recipe in hands-free mode",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Cuisto v{__version__}",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load config and recipes, then exit",
    )

    return parser.parse_args(argv)


def load_recipe(path: Path) -> Recipe:
    """Load a recipe from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not hold a recipe mapping.
    """
    with open(path, encoding="utf-8") as f:
        data: Any = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a recipe")
    data.setdefault("id", path.stem)
    return Recipe.from_dict(data)


def print_timers(orchestrator: CookingOrchestrator) -> None:
    timers = orchestrator.active_timers()
    if not timers:
        print("  (no timers)")
        return
    for timer in timers:
        state = "running" if timer.running else "paused"
        print(f"  {timer.label:<40} {format_clock(timer.remaining_seconds):>8}  {state}")


def handle_console_command(
    orchestrator: CookingOrchestrator,
    recognizer: MockRecognizer,
    line: str,
) -> bool:
    """Handle a ':' console command.

    Returns:
        False if the user asked to quit.
    """
    name, _, argument = line[1:].partition(" ")

    if name in ("quit", "q", "exit"):
        return False

    if name == "timers":
        print_timers(orchestrator)
    elif name == "select":
        sessions = orchestrator.sessions
        try:
            session = sessions[int(argument) - 1]
        except (ValueError, IndexError):
            print(f"  Choose a recipe between 1 and {len(sessions)}")
            return True
        orchestrator.select(session.session_id)
        print(f"  Voice commands now go to '{session.recipe.title}'")
    elif name == "queue":
        session = orchestrator.active_session
        if session is not None:
            orchestrator.queue_recipe_timers(session.session_id)
    elif name == "hands-free":
        if orchestrator.hands_free is not None and orchestrator.hands_free.is_active:
            orchestrator.deactivate_hands_free()
        elif orchestrator.active_session is not None:
            orchestrator.activate_hands_free()
    elif name == "fail":
        recognizer.fail(argument or "network")
    else:
        print(f"  Unknown command: {name}")
    return True


def run_console(
    orchestrator: CookingOrchestrator,
    recognizer: MockRecognizer,
    logger: logging.Logger,
) -> None:
    """Read transcripts from stdin until EOF or :quit."""
    for raw in sys.stdin:
        line = raw.strip()
        if not line:
            continue
        if line.startswith(":"):
            if not handle_console_command(orchestrator, recognizer, line):
                break
            continue

        hands_free = orchestrator.hands_free
        if hands_free is not None and hands_free.is_listening:
            recognizer.hear(line)
        else:
            command = orchestrator.handle_transcript(line)
            logger.debug(f"'{line}' -> {command.type.value}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for Cuisto.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = parse_args(argv)

    # Load configuration
    try:
        if args.config:
            config = load_config(path=args.config)
        else:
            config = load_config(profile=args.profile)
    except FileNotFoundError as e:
        print(f"Error: Config file not found: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging.level)
    logger = logging.getLogger("cuisto")

    logger.info(f"Cuisto v{__version__}")
    logger.info(f"Log level: {config.logging.level}")

    try:
        recipes = [load_recipe(path) for path in args.recipes]
    except FileNotFoundError as e:
        print(f"Error: Recipe not found: {e}", file=sys.stderr)
        return 1
    except (ValueError, yaml.YAMLError) as e:
        print(f"Error loading recipe: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        logger.info("Dry run mode - exiting after config load")
        logger.info(f"Language: {config.speech.language}")
        logger.info(f"Start policy: {config.scheduler.start_policy}")
        logger.info(f"Storage: {'on' if config.storage.enabled else 'off'}")
        for recipe in recipes:
            logger.info(f"Recipe: {recipe.title} ({len(recipe.steps)} steps)")
        return 0

    if not recipes:
        print("Error: at least one recipe file is required", file=sys.stderr)
        return 1

    recorder = None
    if args.user:
        client = create_storage_client(config.storage)
        if client is not None:
            recorder = CompletionRecorder.from_client(client)

    events = EngineEvents(
        on_alert=lambda message: print(f"  [!] {message}"),
        on_session_completed=lambda _sid, minutes: print(f"  Done in {minutes} min"),
    )
    recognizer = MockRecognizer()

    try:
        orchestrator = CookingOrchestrator.from_config(
            config,
            synthesizer=MockSynthesizer(echo=lambda text: print(f"  >> {text}")),
            recognizer=recognizer,
            wake_lock=MockWakeLock(),
            events=events,
            recorder=recorder,
            user_id=args.user,
        )
        for recipe in recipes:
            orchestrator.open_session(recipe)
        orchestrator.select(orchestrator.sessions[0].session_id)
    except Exception as e:
        logger.error(f"Failed to initialize cooking session: {e}")
        print(f"\nError: Failed to start cooking: {e}", file=sys.stderr)
        return 1

    def signal_handler(_signum: int, _frame: object) -> None:
        logger.info("Shutdown requested, cleaning up...")
        orchestrator.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)

    print("\n" + "=" * 50)
    print("  Cuisto")
    print("=" * 50)
    print(f"  Version: {__version__}")
    for index, session in enumerate(orchestrator.sessions, start=1):
        print(f"  [{index}] {session.recipe.title} ({session.step_count} steps)")
    print("=" * 50 + "\n")
    print("Type what you would say (suivant, lance le timer, ...). ':quit' to stop.\n")

    try:
        orchestrator.start()
        if args.hands_free:
            orchestrator.activate_hands_free()
        else:
            orchestrator.active_session.announce_current_step()
        run_console(orchestrator, recognizer, logger)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        orchestrator.shutdown()
        logger.info("Cuisto shut down gracefully")

    return 0


if __name__ == "__main__":
    sys.exit(main())
