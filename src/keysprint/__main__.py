"""Entry point for `python -m keysprint` or the `keysprint` console script."""

import argparse
import logging
from pathlib import Path

from keysprint.config import DEFAULT_SETTINGS_PATH, EngineSettings, load_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="KeySprint - adaptive sight-reading drills")
    parser.add_argument("--difficulty", choices=["single_note", "interval", "triad"],
                        help="Starting difficulty")
    parser.add_argument("--no-adaptive", action="store_true", help="Never raise difficulty automatically")
    parser.add_argument("--capacity", type=int, help="Patterns kept ready in the queue")
    parser.add_argument("--refill-threshold", type=int, help="Queue size that triggers a refill")
    parser.add_argument("--similarity", type=float, help="Reject patterns at least this similar to the last")
    parser.add_argument("--settings", type=Path, default=DEFAULT_SETTINGS_PATH, help="Settings JSON file")
    parser.add_argument("--db", type=Path, default=None, help="Progress database path")
    parser.add_argument("--strict", action="store_true", help="Raise on internal errors instead of degrading")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity")
    return parser


def settings_from_args(args: argparse.Namespace) -> EngineSettings:
    """File settings with any command-line overrides applied."""
    settings = load_settings(args.settings)
    if args.difficulty:
        settings.starting_difficulty = args.difficulty
    if args.no_adaptive:
        settings.adaptive_difficulty = False
    if args.capacity is not None:
        settings.queue_capacity = args.capacity
    if args.refill_threshold is not None:
        settings.refill_threshold = args.refill_threshold
    if args.similarity is not None:
        settings.similarity_threshold = args.similarity
    if args.strict:
        settings.strict = True
    return settings.validated()


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        settings = settings_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))

    from keysprint.app import App

    app = App(settings=settings, db_path=args.db)
    app.run()


if __name__ == "__main__":
    main()
