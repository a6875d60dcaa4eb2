from __future__ import annotations

import argparse
import logging
from typing import Sequence

from . import __version__
from .config import Settings
from .date_utils import parse_target_date, resolve_timezone
from .init_mode import run_init_mode
from .purge_mode import run_purge_mode
from .scheduled_mode import run_scheduled_mode


logger = logging.getLogger(__name__)


def _configure_logging(level: str, *, debug: bool = False, verbose: bool = False) -> None:
    root_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    if debug or verbose:
        logging.getLogger("timeblocks").setLevel(logging.DEBUG)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timeblocks",
        description="Create Notion time blocks for a date from saved templates.",
    )
    parser.add_argument(
        "date",
        nargs="?",
        default=None,
        help="Target date (ISO format: YYYY-MM-DD). Defaults to today.",
    )
    parser.add_argument(
        "-i",
        "--init",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Refresh the saved schema and templates before scheduling.",
    )
    parser.add_argument("-p", "--purge", action="store_true", help="Archive time blocks instead of creating them.")
    parser.add_argument(
        "-y",
        "--confirm",
        action="store_true",
        help="Confirm destructive operations (required for --purge).",
    )
    parser.add_argument(
        "-d",
        "--day",
        default=None,
        help="Only use templates whose category column matches this value (e.g. Monday).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging for all libraries.")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    _configure_logging(settings.log_level, debug=args.debug, verbose=args.verbose)

    try:
        settings.validate()
        settings.ensure_state_paths()
        logger.debug("Configuration loaded (state_dir=%s, timezone=%s)", settings.state_dir, settings.timezone)
        tz = resolve_timezone(settings.timezone)

        if args.purge:
            target_date = parse_target_date(args.date, tz=tz) if args.date else None
            result = run_purge_mode(settings, args.confirm, target_date)
            return 1 if result.get("failed") else 0

        target_date = parse_target_date(args.date, tz=tz)
        if args.init:
            run_init_mode(settings)

        category = args.day if args.day is not None else settings.default_category
        result = run_scheduled_mode(settings, target_date, category or None)
        return 1 if result["failed"] else 0
    except Exception as exc:
        logger.error("Error: %s", exc)
        logger.debug("Traceback for failed run", exc_info=True)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
