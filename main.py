# main.py

"""Entry point for the hotprices scraper and history merger."""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from hotprices.config.logging_config import setup_logging
from hotprices.config.settings import Settings

logger = logging.getLogger("hotprices.main")


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"invalid date '{value}', expected YYYY-MM-DD"
        ) from exc


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = [r["id"] for r in Settings.AVAILABLE_RETAILERS]

    parser = argparse.ArgumentParser(
        prog="hotprices",
        description="Australian grocery price scraper and history builder.",
        epilog=f"Available retailers: {', '.join(valid_ids)}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Log debug output to the console.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Settings.OUTPUT_DIR,
        dest="output_dir",
        help="Snapshot and canonical history directory (default: output/).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Scrape one retailer.")
    sync.add_argument("retailer", choices=valid_ids)
    sync.add_argument(
        "--quick",
        action="store_true",
        default=False,
        help="Scrape only a few categories and pages.",
    )
    sync.add_argument(
        "--print-save-path",
        action="store_true",
        default=False,
        dest="print_save_path",
        help="Print where today's snapshot is saved and exit.",
    )
    sync.add_argument(
        "--skip-existing",
        action="store_true",
        default=False,
        dest="skip_existing",
        help="Do nothing if today's snapshot already exists.",
    )
    sync.add_argument(
        "--cache-path",
        type=Path,
        default=None,
        dest="cache_path",
        help="Raw page cache directory (default: cache/).",
    )

    analysis = subparsers.add_parser(
        "analysis", help="Merge snapshots into the canonical history."
    )
    analysis.add_argument(
        "--day",
        type=_parse_day,
        default=None,
        help="Snapshot day to merge (default: today, Sydney time).",
    )
    analysis.add_argument(
        "--store",
        default=None,
        help="Comma-separated retailer IDs (default: all).",
    )
    analysis.add_argument(
        "--compress",
        action="store_true",
        default=False,
        help="Gzip the per-retailer site exports.",
    )
    analysis.add_argument(
        "--history",
        action="store_true",
        default=False,
        help="Merge every stored snapshot newer than the history.",
    )
    analysis.add_argument(
        "--allow-partial",
        action="store_true",
        default=False,
        dest="allow_partial",
        help="Merge a quick-mode snapshot when no full one exists.",
    )
    analysis.add_argument(
        "--data-dir",
        type=Path,
        default=Settings.DATA_DIR,
        dest="data_dir",
        help="Site export directory (default: static/data/).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and dispatch to the sync or analysis runner."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = setup_logging(debug=args.debug)
    logger.info("hotprices %s starting, log file: %s", args.command, log_file)

    from hotprices.cli.runner import run_analysis_command, run_sync

    if args.command == "sync":
        return run_sync(
            args.retailer,
            output_dir=args.output_dir,
            quick=args.quick,
            save_path_only=args.print_save_path,
            skip_existing=args.skip_existing,
            cache_path=args.cache_path,
        )
    return run_analysis_command(
        output_dir=args.output_dir,
        data_dir=args.data_dir,
        day=args.day,
        store_csv=args.store,
        compress=args.compress,
        history=args.history,
        allow_partial=args.allow_partial,
    )


if __name__ == "__main__":
    sys.exit(main())
