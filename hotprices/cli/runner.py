# hotprices/cli/runner.py

"""Headless sync and analysis commands with exit-code mapping."""

import logging
import sys
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.table import Table

from hotprices.config.settings import Settings
from hotprices.errors import HotpricesError
from hotprices.models.price_history import CanonicalHistory
from hotprices.models.product import Retailer
from hotprices.services.analysis import run_analysis
from hotprices.services.sync import print_save_path, scrape

logger = logging.getLogger("hotprices.cli")

# Stderr console for status messages so stdout stays clean for scripts
_err = Console(stderr=True)


def resolve_retailers(store_csv: str | None) -> list[Retailer]:
    """Map a comma-separated list of retailer IDs to Retailer values.

    Returns all retailers when *store_csv* is ``None``.
    Raises ``SystemExit`` on unknown IDs.
    """
    available = {r["id"]: Retailer(r["id"]) for r in Settings.AVAILABLE_RETAILERS}
    if store_csv is None:
        return list(available.values())

    requested = [s.strip() for s in store_csv.split(",") if s.strip()]
    unknown = [r for r in requested if r not in available]
    if unknown:
        valid = ", ".join(sorted(available))
        _err.print(f"[red]Unknown retailer(s): {', '.join(unknown)}[/red]")
        _err.print(f"[dim]Available: {valid}[/dim]")
        raise SystemExit(1)

    return [available[r] for r in requested]


def _fail(exc: Exception) -> int:
    """Report a failed command and return its exit code."""
    if isinstance(exc, HotpricesError):
        logger.error("%s: %s", type(exc).__name__, exc.message)
        _err.print(f"[red]{type(exc).__name__}: {exc.message}[/red]")
        return exc.exit_code
    logger.critical("Unexpected error", exc_info=exc)
    _err.print(f"[red]Unexpected error: {exc}[/red]")
    return 1


def _print_summary(histories: dict[Retailer, CanonicalHistory]) -> None:
    table = Table(title="Canonical History", title_style="bold cyan")
    table.add_column("Retailer", style="magenta")
    table.add_column("Products", justify="right")
    table.add_column("Active", justify="right", style="green")
    table.add_column("Last merged", justify="center")

    for retailer, history in histories.items():
        table.add_row(
            str(retailer),
            f"{len(history):,}",
            f"{history.active_count():,}",
            history.last_merged.isoformat() if history.last_merged else "-",
        )
    _err.print(table)


def run_sync(
    retailer_id: str,
    output_dir: Path,
    quick: bool = False,
    save_path_only: bool = False,
    skip_existing: bool = False,
    cache_path: Path | None = None,
) -> int:
    """Scrape one retailer; return a process exit code."""
    retailer = Retailer(retailer_id)
    if save_path_only:
        path = print_save_path(retailer, output_dir=output_dir, quick_mode=quick)
        sys.stdout.write(path + "\n")
        return 0

    _err.print(
        f"[bold]Syncing:[/bold] {retailer}"
        f"{'  [dim](quick mode)[/dim]' if quick else ''}"
    )
    try:
        path = scrape(
            retailer,
            output_dir=output_dir,
            skip_if_exists=skip_existing,
            quick_mode=quick,
            cache_dir=cache_path,
        )
    except Exception as exc:
        return _fail(exc)

    _err.print(f"[green]✓ Snapshot saved → {path}[/green]")
    return 0


def run_analysis_command(
    output_dir: Path,
    data_dir: Path,
    day: date | None = None,
    store_csv: str | None = None,
    compress: bool = False,
    history: bool = False,
    allow_partial: bool = False,
) -> int:
    """Merge snapshots into the canonical history; return an exit code."""
    retailers = resolve_retailers(store_csv)
    _err.print(
        f"[bold]Analysing:[/bold] {', '.join(str(r) for r in retailers)}"
        f"  [dim]day={day.isoformat() if day else 'today'}[/dim]"
    )
    try:
        histories = run_analysis(
            day=day,
            retailers=retailers,
            output_dir=output_dir,
            data_dir=data_dir,
            compress=compress,
            history=history,
            allow_partial=allow_partial,
        )
    except Exception as exc:
        return _fail(exc)

    _print_summary(histories)
    return 0
