"""
layergen — Unique Layered Edition Generator

Usage:
  python -m layergen.main --layers layers --config config/layer_configuration.json
  python -m layergen.main --output build --size 512 --resize --seed 42
  layergen --cleanup --max-retries 2000

Defaults come from LAYERGEN_* environment variables (.env supported).
"""

from __future__ import annotations

import argparse
import shutil
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.rule import Rule
from rich.table import Table

from .catalog import build_catalog
from .config import EditionConfig, Settings, load_edition_config
from .engine import EditionEngine, GroupReport, GroupStatus, RunReport
from .errors import LayergenError
from .fingerprint import short_fingerprint
from .logging_utils import setup_logging
from .metadata import EmittedEdition

console = Console()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2


# ── CLI ───────────────────────────────────────────────────────────────────────

def parse_args(argv: Optional[List[str]] = None, defaults: Optional[Settings] = None) -> argparse.Namespace:
    d = defaults or Settings()
    parser = argparse.ArgumentParser(
        description="Generate unique layered editions with JSON metadata"
    )
    parser.add_argument("--layers", default=str(d.layers_dir),
                        help=f"Layers directory, one sub-directory per layer (default: {d.layers_dir})")
    parser.add_argument("--config", default=str(d.config_path),
                        help=f"Edition configuration JSON (default: {d.config_path})")
    parser.add_argument("--output", default=str(d.destination_dir),
                        help=f"Destination directory (default: {d.destination_dir})")
    parser.add_argument("--size", type=int, default=d.image_size,
                        help=f"Output canvas size in pixels (default: {d.image_size})")
    parser.add_argument("--resize", action=argparse.BooleanOptionalAction, default=d.resize,
                        help="Resize layer images whose width differs from --size")
    parser.add_argument("--max-retries", type=int, default=d.max_retries,
                        help=f"Collisions allowed per group before giving up (default: {d.max_retries})")
    parser.add_argument("--cleanup", action="store_true", default=d.cleanup,
                        help="Delete the destination directory before generating")
    parser.add_argument("--seed", type=int, default=d.seed,
                        help="Random seed for reproducible runs")
    parser.add_argument("--shared-registry", action="store_true", default=d.shared_registry,
                        help="Deduplicate across all groups instead of per group")
    parser.add_argument("--allow-partial", action="store_true",
                        help="Exit 0 even when a group runs out of retries")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        layers_dir=Path(args.layers),
        destination_dir=Path(args.output),
        config_path=Path(args.config),
        image_size=args.size,
        resize=args.resize,
        max_retries=args.max_retries,
        cleanup=args.cleanup,
        seed=args.seed,
        shared_registry=args.shared_registry,
    )


# ── Output helpers ────────────────────────────────────────────────────────────

def cleanup_destination(destination: Path) -> None:
    """Remove and recreate the destination directory."""
    if destination.exists():
        console.print(f"  [dim]Cleaning {destination}[/dim]")
        shutil.rmtree(destination)
    destination.mkdir(parents=True, exist_ok=True)


def summary_table(report: RunReport) -> Table:
    table = Table(title="Edition groups", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("Group")
    table.add_column("Produced", justify="right")
    table.add_column("Requested", justify="right")
    table.add_column("Short", justify="right")
    table.add_column("Retries", justify="right")
    table.add_column("Status")

    colors = {
        GroupStatus.DONE: "green",
        GroupStatus.EXHAUSTED: "yellow",
        GroupStatus.CANCELLED: "red",
    }
    for g in report.groups:
        color = colors[g.status]
        table.add_row(
            str(g.group_index + 1),
            short_fingerprint(g.group_fingerprint),
            str(g.produced),
            str(g.requested),
            str(g.shortfall),
            str(g.retries),
            f"[{color}]{g.status.value}[/{color}]",
        )
    return table


def run(settings: Settings, config: EditionConfig) -> RunReport:
    """Build the catalog and generate every group with a live progress bar."""
    if settings.cleanup:
        cleanup_destination(settings.destination_dir)

    catalog = build_catalog(settings.layers_dir)
    console.print(
        f"  [green]✓[/green] Catalog: {len(catalog)} layer(s): "
        f"{', '.join(catalog.layer_names) or 'none'}"
    )

    progress = Progress(
        TextColumn("[cyan]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )
    tasks = [
        progress.add_task(f"Group {i + 1}", total=group.size)
        for i, group in enumerate(config.groups)
    ]

    def _on_progress(group_report: GroupReport, edition: EmittedEdition) -> None:
        progress.update(tasks[group_report.group_index], completed=group_report.produced)

    engine = EditionEngine(catalog, settings, config, on_progress=_on_progress)

    def _on_sigint(signum, frame) -> None:
        console.print("\n  [yellow]⚠ Interrupted, finishing current edition[/yellow]")
        engine.cancel()

    previous = signal.signal(signal.SIGINT, _on_sigint)
    try:
        with progress:
            return engine.run()
    finally:
        signal.signal(signal.SIGINT, previous)


# ── Main ──────────────────────────────────────────────────────────────────────

def main(argv: Optional[List[str]] = None) -> int:
    try:
        defaults = Settings.from_env()
    except LayergenError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return EXIT_ERROR

    args = parse_args(argv, defaults)
    setup_logging(args.verbose, console=console)
    t0 = time.time()

    console.print(Rule("[bold magenta]Layered Edition Generator[/bold magenta]"))
    try:
        settings = settings_from_args(args)
        console.print(
            f"  Layers: [bold]{settings.layers_dir}[/bold]  |  "
            f"Config: [bold]{settings.config_path}[/bold]  |  "
            f"Output: [bold]{settings.destination_dir}[/bold]"
        )
        config = load_edition_config(settings.config_path)
        settings.prepare_directories()
        report = run(settings, config)
    except LayergenError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return EXIT_ERROR

    console.print(summary_table(report))
    elapsed = time.time() - t0
    if report.complete:
        console.print(
            Panel(
                f"{report.produced} edition(s) generated in [bold]{elapsed:.1f}s[/bold]\n"
                f"Outputs saved to: [bold]{settings.destination_dir}[/bold]",
                title="[bold green]Generation Complete[/bold green]",
                border_style="green",
            )
        )
        return EXIT_OK

    console.print(
        Panel(
            f"{report.produced}/{report.requested} edition(s) generated in "
            f"[bold]{elapsed:.1f}s[/bold], [bold]{report.shortfall}[/bold] short\n"
            f"Outputs saved to: [bold]{settings.destination_dir}[/bold]",
            title="[bold yellow]Generation Incomplete[/bold yellow]",
            border_style="yellow",
        )
    )
    return EXIT_OK if args.allow_partial else EXIT_PARTIAL


if __name__ == "__main__":
    sys.exit(main())
