"""
Preload Sync CLI - Command Line Interface.

Runs the resource sync agent in the foreground.

Commands:
    run     Sync on the configured interval until stopped
    once    Run a single sync cycle
    status  Show the local manifest
    config  Manage configuration
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from preload_sync import __version__
from preload_sync.config import PolicyKind, Settings, load_settings
from preload_sync.core.engine import CycleStats, ReconciliationEngine
from preload_sync.core.manifest import ManifestStore
from preload_sync.core.scheduler import Scheduler
from preload_sync.errors import SyncError
from preload_sync.utils.display import (
    print_error,
    print_info,
    print_manifest,
    print_success,
    print_summary,
    print_warning,
)
from preload_sync.utils.logger import setup_logging


# Create the Typer app
app = typer.Typer(
    name="preload-sync",
    help="Keep local resource files in sync with a published manifest.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

DEFAULT_CONFIG = Path("config.json")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]preload-sync[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Preload Sync - manifest-driven resource updater."""
    pass


def _config_option() -> Any:
    return typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (JSON or TOML).",
    )


# =============================================================================
# RUN Command
# =============================================================================
@app.command()
def run(
    config_file: Optional[Path] = _config_option(),
    policy: Optional[PolicyKind] = typer.Option(
        None,
        "--policy",
        "-p",
        help="Eligibility policy (overrides config).",
    ),
    server_url: Optional[str] = typer.Option(
        None,
        "--server-url",
        help="Remote manifest URL (overrides config).",
    ),
) -> None:
    """
    Sync resources on the configured interval until interrupted.

    Example:
        preload-sync run --config ./config.json
    """
    settings = _load_or_exit(config_file, policy=policy, server_url=server_url)
    _setup_logging(settings)

    asyncio.run(_serve(settings))


async def _serve(settings: Settings) -> None:
    async with ReconciliationEngine(settings) as engine:
        scheduler = Scheduler(settings.interval_seconds, engine.run_cycle)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Windows event loops lack signal handler support
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, scheduler.stop)

        await scheduler.run()


# =============================================================================
# ONCE Command
# =============================================================================
@app.command()
def once(
    config_file: Optional[Path] = _config_option(),
    policy: Optional[PolicyKind] = typer.Option(
        None,
        "--policy",
        "-p",
        help="Eligibility policy (overrides config).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Minimal output.",
    ),
) -> None:
    """Run a single sync cycle and exit."""
    settings = _load_or_exit(config_file, policy=policy)
    _setup_logging(settings, quiet=quiet)

    try:
        stats = asyncio.run(_run_once(settings))
    except SyncError as e:
        print_error(f"{type(e).__name__}: {e}")
        raise typer.Exit(1)

    if not quiet:
        console.print()
        print_summary({
            "policy": stats.policy,
            "duration": stats.duration_seconds,
            "remote_entries": stats.remote_entries,
            "eligible": stats.eligible,
            "updated": stats.updated,
            "up_to_date": stats.up_to_date,
            "bytes_downloaded": stats.bytes_downloaded,
        })
    for warning in stats.warnings:
        print_warning(warning)
    print_success("Sync cycle completed.")


async def _run_once(settings: Settings) -> CycleStats:
    async with ReconciliationEngine(settings) as engine:
        return await engine.run_cycle()


# =============================================================================
# STATUS Command
# =============================================================================
@app.command()
def status(
    config_file: Optional[Path] = _config_option(),
) -> None:
    """Show the local manifest."""
    settings = _load_settings_or_exit(config_file)
    store = ManifestStore()

    if not store.exists(settings.manifest_path):
        print_info(f"No local manifest at {settings.manifest_path}. Run a sync first.")
        raise typer.Exit(0)

    try:
        manifest = store.load(settings.manifest_path)
    except SyncError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_manifest(manifest, title=f"Local Manifest ({settings.manifest_path})")


# =============================================================================
# CONFIG Command
# =============================================================================
@app.command()
def config(
    config_file: Optional[Path] = _config_option(),
    show: bool = typer.Option(
        False,
        "--show",
        help="Show current configuration.",
    ),
    init: bool = typer.Option(
        False,
        "--init",
        help="Initialize example config file.",
    ),
    output: Path = typer.Option(
        DEFAULT_CONFIG,
        "--output",
        "-o",
        help="Output path for config file.",
    ),
) -> None:
    """Manage configuration."""
    if init:
        settings = Settings(
            server_url="https://updates.example.com/preload.json",
            policy=PolicyKind.DIFF,
        )
        settings.to_file(output)
        print_success(f"Generated config file: {output}")
        return

    if show:
        settings = _load_settings_or_exit(config_file)
        table = Table(title="Current Configuration", border_style="cyan")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")

        table.add_row("Server URL", settings.server_url or "[dim]not set[/dim]")
        table.add_row("Policy", settings.policy.value if settings.policy else "[dim]not set[/dim]")
        table.add_row("Poll Interval", f"{settings.interval_seconds:g}s")
        table.add_row("Current Version", str(settings.current_version))
        table.add_row("Resource Dir", str(settings.resource_dir))
        table.add_row("Manifest", str(settings.manifest_path))
        table.add_row("Checksum", settings.sync.checksum_algorithm)
        table.add_row("Max Retries", str(settings.sync.max_retries))

        console.print(table)
        return

    console.print("Use --show to view config or --init to create config file.")


# =============================================================================
# Helper Functions
# =============================================================================
def _load_settings_or_exit(config_file: Path | None, **overrides: object) -> Settings:
    """Load settings; a bad config is fatal."""
    if config_file is None and DEFAULT_CONFIG.exists():
        config_file = DEFAULT_CONFIG
    try:
        return load_settings(config_file, **overrides)
    except (ValueError, OSError) as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(1)


def _load_or_exit(config_file: Path | None, **overrides: object) -> Settings:
    """Load settings and require everything a sync cycle needs."""
    settings = _load_settings_or_exit(config_file, **overrides)
    errors = settings.validate_required()
    if errors:
        for err in errors:
            print_error(err)
        print_info("Use --help for configuration options.")
        raise typer.Exit(1)
    return settings


def _setup_logging(settings: Settings, quiet: bool = False) -> None:
    setup_logging(
        level="WARNING" if quiet else settings.logging.level,
        log_file=settings.logging.file,
        format_style=settings.logging.format,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


if __name__ == "__main__":
    app()
