"""
Rich Terminal Display Components.

Provides console output for:
- Local manifest tables
- Cycle summary reports
- Status messages
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.table import Table


console = Console()


def print_manifest(manifest: Any, title: str = "Local Manifest") -> None:
    """Print manifest entries as a table."""
    table = Table(title=title, border_style="blue")
    table.add_column("Name", style="cyan")
    table.add_column("Version", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Digest", style="dim")
    table.add_column("Modified")

    for entry in manifest:
        table.add_row(
            entry.name,
            str(entry.version),
            format_bytes(entry.size),
            entry.digest or "[dim]none[/dim]",
            format_timestamp(entry.timestamp),
        )

    console.print(table)


def print_summary(stats: dict[str, Any]) -> None:
    """Print a summary table after a sync cycle."""
    table = Table(title="Sync Summary", border_style="green")

    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Policy", stats.get("policy", "N/A"))
    table.add_row("Duration", f"{stats.get('duration', 0):.1f}s")
    table.add_row("Remote Entries", str(stats.get("remote_entries", 0)))
    table.add_row("Eligible", str(stats.get("eligible", 0)))
    table.add_row("Updated", ", ".join(stats.get("updated", [])) or "-")
    table.add_row("Already Current", ", ".join(stats.get("up_to_date", [])) or "-")
    table.add_row("Data Transferred", format_bytes(stats.get("bytes_downloaded", 0)))

    console.print(table)


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    value = float(size)
    for unit in ["B", "KB", "MB", "GB"]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def format_timestamp(epoch: int) -> str:
    """Format an epoch timestamp, or a dash when unset."""
    if not epoch:
        return "-"
    try:
        return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return str(epoch)


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red bold]Error:[/red bold] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green bold]✓[/green bold] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow bold]⚠[/yellow bold] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")
