"""
Human-readable output formatting.

Centralizes all CLI output formatting so commands stay thin.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..models import ObjectMetadata, StorageStats, SweepResult

_console = Console()


def print_stats(stats: StorageStats) -> None:
    """
    Print storage statistics.

    Args:
        stats: Usage snapshot from the store
    """
    typer.echo(f"Objects: {stats.object_count}")
    typer.echo(f"Total size: {_format_bytes(stats.total_bytes)}")
    typer.echo(f"Cached entries: {stats.cache_entry_count}")


def print_objects(records: List[ObjectMetadata], now: Optional[datetime] = None) -> None:
    """
    Print a table of stored objects.

    Args:
        records: Metadata records to display
        now: Reference time for the expiry column
    """
    if not records:
        typer.echo("No objects stored")
        return

    table = Table(title=f"Objects ({len(records)})")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Owner", style="yellow")
    table.add_column("Expires")

    for record in records:
        table.add_row(
            record.id,
            record.original_name,
            record.owner_tag or "-",
            _format_expiry(record, now),
        )
    _console.print(table)


def print_object(record: ObjectMetadata, now: Optional[datetime] = None) -> None:
    """
    Print one object's metadata.

    Args:
        record: Metadata record
        now: Reference time for the expiry line
    """
    typer.echo(f"Id: {record.id}")
    typer.echo(f"Name: {record.original_name}")
    typer.echo(f"Owner: {record.owner_tag or '-'}")
    typer.echo(f"Created: {record.created_at.isoformat()}")
    typer.echo(f"Expires: {record.expires_at.isoformat()} ({_format_expiry(record, now)})")
    typer.echo(f"Download: {record.download_path}")


def print_sweep_summary(result: SweepResult) -> None:
    """
    Print the outcome of an expiry or orphan sweep.

    Args:
        result: Sweep result
    """
    label = "Expiry sweep" if result.kind.value == "expiry" else "Orphan sweep"
    if result.is_noop:
        typer.echo(f"{label}: nothing to do")
    else:
        typer.echo(f"{label}: reclaimed {result.reclaimed} of {result.candidates}")
    if result.failed:
        typer.echo(f"Failed: {result.failed}")
    if result.temp_files_reclaimed:
        typer.echo(f"Temp files removed: {result.temp_files_reclaimed}")
    if result.dangling_sidecars:
        typer.echo(f"Dangling sidecars kept: {result.dangling_sidecars}")


def print_delete_summary(object_id: str, clean: bool) -> None:
    if clean:
        typer.echo(f"Deleted {object_id}")
    else:
        typer.echo(f"Deleted {object_id} with errors (see log)")


def _format_expiry(record: ObjectMetadata, now: Optional[datetime]) -> str:
    if record.is_expired(now):
        return "Expired"
    hours = int(record.time_to_expiry(now).total_seconds() // 3600)
    return f"{hours} hours"


def _format_bytes(size_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "42 KB")
    """
    if size_bytes == 0:
        return "0 B"
    elif size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
