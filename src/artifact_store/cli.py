"""
Artifact Store CLI

Administrative verbs over a local artifact store:
- stats: Show object count, disk usage and cache occupancy
- list: List stored objects (optionally per owner or expired only)
- show: Show one object's metadata
- delete: Delete one object (idempotent)
- sweep-expired: Delete every expired object now
- reconcile: Remove content files that have no metadata sidecar
- serve: Run the scheduled expiry and orphan sweeps in the foreground
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

import typer

from .cli_context import CLIContext
from .operations import Operations, run_and_exit
from .operations.printers import (
    print_delete_summary, print_object, print_objects, print_stats, print_sweep_summary
)

app = typer.Typer(name="artifact-store", help="Artifact Store CLI")


def _configure_logging(verbose: bool, default_level: int = logging.WARNING) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else default_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _operations() -> Operations:
    context = CLIContext.from_env()
    return Operations(context.store)


@app.command()
def stats(
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    """Show storage statistics."""
    _configure_logging(verbose)

    def _stats() -> None:
        print_stats(_operations().stats())

    run_and_exit(_stats)


@app.command("list")
def list_objects(
    owner: Optional[str] = typer.Option(None, "--owner", help="Only objects with this owner tag"),
    expired: bool = typer.Option(False, "--expired", help="Only objects past their expiry"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    """List stored objects."""
    _configure_logging(verbose)

    def _list() -> None:
        ops = _operations()
        print_objects(ops.list(owner_tag=owner, expired_only=expired), now=ops.store.now())

    run_and_exit(_list)


@app.command()
def show(
    object_id: str = typer.Argument(..., help="Object id"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    """Show one object's metadata."""
    _configure_logging(verbose)

    def _show() -> None:
        ops = _operations()
        print_object(ops.show(object_id), now=ops.store.now())

    run_and_exit(_show)


@app.command()
def delete(
    object_id: str = typer.Argument(..., help="Object id"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    """Delete one object. Deleting an absent object succeeds."""
    _configure_logging(verbose)

    def _delete() -> None:
        clean = _operations().delete(object_id)
        print_delete_summary(object_id, clean)

    run_and_exit(_delete)


@app.command("sweep-expired")
def sweep_expired(
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    """Delete every expired object now."""
    _configure_logging(verbose)

    def _sweep() -> None:
        print_sweep_summary(_operations().sweep_expired())

    run_and_exit(_sweep)


@app.command()
def reconcile(
    min_age: Optional[float] = typer.Option(
        None, "--min-age", help="Keep orphans younger than this many seconds (default: configured grace)"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    """Remove content files that have no metadata sidecar."""
    _configure_logging(verbose)

    def _reconcile() -> None:
        if min_age is not None and min_age < 0:
            raise typer.BadParameter("--min-age must be non-negative")
        grace = timedelta(seconds=min_age) if min_age is not None else None
        print_sweep_summary(_operations().reconcile(min_age=grace))

    run_and_exit(_reconcile)


@app.command()
def serve(
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    """Run scheduled expiry and orphan sweeps until interrupted."""
    _configure_logging(verbose, default_level=logging.INFO)

    def _serve() -> None:
        ops = _operations()
        typer.echo(f"Serving sweeps for {ops.store.root} (Ctrl+C to stop)")
        ops.serve()

    run_and_exit(_serve)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
