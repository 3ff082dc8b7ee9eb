"""Bindery CLI entry point."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from sqlmodel import Session

from bindery.config import DEFAULT_CONFIG_PATH, BinderyConfig, load_config, write_config
from bindery.database import get_engine, init_db, reset_database
from bindery.errors import BinderyError, SyncCancelled
from bindery.extractor import extract_file
from bindery.logging_config import setup_logging
from bindery.migrations import get_status, run_migrations, stamp_if_needed
from bindery.monitor import start_file_monitoring
from bindery.repository import Repository
from bindery.service import sync_library


__version__ = "0.1.0"

app = typer.Typer(add_completion=False, help="Bindery library catalog CLI")
logger = logging.getLogger("bindery")


def _ensure_config() -> BinderyConfig:
    try:
        return load_config()
    except FileNotFoundError:
        typer.echo("[ERROR] config.ini not found. Run: bindery init --library /path/to/library")
        raise typer.Exit(code=1)


def _prepare_database() -> None:
    init_db()
    stamp_if_needed()
    current, head = get_status()
    if current != head:
        logger.info(f"Migrating database {current} -> {head} ...")
        run_migrations(backup=True)


def _echo_stats(stats: dict) -> None:
    typer.echo(
        "✓ Sync completed: "
        f"{stats['added']} added, "
        f"{stats['moved']} moved, "
        f"{stats['removed']} removed, "
        f"{stats['skipped']} skipped, "
        f"{stats['scan_errors']} unreadable."
    )


@app.command()
def init(
    library: Path = typer.Option(..., "--library", help="Path to your library folder"),
    name: str = typer.Option("My Library", "--name", help="Library name"),
) -> None:
    """Initialize config.ini with default settings."""
    write_config(DEFAULT_CONFIG_PATH, library, name)
    typer.echo(f"[OK] Config created at {DEFAULT_CONFIG_PATH}")


@app.command()
def sync(
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Cancel the pass after N seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug detail to the console"),
) -> None:
    """Scan the library and reconcile the catalog."""
    setup_logging("DEBUG" if verbose else "INFO")

    config = _ensure_config()
    _prepare_database()
    try:
        stats = sync_library(config, timeout=timeout)
    except SyncCancelled as exc:
        typer.echo(f"[WARN] {exc}. Catalog unchanged.")
        raise typer.Exit(code=2)
    except BinderyError as exc:
        typer.echo(f"[ERROR] {exc}")
        raise typer.Exit(code=1)

    _echo_stats(stats)


@app.command()
def watch(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug detail to the console"),
) -> None:
    """Sync once, then keep the catalog in sync with filesystem events."""
    setup_logging("DEBUG" if verbose else "INFO")

    config = _ensure_config()
    _prepare_database()

    logger.info("Running initial library sync...")
    try:
        _echo_stats(sync_library(config))
    except BinderyError as exc:
        logger.error(f"✗ Initial sync failed: {exc}")

    if not config.monitoring.enabled:
        typer.echo("[INFO] Monitoring disabled in config.ini ([monitoring] enabled = false)")
        raise typer.Exit(code=0)

    monitor = start_file_monitoring(config)
    if monitor is None:
        raise typer.Exit(code=1)

    logger.info(f"Watching {config.library_path} (Ctrl+C to stop)")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        monitor.stop()


@app.command()
def stats() -> None:
    """Show catalog statistics."""
    config = _ensure_config()
    init_db()

    with Session(get_engine()) as session:
        repo = Repository(session)
        active = repo.get_all_items()
        every = repo.get_all_items(include_deleted=True)
        author_count = repo.count_authors()
        snapshot_size = len(repo.get_library_snapshot())

    by_type: dict[str, int] = {}
    for item in active:
        by_type[item.item_type] = by_type.get(item.item_type, 0) + 1

    typer.echo(f"Library Statistics ({config.library.name}):")
    typer.echo(f"  Tracked files: {snapshot_size}")
    typer.echo(f"  Catalog items: {len(active)} ({len(every) - len(active)} deleted)")
    for item_type, count in sorted(by_type.items()):
        typer.echo(f"    {item_type}: {count}")
    typer.echo(f"  Authors: {author_count}")


@app.command()
def inspect(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to read"),
) -> None:
    """Print the metadata Bindery would extract from one file."""
    try:
        md = extract_file(path)
    except Exception as exc:
        typer.echo(f"[ERROR] {path.name}: {exc}")
        raise typer.Exit(code=1)

    table = Table(title=path.name, show_header=False)
    for field, value in md.model_dump(mode="json", exclude_defaults=True).items():
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(field, str(value))
    Console().print(table)


@app.command()
def migrate(
    check: bool = typer.Option(False, "--check", help="Print status and exit (1 if not at head)"),
) -> None:
    """Run pending database migrations (or check status with --check)."""
    _ensure_config()
    init_db()

    current, head = get_status()

    if check:
        if current == head:
            typer.echo(f"[OK] Database at {head} (head).")
            raise typer.Exit(code=0)
        typer.echo(f"[WARN] Database behind — current: {current}, head: {head}")
        raise typer.Exit(code=1)

    if current == head:
        logger.info(f"Database already at {head} (head). Nothing to do.")
        raise typer.Exit(code=0)

    logger.info(f"Migrating database {current} -> {head} ...")
    run_migrations(backup=True)
    logger.info("Migration complete.")


@app.command()
def reset(
    confirm: bool = typer.Option(False, "--confirm", help="Confirm destructive reset"),
) -> None:
    """Reset the catalog database and resync the library from scratch."""
    if not confirm:
        typer.echo("[ERROR] This will delete your catalog database. Use --confirm.")
        raise typer.Exit(code=1)

    setup_logging()
    config = _ensure_config()

    reset_database()
    typer.echo("[INFO] Database reset. Resyncing library...")
    _echo_stats(sync_library(config))


if __name__ == "__main__":
    app()
