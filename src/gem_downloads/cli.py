"""CLI entrypoints for gem download counting."""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path

import orjson
import typer
from rich.console import Console

from .catalog import VersionCatalog
from .database import DownloadsDatabase
from .paths import get_default_database_path
from .processing.errors import LogProcessingError
from .processing.job import LogProcessingJob
from .processing.rollups import DAY, GLOBAL_LEVEL, GRANULARITIES, LEVELS, find_rollup_spec
from .processing.schemas import LOCAL_BACKEND, S3_BACKEND, BatchSummary, JobOutcome, LogLocation
from .processing.storage import BlobReader, LocalBlobStore
from .stats.render import render_rollup, render_version_totals
from .stats.repository import StatsRepository, StatsRepositoryError
from .tickets import TicketRepository

LOGGER = logging.getLogger(__name__)

TYPER_APP = typer.Typer(help="Gem download counting from CDN access logs.")

DATABASE_PATH_OPTION = typer.Option(
    None,
    "--database-path",
    "-d",
    help="DuckDB file path for tickets, catalog, and download counters.",
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable info-level logging.")


@TYPER_APP.callback()
def main() -> None:
    """Root CLI callback."""


@TYPER_APP.command("register-version")
def register_version_command(
    name: str = typer.Argument(..., help="Gem name, e.g. `json`."),
    number: str = typer.Argument(..., help="Version number, e.g. `1.8.3`."),
    platform: str | None = typer.Option(None, "--platform", "-p", help="Platform, e.g. `java`."),
    database_path: Path | None = DATABASE_PATH_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Add a version to the catalog so its downloads are counted."""
    _configure_logging(verbose)
    database = _open_database(database_path)
    try:
        version = VersionCatalog(database).register_version(name, number, platform)
    finally:
        database.close()
    typer.echo(f"rubygem_id={version.rubygem_id}")
    typer.echo(f"version_id={version.version_id}")


@TYPER_APP.command("enqueue")
def enqueue_command(
    directory: str = typer.Option(..., "--directory", help="Bucket (s3) or directory (local) holding the log."),
    key: str = typer.Option(..., "--key", help="Object key or file name of the log."),
    backend: str = typer.Option(S3_BACKEND, "--backend", help=f"Log backend: {LOCAL_BACKEND} or {S3_BACKEND}."),
    database_path: Path | None = DATABASE_PATH_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Create a pending ticket for one log file."""
    _configure_logging(verbose)
    if backend not in (LOCAL_BACKEND, S3_BACKEND):
        raise typer.BadParameter(f"Unsupported backend: {backend}.")
    database = _open_database(database_path)
    try:
        ticket = TicketRepository(database).create(LogLocation(backend=backend, directory=directory, key=key))
    finally:
        database.close()
    typer.echo(f"ticket_id={ticket.id}")
    typer.echo(f"status={ticket.status}")


@TYPER_APP.command("process")
def process_command(
    ticket_id: int | None = typer.Argument(None, help="Ticket id to process."),
    directory: str | None = typer.Option(None, "--directory", help="Select the ticket by directory (with --key)."),
    key: str | None = typer.Option(None, "--key", help="Select the ticket by key (with --directory)."),
    log_root: Path | None = typer.Option(None, "--log-root", help="Base directory for relative local log paths."),
    json_output: bool = typer.Option(False, "--json", help="Print the outcome as JSON."),
    database_path: Path | None = DATABASE_PATH_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Process one log ticket."""
    _configure_logging(verbose)
    if ticket_id is None and (directory is None or key is None):
        raise typer.BadParameter("Pass a ticket id or both --directory and --key.")

    database = _open_database(database_path)
    try:
        job = LogProcessingJob(database, blob_reader=BlobReader(local_store=LocalBlobStore(log_root)))
        if ticket_id is not None:
            outcome = job.perform(ticket_id)
        else:
            assert directory is not None and key is not None
            outcome = job.perform_for_file(directory, key)
    except LogProcessingError as exc:
        typer.echo(f"error={exc}")
        raise typer.Exit(code=1) from exc
    finally:
        database.close()

    _emit_outcome(outcome, json_output)


@TYPER_APP.command("process-pending")
def process_pending_command(
    retry_failed: bool = typer.Option(False, "--retry-failed", help="Also retry tickets that previously failed."),
    log_root: Path | None = typer.Option(None, "--log-root", help="Base directory for relative local log paths."),
    database_path: Path | None = DATABASE_PATH_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Process every pending ticket."""
    _configure_logging(verbose)
    database = _open_database(database_path)
    try:
        job = LogProcessingJob(database, blob_reader=BlobReader(local_store=LocalBlobStore(log_root)))
        summary = job.perform_pending(include_failed=retry_failed)
    finally:
        database.close()

    _emit_summary(summary)
    if summary.failed_tickets:
        raise typer.Exit(code=1)


@TYPER_APP.command("stats")
def stats_command(
    granularity: str = typer.Option(DAY, "--granularity", "-g", help=f"One of {', '.join(GRANULARITIES)}."),
    level: str = typer.Option(GLOBAL_LEVEL, "--level", "-l", help=f"One of {', '.join(LEVELS)}."),
    gem: str | None = typer.Option(None, "--gem", help="Only show one gem."),
    database_path: Path | None = DATABASE_PATH_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Print one download rollup and the per-version totals."""
    _configure_logging(verbose)
    resolved_path = database_path or get_default_database_path()
    if not resolved_path.exists():
        raise typer.BadParameter(f"Database file not found: {resolved_path}")
    try:
        spec = find_rollup_spec(granularity.upper(), level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    console = Console()
    repository: StatsRepository | None = None
    try:
        repository = StatsRepository(resolved_path)
        rollup_rows = repository.fetch_rollup_rows(spec, rubygem_name=gem)
        totals = repository.fetch_version_totals(rubygem_name=gem)
    except StatsRepositoryError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        if repository is not None:
            repository.close()

    render_rollup(spec, rollup_rows, console)
    console.print("\n")
    render_version_totals(totals, console)


def _open_database(database_path: Path | None) -> DownloadsDatabase:
    """Open the DuckDB file (creating parents and schema as needed)."""
    resolved_path = database_path or get_default_database_path()
    resolved_path.parent.mkdir(parents=True, exist_ok=True)
    database = DownloadsDatabase(resolved_path)
    database.ensure_schema()
    return database


def _configure_logging(verbose: bool) -> None:
    """Initialize default logging for CLI usage."""
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="[%(asctime)s][%(levelname)s][%(name)s] %(message)s",
    )


def _emit_outcome(outcome: JobOutcome, json_output: bool) -> None:
    """Print one job outcome to stdout."""
    if json_output:
        typer.echo(orjson.dumps(asdict(outcome)).decode("utf-8"))
        return
    lines = [
        f"ticket_id={outcome.ticket_id}",
        f"status={outcome.status}",
        f"skipped={str(outcome.skipped).lower()}",
        f"processed_count={outcome.processed_count if outcome.processed_count is not None else ''}",
        f"matched_downloads={outcome.matched_downloads}",
        f"unmatched_downloads={outcome.unmatched_downloads}",
    ]
    for line in lines:
        typer.echo(line)


def _emit_summary(summary: BatchSummary) -> None:
    """Print batch counters to stdout."""
    lines = [
        f"tickets_scanned={summary.tickets_scanned}",
        f"tickets_processed={summary.tickets_processed}",
        f"tickets_skipped={summary.tickets_skipped}",
        f"tickets_failed={summary.tickets_failed}",
        f"download_events_total={summary.download_events_total}",
        f"downloads_matched={summary.downloads_matched}",
    ]
    for line in lines:
        typer.echo(line)

    for ticket_id in summary.failed_tickets:
        typer.echo(f"failed_ticket={ticket_id}")


def module_cli_entry_point() -> None:
    """Console script entrypoint."""
    TYPER_APP()
