"""Ticket orchestration: fetch, parse, apply, and transition one log ticket."""

from __future__ import annotations

import logging

from ..catalog import VersionCatalog
from ..database import DownloadsDatabase
from ..tickets import TicketRepository
from .applier import CountApplier
from .errors import TicketAlreadyProcessedError, TicketNotFoundError
from .parser import count_download_events, parse_download_counts
from .schemas import FAILED, PENDING, PROCESSED, BatchSummary, JobOutcome, LogTicket, TicketStatus
from .sinks import RollupStore, SearchIndex, TotalsStore
from .storage import BlobReader

LOGGER = logging.getLogger(__name__)


class LogProcessingJob:
    """Processes log tickets at most once, updating every sink or none of them."""

    def __init__(
        self,
        database: DownloadsDatabase,
        blob_reader: BlobReader | None = None,
        applier: CountApplier | None = None,
    ) -> None:
        self._database = database
        self._tickets = TicketRepository(database)
        self._blob_reader = blob_reader or BlobReader()
        self._applier = applier or CountApplier(
            resolve_version=VersionCatalog(database).resolve,
            totals=TotalsStore(database),
            rollups=RollupStore(database),
            search=SearchIndex(database),
        )

    def perform(self, ticket_id: int) -> JobOutcome:
        """Process one ticket by id."""
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"No log ticket with id={ticket_id}.")
        return self._process(ticket)

    def perform_for_file(self, directory: str, key: str) -> JobOutcome:
        """Process the ticket tracking one `(directory, key)` log file."""
        ticket = self._tickets.get_by_file(directory, key)
        if ticket is None:
            raise TicketNotFoundError(f"No log ticket for {directory}/{key}.")
        return self._process(ticket)

    def perform_pending(self, include_failed: bool = False) -> BatchSummary:
        """Process every pending (and optionally failed) ticket, collecting failures."""
        statuses: tuple[TicketStatus, ...] = (PENDING, FAILED) if include_failed else (PENDING,)
        summary = BatchSummary()
        for ticket in self._tickets.list_by_status(statuses):
            summary.tickets_scanned += 1
            try:
                outcome = self.perform(ticket.id)
            except Exception:
                # _process already persisted `failed` and logged the error.
                summary.tickets_failed += 1
                summary.failed_tickets.append(ticket.id)
                continue
            if outcome.skipped:
                summary.tickets_skipped += 1
                continue
            summary.tickets_processed += 1
            summary.download_events_total += outcome.processed_count or 0
            summary.downloads_matched += outcome.matched_downloads

        LOGGER.info(
            "Processed %d of %d tickets (%d failed, %d skipped).",
            summary.tickets_processed,
            summary.tickets_scanned,
            summary.tickets_failed,
            summary.tickets_skipped,
        )
        return summary

    def _process(self, ticket: LogTicket) -> JobOutcome:
        if ticket.status == PROCESSED:
            LOGGER.info("Ticket %d already processed; skipping.", ticket.id)
            return _skipped(ticket)

        location = ticket.location
        try:
            body = self._blob_reader.read(location)
            counts = parse_download_counts(body)
            processed_count = count_download_events(counts)
            with self._database.transaction():
                result = self._applier.apply(counts)
                if not self._tickets.mark_processed(ticket.id, processed_count):
                    raise TicketAlreadyProcessedError(f"Ticket {ticket.id} was processed concurrently.")
        except TicketAlreadyProcessedError:
            LOGGER.info("Ticket %d was processed by another run; changes rolled back.", ticket.id)
            refreshed = self._tickets.get(ticket.id)
            return _skipped(refreshed or ticket)
        except Exception as exc:
            _ = self._tickets.mark_failed(ticket.id)
            LOGGER.error("Failed to process ticket %d (%s/%s): %s", ticket.id, location.directory, location.key, exc)
            raise

        LOGGER.info(
            "Processed ticket %d (%s/%s): %d download events, %d matched.",
            ticket.id,
            location.directory,
            location.key,
            processed_count,
            result.matched_downloads,
        )
        return JobOutcome(
            ticket_id=ticket.id,
            status=PROCESSED,
            processed_count=processed_count,
            matched_downloads=result.matched_downloads,
            unmatched_downloads=result.unmatched_downloads,
        )


def _skipped(ticket: LogTicket) -> JobOutcome:
    return JobOutcome(
        ticket_id=ticket.id,
        status=ticket.status,
        processed_count=ticket.processed_count,
        skipped=True,
    )
