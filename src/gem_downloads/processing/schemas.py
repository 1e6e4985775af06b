"""Typed schemas used by the download log processing pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

TicketStatus = Literal["pending", "processed", "failed"]

PENDING: TicketStatus = "pending"
PROCESSED: TicketStatus = "processed"
FAILED: TicketStatus = "failed"

LOCAL_BACKEND = "local"
S3_BACKEND = "s3"

# version full name -> exact event timestamp (UTC) -> download events
RawCount = dict[str, dict[datetime, int]]


@dataclass(frozen=True)
class LogLocation:
    """Where one log file lives: backend kind plus directory (bucket) and key."""

    backend: str
    directory: str
    key: str


@dataclass(frozen=True)
class LogTicket:
    """Unit-of-work record for exactly one log file."""

    id: int
    location: LogLocation
    status: TicketStatus
    processed_count: int | None


@dataclass(frozen=True, order=True)
class VersionRef:
    """Resolved catalog identity of one gem version."""

    rubygem_id: int
    version_id: int


@dataclass(frozen=True)
class ApplyResult:
    """What one CountApplier run wrote to the sinks."""

    matched_downloads: int
    unmatched_downloads: int
    versions_updated: int
    rubygems_updated: int
    unmatched_full_names: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class JobOutcome:
    """Result of one LogProcessingJob invocation for a ticket."""

    ticket_id: int
    status: TicketStatus
    processed_count: int | None
    matched_downloads: int = 0
    unmatched_downloads: int = 0
    skipped: bool = False


@dataclass
class BatchSummary:
    """Aggregate counters emitted when draining several tickets."""

    tickets_scanned: int = 0
    tickets_processed: int = 0
    tickets_skipped: int = 0
    tickets_failed: int = 0
    download_events_total: int = 0
    downloads_matched: int = 0
    failed_tickets: list[int] = field(default_factory=list)
