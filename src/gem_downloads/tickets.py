"""DuckDB repository for log ticket state."""

from __future__ import annotations

from typing import Any

from .database import DownloadsDatabase
from .processing.schemas import FAILED, PENDING, PROCESSED, LogLocation, LogTicket, TicketStatus

_TICKET_COLUMNS = """
SELECT
    id,
    backend,
    directory,
    key,
    status,
    processed_count
FROM log_tickets
"""


class TicketRepository:
    """Ticket lookup plus compare-and-set status transitions."""

    def __init__(self, database: DownloadsDatabase) -> None:
        self._connection = database.connection

    def create(self, location: LogLocation, status: TicketStatus = PENDING) -> LogTicket:
        """Create a ticket for one log file, returning the existing ticket when the file is already tracked."""
        _ = self._connection.execute(
            """
INSERT INTO log_tickets (backend, directory, key, status)
VALUES (?, ?, ?, ?)
ON CONFLICT (directory, key) DO NOTHING
            """,
            [location.backend, location.directory, location.key, status],
        )
        ticket = self.get_by_file(location.directory, location.key)
        assert ticket is not None
        return ticket

    def get(self, ticket_id: int) -> LogTicket | None:
        """Fetch one ticket by id."""
        row = self._connection.execute(f"{_TICKET_COLUMNS}WHERE id = ?", [ticket_id]).fetchone()
        return _row_to_ticket(row)

    def get_by_file(self, directory: str, key: str) -> LogTicket | None:
        """Fetch the ticket tracking one `(directory, key)` log file."""
        row = self._connection.execute(
            f"{_TICKET_COLUMNS}WHERE directory = ? AND key = ?",
            [directory, key],
        ).fetchone()
        return _row_to_ticket(row)

    def list_by_status(self, statuses: tuple[TicketStatus, ...]) -> list[LogTicket]:
        """List tickets in any of `statuses`, oldest first."""
        if not statuses:
            return []
        placeholders = ", ".join("?" for _ in statuses)
        rows = self._connection.execute(
            f"{_TICKET_COLUMNS}WHERE status IN ({placeholders}) ORDER BY id",
            list(statuses),
        ).fetchall()
        tickets: list[LogTicket] = []
        for row in rows:
            ticket = _row_to_ticket(row)
            if ticket is not None:
                tickets.append(ticket)
        return tickets

    def mark_processed(self, ticket_id: int, processed_count: int) -> bool:
        """Transition to processed unless already processed; return whether this call won."""
        rows = self._connection.execute(
            """
UPDATE log_tickets
SET status = ?, processed_count = ?, updated_at = NOW()
WHERE id = ? AND status <> ?
RETURNING id
            """,
            [PROCESSED, processed_count, ticket_id, PROCESSED],
        ).fetchall()
        return len(rows) == 1

    def mark_failed(self, ticket_id: int) -> bool:
        """Transition to failed unless already processed; return whether the row changed."""
        rows = self._connection.execute(
            """
UPDATE log_tickets
SET status = ?, updated_at = NOW()
WHERE id = ? AND status <> ?
RETURNING id
            """,
            [FAILED, ticket_id, PROCESSED],
        ).fetchall()
        return len(rows) == 1


def _row_to_ticket(row: tuple[Any, ...] | None) -> LogTicket | None:
    if row is None:
        return None
    return LogTicket(
        id=int(row[0]),
        location=LogLocation(backend=str(row[1]), directory=str(row[2]), key=str(row[3])),
        status=row[4],
        processed_count=int(row[5]) if row[5] is not None else None,
    )
