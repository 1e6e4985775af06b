"""Shared DuckDB handle and schema for gem download counting."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

import duckdb

from .processing.rollups import ROLLUP_SPECS, RollupSpec

_KEY_COLUMN_TYPES: dict[str, str] = {
    "rubygem_id": "BIGINT NOT NULL",
    "version_id": "BIGINT NOT NULL",
    "occurred_at": "TIMESTAMPTZ NOT NULL",
}


class DownloadsDatabase:
    """One DuckDB connection shared by the catalog, tickets, and sink stores."""

    def __init__(self, database_path: Path, read_only: bool = False) -> None:
        self._connection = duckdb.connect(str(database_path), read_only=read_only)
        # Rollup periods and CAST(... AS VARCHAR) output are UTC-based.
        _ = self._connection.execute("SET TimeZone = 'UTC'")

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """Underlying DuckDB connection."""
        return self._connection

    def close(self) -> None:
        """Close DuckDB connection."""
        self._connection.close()

    def ensure_schema(self) -> None:
        """Create catalog, ticket, totals, search, and rollup tables when missing."""
        for sequence_name in ("rubygem_ids", "version_ids", "log_ticket_ids"):
            _ = self._connection.execute(f"CREATE SEQUENCE IF NOT EXISTS {sequence_name} START 1")
        _ = self._connection.execute(
            """
CREATE TABLE IF NOT EXISTS rubygems (
    id BIGINT PRIMARY KEY DEFAULT nextval('rubygem_ids'),
    name VARCHAR NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
            """
        )
        _ = self._connection.execute(
            """
CREATE TABLE IF NOT EXISTS versions (
    id BIGINT PRIMARY KEY DEFAULT nextval('version_ids'),
    rubygem_id BIGINT NOT NULL,
    number VARCHAR NOT NULL,
    platform VARCHAR NOT NULL DEFAULT 'ruby',
    full_name VARCHAR NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
            """
        )
        _ = self._connection.execute(
            """
CREATE TABLE IF NOT EXISTS log_tickets (
    id BIGINT PRIMARY KEY DEFAULT nextval('log_ticket_ids'),
    backend VARCHAR NOT NULL,
    directory VARCHAR NOT NULL,
    key VARCHAR NOT NULL,
    status VARCHAR NOT NULL DEFAULT 'pending',
    processed_count BIGINT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (directory, key)
)
            """
        )
        _ = self._connection.execute(
            """
CREATE TABLE IF NOT EXISTS gem_downloads (
    rubygem_id BIGINT NOT NULL,
    version_id BIGINT NOT NULL,
    downloads BIGINT NOT NULL DEFAULT 0,
    PRIMARY KEY (rubygem_id, version_id)
)
            """
        )
        _ = self._connection.execute(
            """
CREATE TABLE IF NOT EXISTS search_documents (
    rubygem_id BIGINT PRIMARY KEY,
    downloads BIGINT NOT NULL DEFAULT 0,
    refreshed_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
            """
        )
        for spec in ROLLUP_SPECS:
            _ = self._connection.execute(_rollup_table_ddl(spec))

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Open a DB transaction scope."""
        _ = self._connection.execute("BEGIN TRANSACTION")
        try:
            yield
        except Exception:
            _ = self._connection.execute("ROLLBACK")
            raise
        else:
            _ = self._connection.execute("COMMIT")


def parse_db_timestamp(value: str | None) -> datetime | None:
    """Parse DuckDB TIMESTAMPTZ string output into an aware datetime."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"Expected timestamp string from DB, got {type(value).__name__}.")
    normalized = value.replace(" ", "T")
    if normalized.endswith("+00"):
        normalized = f"{normalized}:00"
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _rollup_table_ddl(spec: RollupSpec) -> str:
    column_lines = [f"    {column} {_KEY_COLUMN_TYPES[column]}," for column in spec.key_columns]
    key_list = ", ".join(spec.key_columns)
    columns = "\n".join(column_lines)
    return f"""
CREATE TABLE IF NOT EXISTS {spec.table_name} (
{columns}
    downloads BIGINT NOT NULL DEFAULT 0,
    PRIMARY KEY ({key_list})
)
    """
