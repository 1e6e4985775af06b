"""DuckDB sink stores: per-version totals, search signal, and time-bucketed rollups."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

import duckdb

from ..database import DownloadsDatabase
from .errors import SinkWriteError
from .rollups import RollupSpec
from .schemas import VersionRef


class TotalsStore:
    """Running, never time-bucketed download counter per version."""

    def __init__(self, database: DownloadsDatabase) -> None:
        self._connection = database.connection

    def increment(self, version: VersionRef, amount: int) -> None:
        """Add `amount` to the version counter, creating the row if absent."""
        try:
            _ = self._connection.execute(
                """
INSERT INTO gem_downloads (rubygem_id, version_id, downloads)
VALUES (?, ?, ?)
ON CONFLICT (rubygem_id, version_id) DO UPDATE SET downloads = downloads + EXCLUDED.downloads
                """,
                [version.rubygem_id, version.version_id, amount],
            )
        except duckdb.Error as exc:
            raise SinkWriteError(f"Failed to increment totals for {version}: {exc}") from exc

    def count_for_version(self, version: VersionRef) -> int:
        """Return the running total of one version."""
        row = self._connection.execute(
            "SELECT downloads FROM gem_downloads WHERE rubygem_id = ? AND version_id = ?",
            [version.rubygem_id, version.version_id],
        ).fetchone()
        return int(row[0]) if row is not None else 0

    def count_for_rubygem(self, rubygem_id: int) -> int:
        """Return the running total across all versions of one gem."""
        row = self._connection.execute(
            "SELECT COALESCE(SUM(downloads), 0) FROM gem_downloads WHERE rubygem_id = ?",
            [rubygem_id],
        ).fetchone()
        return int(row[0]) if row is not None else 0

    def total_count(self) -> int:
        """Return the running total across every gem."""
        row = self._connection.execute("SELECT COALESCE(SUM(downloads), 0) FROM gem_downloads").fetchone()
        return int(row[0]) if row is not None else 0


class SearchIndex:
    """Download-count signal per gem, recomputed from Totals."""

    def __init__(self, database: DownloadsDatabase) -> None:
        self._connection = database.connection

    def refresh_download_signal(self, rubygem_id: int) -> None:
        """Recompute the gem's search document download count from its version totals."""
        try:
            _ = self._connection.execute(
                """
INSERT INTO search_documents (rubygem_id, downloads, refreshed_at)
SELECT ?, COALESCE(SUM(downloads), 0), NOW()
FROM gem_downloads
WHERE rubygem_id = ?
ON CONFLICT (rubygem_id) DO UPDATE SET downloads = EXCLUDED.downloads, refreshed_at = EXCLUDED.refreshed_at
                """,
                [rubygem_id, rubygem_id],
            )
        except duckdb.Error as exc:
            raise SinkWriteError(f"Failed to refresh search signal for rubygem_id={rubygem_id}: {exc}") from exc

    def downloads_for(self, rubygem_id: int) -> int:
        """Return the indexed download count of one gem (0 when never indexed)."""
        row = self._connection.execute(
            "SELECT downloads FROM search_documents WHERE rubygem_id = ?",
            [rubygem_id],
        ).fetchone()
        return int(row[0]) if row is not None else 0


class RollupStore:
    """Upsert-increment access to the nine rollup tables."""

    def __init__(self, database: DownloadsDatabase) -> None:
        self._connection = database.connection

    def increment(self, spec: RollupSpec, key: tuple[int | datetime, ...], amount: int) -> None:
        """Add `amount` to one rollup bucket, creating the row if absent."""
        self.increment_many(spec, {key: amount})

    def increment_many(self, spec: RollupSpec, rows: Mapping[tuple[int | datetime, ...], int]) -> None:
        """Add each amount to its rollup bucket in one batch."""
        if not rows:
            return
        for key in rows:
            if len(key) != len(spec.key_columns):
                raise SinkWriteError(f"Key {key!r} does not match {spec.table_name} columns {spec.key_columns}.")
        columns = ", ".join((*spec.key_columns, "downloads"))
        placeholders = ", ".join("?" for _ in range(len(spec.key_columns) + 1))
        conflict_target = ", ".join(spec.key_columns)
        try:
            _ = self._connection.executemany(
                f"""
INSERT INTO {spec.table_name} ({columns})
VALUES ({placeholders})
ON CONFLICT ({conflict_target}) DO UPDATE SET downloads = downloads + EXCLUDED.downloads
                """,
                [[*key, amount] for key, amount in rows.items()],
            )
        except duckdb.Error as exc:
            raise SinkWriteError(f"Failed to increment rollup {spec.table_name}: {exc}") from exc
