"""DuckDB repository for download rollup and totals queries."""

from __future__ import annotations

from pathlib import Path

import duckdb

from ..database import DownloadsDatabase, parse_db_timestamp
from ..processing.rollups import RollupSpec
from .schemas import RollupRow, VersionTotalRow


class StatsRepositoryError(RuntimeError):
    """Raised when stats queries cannot be executed."""


class StatsRepository:
    """Read-only repository over the totals and rollup tables."""

    def __init__(self, database_path: Path) -> None:
        self._database = DownloadsDatabase(database_path, read_only=True)
        self._connection = self._database.connection

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._database.close()

    def fetch_rollup_rows(self, spec: RollupSpec, rubygem_name: str | None = None) -> list[RollupRow]:
        """Load one rollup table ordered by gem, version, and period."""
        select_columns = ["CAST(r.occurred_at AS VARCHAR)", "r.downloads"]
        joins: list[str] = []
        order_by: list[str] = []
        if "rubygem_id" in spec.key_columns:
            select_columns.append("g.name")
            joins.append("JOIN rubygems g ON g.id = r.rubygem_id")
            order_by.append("r.rubygem_id")
        if "version_id" in spec.key_columns:
            select_columns.extend(["v.number", "v.platform"])
            joins.append("JOIN versions v ON v.id = r.version_id")
            order_by.append("r.version_id")
        order_by.append("r.occurred_at")

        where_clause = ""
        params: list[str] = []
        if rubygem_name is not None:
            if "rubygem_id" not in spec.key_columns:
                raise StatsRepositoryError(f"{spec.table_name} is not broken down by gem.")
            where_clause = "WHERE g.name = ?"
            params.append(rubygem_name)

        query = (
            f"SELECT {', '.join(select_columns)}\n"
            f"FROM {spec.table_name} r\n"
            f"{' '.join(joins)}\n"
            f"{where_clause}\n"
            f"ORDER BY {', '.join(order_by)}"
        )
        try:
            rows = self._connection.execute(query, params).fetchall()
        except duckdb.Error as exc:
            raise StatsRepositoryError(
                f"Failed to query {spec.table_name}. Run `gem-download-counts process` first."
            ) from exc

        results: list[RollupRow] = []
        for row in rows:
            occurred_at = parse_db_timestamp(row[0])
            if occurred_at is None:
                continue
            results.append(
                RollupRow(
                    occurred_at=occurred_at,
                    downloads=int(row[1]),
                    rubygem_name=str(row[2]) if len(row) > 2 else None,
                    version_number=str(row[3]) if len(row) > 3 else None,
                    platform=str(row[4]) if len(row) > 4 else None,
                )
            )
        return results

    def fetch_version_totals(self, rubygem_name: str | None = None) -> list[VersionTotalRow]:
        """Load running totals per version, joined with catalog names."""
        params: list[str] = []
        where_clause = ""
        if rubygem_name is not None:
            where_clause = "WHERE g.name = ?"
            params.append(rubygem_name)
        try:
            rows = self._connection.execute(
                f"""
SELECT g.name, v.number, v.platform, d.downloads
FROM gem_downloads d
JOIN rubygems g ON g.id = d.rubygem_id
JOIN versions v ON v.id = d.version_id
{where_clause}
ORDER BY g.name, v.full_name
                """,
                params,
            ).fetchall()
        except duckdb.Error as exc:
            raise StatsRepositoryError(
                "Failed to query gem_downloads. Run `gem-download-counts process` first."
            ) from exc
        return [
            VersionTotalRow(
                rubygem_name=str(row[0]),
                version_number=str(row[1]),
                platform=str(row[2]),
                downloads=int(row[3]),
            )
            for row in rows
        ]
