"""DuckDB-backed catalog of known gems and versions."""

from __future__ import annotations

import logging

import duckdb

from .database import DownloadsDatabase
from .processing.errors import CatalogLookupError
from .processing.schemas import VersionRef

LOGGER = logging.getLogger(__name__)

DEFAULT_PLATFORM = "ruby"


def build_full_name(name: str, number: str, platform: str | None = None) -> str:
    """Return the canonical full name, e.g. `json-1.8.3` or `json-1.8.3-java`."""
    if platform and platform != DEFAULT_PLATFORM:
        return f"{name}-{number}-{platform}"
    return f"{name}-{number}"


class VersionCatalog:
    """Read-mostly lookup from version full names to catalog identifiers."""

    def __init__(self, database: DownloadsDatabase) -> None:
        self._connection = database.connection

    def resolve(self, full_name: str) -> VersionRef | None:
        """Resolve a version full name, returning None when the catalog has no such version."""
        try:
            row = self._connection.execute(
                """
SELECT rubygem_id, id
FROM versions
WHERE full_name = ?
                """,
                [full_name],
            ).fetchone()
        except duckdb.Error as exc:
            raise CatalogLookupError(f"Failed to resolve version {full_name!r}: {exc}") from exc
        if row is None:
            return None
        return VersionRef(rubygem_id=int(row[0]), version_id=int(row[1]))

    def register_rubygem(self, name: str) -> int:
        """Insert a gem if missing and return its id."""
        row = self._connection.execute("SELECT id FROM rubygems WHERE name = ?", [name]).fetchone()
        if row is not None:
            return int(row[0])
        row = self._connection.execute(
            """
INSERT INTO rubygems (name)
VALUES (?)
RETURNING id
            """,
            [name],
        ).fetchone()
        assert row is not None
        LOGGER.info("Registered rubygem %s (id=%s)", name, row[0])
        return int(row[0])

    def register_version(self, name: str, number: str, platform: str | None = None) -> VersionRef:
        """Insert a version (and its gem) if missing and return its catalog identity."""
        resolved_platform = platform or DEFAULT_PLATFORM
        full_name = build_full_name(name, number, resolved_platform)
        existing = self.resolve(full_name)
        if existing is not None:
            return existing

        rubygem_id = self.register_rubygem(name)
        row = self._connection.execute(
            """
INSERT INTO versions (rubygem_id, number, platform, full_name)
VALUES (?, ?, ?, ?)
RETURNING id
            """,
            [rubygem_id, number, resolved_platform, full_name],
        ).fetchone()
        assert row is not None
        LOGGER.info("Registered version %s (id=%s)", full_name, row[0])
        return VersionRef(rubygem_id=rubygem_id, version_id=int(row[0]))

    def get_rubygem_id(self, name: str) -> int | None:
        """Return a gem's id by name, or None."""
        row = self._connection.execute("SELECT id FROM rubygems WHERE name = ?", [name]).fetchone()
        if row is None:
            return None
        return int(row[0])
