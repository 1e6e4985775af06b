"""Shared fixtures for gem download counting tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from gem_downloads.catalog import VersionCatalog
from gem_downloads.database import DownloadsDatabase
from gem_downloads.processing.schemas import VersionRef

SAMPLE_LOGS_DIR = Path(__file__).parent / "sample_logs"


@pytest.fixture
def sample_log_path() -> Path:
    return SAMPLE_LOGS_DIR / "fastly-fake.log"


@pytest.fixture
def sample_log_counts() -> dict[str, dict[datetime, int]]:
    return {
        "bundler-1.10.6": {
            datetime(2015, 11, 30, 21, 0, 0, tzinfo=UTC): 2,
        },
        "json-1.8.3-java": {
            datetime(2015, 11, 30, 21, 0, 0, tzinfo=UTC): 2,
        },
        "json-1.8.3": {
            datetime(2015, 11, 30, 21, 0, 0, tzinfo=UTC): 1,
        },
        "json-1.8.2": {
            datetime(2015, 11, 29, 21, 0, 0, tzinfo=UTC): 1,
            datetime(2015, 11, 30, 21, 0, 0, tzinfo=UTC): 1,
            datetime(2015, 11, 30, 21, 30, 0, tzinfo=UTC): 1,
            datetime(2015, 12, 30, 21, 0, 0, tzinfo=UTC): 1,
        },
        "no-such-gem-1.2.3": {
            datetime(2015, 11, 30, 21, 0, 0, tzinfo=UTC): 1,
        },
    }


@pytest.fixture
def database(tmp_path: Path) -> Iterator[DownloadsDatabase]:
    downloads_database = DownloadsDatabase(tmp_path / "downloads.duckdb")
    downloads_database.ensure_schema()
    try:
        yield downloads_database
    finally:
        downloads_database.close()


@pytest.fixture
def seeded_versions(database: DownloadsDatabase) -> dict[str, VersionRef]:
    """Catalog entries matching the sample log, except `no-such-gem`."""
    catalog = VersionCatalog(database)
    return {
        "bundler-1.10.6": catalog.register_version("bundler", "1.10.6"),
        "json-1.8.3-java": catalog.register_version("json", "1.8.3", "java"),
        "json-1.8.3": catalog.register_version("json", "1.8.3"),
        "json-1.8.2": catalog.register_version("json", "1.8.2"),
    }
