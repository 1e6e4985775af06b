"""Tests for the version catalog."""

from __future__ import annotations

from gem_downloads.catalog import VersionCatalog, build_full_name
from gem_downloads.database import DownloadsDatabase


def test_build_full_name_appends_non_ruby_platform() -> None:
    assert build_full_name("json", "1.8.3") == "json-1.8.3"
    assert build_full_name("json", "1.8.3", "ruby") == "json-1.8.3"
    assert build_full_name("json", "1.8.3", "java") == "json-1.8.3-java"


def test_register_and_resolve_versions(database: DownloadsDatabase) -> None:
    """Platform variants are distinct versions of the same gem."""
    catalog = VersionCatalog(database)

    plain = catalog.register_version("json", "1.8.3")
    java = catalog.register_version("json", "1.8.3", "java")

    assert plain.rubygem_id == java.rubygem_id
    assert plain.version_id != java.version_id
    assert catalog.resolve("json-1.8.3") == plain
    assert catalog.resolve("json-1.8.3-java") == java
    assert catalog.resolve("no-such-gem-1.2.3") is None
    assert catalog.get_rubygem_id("json") == plain.rubygem_id
    assert catalog.get_rubygem_id("no-such-gem") is None


def test_register_version_is_idempotent(database: DownloadsDatabase) -> None:
    catalog = VersionCatalog(database)

    first = catalog.register_version("bundler", "1.10.6")
    second = catalog.register_version("bundler", "1.10.6")

    assert first == second
    row = database.connection.execute("SELECT COUNT(*) FROM versions").fetchone()
    assert row is not None and row[0] == 1
