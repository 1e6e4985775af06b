"""Tests for rich rendering of download stats."""

from __future__ import annotations

from datetime import UTC, datetime

from rich.console import Console

from gem_downloads.processing.rollups import DAY, GLOBAL_LEVEL, VERSION_LEVEL, YEAR, find_rollup_spec
from gem_downloads.stats.render import render_rollup, render_version_totals
from gem_downloads.stats.schemas import RollupRow, VersionTotalRow


def test_render_rollup_prints_periods_and_grand_total() -> None:
    console = Console(record=True, width=120)
    rows = [
        RollupRow(occurred_at=datetime(2015, 11, 29, tzinfo=UTC), downloads=1),
        RollupRow(occurred_at=datetime(2015, 11, 30, tzinfo=UTC), downloads=1200),
    ]

    render_rollup(find_rollup_spec(DAY, GLOBAL_LEVEL), rows, console)
    output = console.export_text()

    assert "Downloads P1D (all_gems)" in output
    assert "2015-11-29" in output
    assert "1,200" in output
    assert "Grand Total" in output
    assert "1,201" in output


def test_render_rollup_shows_gem_and_platform_columns() -> None:
    """Version level rows show the gem and a non-default platform."""
    console = Console(record=True, width=120)
    rows = [
        RollupRow(
            occurred_at=datetime(2015, 1, 1, tzinfo=UTC),
            downloads=2,
            rubygem_name="json",
            version_number="1.8.3",
            platform="java",
        ),
        RollupRow(
            occurred_at=datetime(2015, 1, 1, tzinfo=UTC),
            downloads=1,
            rubygem_name="json",
            version_number="1.8.3",
            platform="ruby",
        ),
    ]

    render_rollup(find_rollup_spec(YEAR, VERSION_LEVEL), rows, console)
    output = console.export_text()

    assert "2015" in output
    assert "2015-01" not in output
    assert "1.8.3 (java)" in output
    assert "(ruby)" not in output


def test_render_handles_empty_results() -> None:
    console = Console(record=True, width=120)

    render_rollup(find_rollup_spec(DAY, GLOBAL_LEVEL), [], console)
    render_version_totals([], console)
    output = console.export_text()

    assert "No downloads recorded in downloads_p1d_all_gems." in output
    assert "No version totals recorded." in output


def test_render_version_totals() -> None:
    console = Console(record=True, width=120)
    rows = [
        VersionTotalRow(rubygem_name="bundler", version_number="1.10.6", platform="ruby", downloads=2),
        VersionTotalRow(rubygem_name="json", version_number="1.8.3", platform="java", downloads=2),
    ]

    render_version_totals(rows, console)
    output = console.export_text()

    assert "Total Downloads by Version" in output
    assert "bundler" in output
    assert "1.8.3 (java)" in output
    assert "Grand Total" in output
