"""Rich rendering helpers for download statistics."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from ..catalog import DEFAULT_PLATFORM
from ..processing.rollups import MONTH, YEAR, RollupSpec
from .schemas import RollupRow, VersionTotalRow

TABLE_ROW_STYLES = ["white", "yellow"]


def render_rollup(spec: RollupSpec, rows: list[RollupRow], console: Console) -> None:
    """Render one rollup table with a grand total footer."""
    if not rows:
        console.print(f"No downloads recorded in {spec.table_name}.")
        return

    table = Table(
        title=f"Downloads {spec.granularity} ({spec.level})",
        show_footer=True,
        footer_style="bold",
        title_justify="left",
    )
    table.add_column("Period", footer="Grand Total", justify="left")
    if "rubygem_id" in spec.key_columns:
        table.add_column("Gem", justify="left")
    if "version_id" in spec.key_columns:
        table.add_column("Version", justify="left")
    table.add_column("Downloads", justify="right")

    total_downloads = 0
    for index, row in enumerate(rows):
        total_downloads += row.downloads
        cells = [_format_period(spec, row)]
        if "rubygem_id" in spec.key_columns:
            cells.append(row.rubygem_name or "")
        if "version_id" in spec.key_columns:
            cells.append(_format_version(row.version_number or "", row.platform))
        cells.append(f"{row.downloads:,}")
        table.add_row(*cells, style=TABLE_ROW_STYLES[index % len(TABLE_ROW_STYLES)])

    table.columns[-1].footer = f"{total_downloads:,}"
    console.print(table)


def render_version_totals(rows: list[VersionTotalRow], console: Console) -> None:
    """Render running totals per version."""
    if not rows:
        console.print("No version totals recorded.")
        return

    table = Table(title="Total Downloads by Version", show_footer=True, footer_style="bold", title_justify="left")
    table.add_column("Gem", footer="Grand Total", justify="left")
    table.add_column("Version", justify="left")
    table.add_column("Downloads", justify="right")

    total_downloads = 0
    for index, row in enumerate(rows):
        total_downloads += row.downloads
        table.add_row(
            row.rubygem_name,
            _format_version(row.version_number, row.platform),
            f"{row.downloads:,}",
            style=TABLE_ROW_STYLES[index % len(TABLE_ROW_STYLES)],
        )

    table.columns[-1].footer = f"{total_downloads:,}"
    console.print(table)


def _format_period(spec: RollupSpec, row: RollupRow) -> str:
    if spec.granularity == YEAR:
        return row.occurred_at.strftime("%Y")
    if spec.granularity == MONTH:
        return row.occurred_at.strftime("%Y-%m")
    return row.occurred_at.date().isoformat()


def _format_version(number: str, platform: str | None) -> str:
    if platform and platform != DEFAULT_PLATFORM:
        return f"{number} ({platform})"
    return number
