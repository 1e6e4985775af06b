"""Time-bucketed rollup definitions: granularity x aggregation level."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable

from .schemas import VersionRef

DAY = "P1D"
MONTH = "P1M"
YEAR = "P1Y"
GRANULARITIES: tuple[str, ...] = (DAY, MONTH, YEAR)

VERSION_LEVEL = "version"
RUBYGEM_LEVEL = "all_versions"
GLOBAL_LEVEL = "all_gems"
LEVELS: tuple[str, ...] = (VERSION_LEVEL, RUBYGEM_LEVEL, GLOBAL_LEVEL)


def truncate_to_day(occurred_at: datetime) -> datetime:
    """Return the UTC midnight starting the day of `occurred_at`."""
    return _as_utc(occurred_at).replace(hour=0, minute=0, second=0, microsecond=0)


def truncate_to_month(occurred_at: datetime) -> datetime:
    """Return the UTC midnight starting the month of `occurred_at`."""
    return truncate_to_day(occurred_at).replace(day=1)


def truncate_to_year(occurred_at: datetime) -> datetime:
    """Return the UTC midnight starting the year of `occurred_at`."""
    return truncate_to_month(occurred_at).replace(month=1)


_TRUNCATORS: dict[str, Callable[[datetime], datetime]] = {
    DAY: truncate_to_day,
    MONTH: truncate_to_month,
    YEAR: truncate_to_year,
}

_KEY_COLUMNS: dict[str, tuple[str, ...]] = {
    VERSION_LEVEL: ("rubygem_id", "version_id", "occurred_at"),
    RUBYGEM_LEVEL: ("rubygem_id", "occurred_at"),
    GLOBAL_LEVEL: ("occurred_at",),
}

_TABLE_SUFFIXES: dict[str, str] = {
    VERSION_LEVEL: "",
    RUBYGEM_LEVEL: "_all_versions",
    GLOBAL_LEVEL: "_all_gems",
}


@dataclass(frozen=True)
class RollupSpec:
    """One rollup table: how to truncate timestamps and which identifiers key a row."""

    granularity: str
    level: str
    table_name: str
    truncate: Callable[[datetime], datetime]
    key_columns: tuple[str, ...]

    def key_for(self, version: VersionRef, occurred_at: datetime) -> tuple[int | datetime, ...]:
        """Build this rollup's row key, in `key_columns` order."""
        period_start = self.truncate(occurred_at)
        if self.level == VERSION_LEVEL:
            return (version.rubygem_id, version.version_id, period_start)
        if self.level == RUBYGEM_LEVEL:
            return (version.rubygem_id, period_start)
        return (period_start,)


def _build_rollup_specs() -> tuple[RollupSpec, ...]:
    return tuple(
        RollupSpec(
            granularity=granularity,
            level=level,
            table_name=f"downloads_{granularity.lower()}{_TABLE_SUFFIXES[level]}",
            truncate=_TRUNCATORS[granularity],
            key_columns=_KEY_COLUMNS[level],
        )
        for granularity in GRANULARITIES
        for level in LEVELS
    )


ROLLUP_SPECS: tuple[RollupSpec, ...] = _build_rollup_specs()


def find_rollup_spec(granularity: str, level: str) -> RollupSpec:
    """Look up the rollup for one (granularity, level) pair."""
    for spec in ROLLUP_SPECS:
        if spec.granularity == granularity and spec.level == level:
            return spec
    raise ValueError(f"Unknown rollup: granularity={granularity!r}, level={level!r}.")


def _as_utc(occurred_at: datetime) -> datetime:
    if occurred_at.tzinfo is None:
        return occurred_at.replace(tzinfo=UTC)
    return occurred_at.astimezone(UTC)
