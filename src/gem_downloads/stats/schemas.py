"""Typed schemas used by the download stats views."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RollupRow:
    """One rollup bucket; gem and version fields are None at coarser levels."""

    occurred_at: datetime
    downloads: int
    rubygem_name: str | None = None
    version_number: str | None = None
    platform: str | None = None


@dataclass(frozen=True)
class VersionTotalRow:
    """Running download total for one version."""

    rubygem_name: str
    version_number: str
    platform: str
    downloads: int
