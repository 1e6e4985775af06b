"""Apply parsed download counts to the totals, search, and rollup sinks."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Callable

from .rollups import ROLLUP_SPECS, RollupSpec
from .schemas import ApplyResult, RawCount, VersionRef
from .sinks import RollupStore, SearchIndex, TotalsStore

LOGGER = logging.getLogger(__name__)


class CountApplier:
    """Resolves version full names and fans counts out to every sink.

    All increments are buffered in memory first so each version total and each
    rollup bucket is written exactly once per parse result. Callers that need
    all-or-nothing semantics wrap `apply` in a database transaction.
    """

    def __init__(
        self,
        resolve_version: Callable[[str], VersionRef | None],
        totals: TotalsStore,
        rollups: RollupStore,
        search: SearchIndex,
        rollup_specs: tuple[RollupSpec, ...] = ROLLUP_SPECS,
    ) -> None:
        self._resolve_version = resolve_version
        self._totals = totals
        self._rollups = rollups
        self._search = search
        self._rollup_specs = rollup_specs

    def apply(self, counts: RawCount) -> ApplyResult:
        """Write one parse result to the sinks and return what was matched."""
        version_totals: dict[VersionRef, int] = defaultdict(int)
        rollup_rows: dict[RollupSpec, dict[tuple[int | datetime, ...], int]] = {
            spec: defaultdict(int) for spec in self._rollup_specs
        }
        unmatched_downloads = 0
        unmatched_full_names: list[str] = []

        for full_name, by_timestamp in counts.items():
            version = self._resolve_version(full_name)
            if version is None:
                unmatched_downloads += sum(by_timestamp.values())
                unmatched_full_names.append(full_name)
                continue
            for occurred_at, downloads in by_timestamp.items():
                version_totals[version] += downloads
                for spec in self._rollup_specs:
                    rollup_rows[spec][spec.key_for(version, occurred_at)] += downloads

        if unmatched_full_names:
            LOGGER.warning(
                "Skipped %d downloads for %d unknown versions: %s",
                unmatched_downloads,
                len(unmatched_full_names),
                ", ".join(sorted(unmatched_full_names)),
            )

        for version in sorted(version_totals):
            self._totals.increment(version, version_totals[version])
        for spec in self._rollup_specs:
            self._rollups.increment_many(spec, rollup_rows[spec])
        rubygem_ids = sorted({version.rubygem_id for version in version_totals})
        for rubygem_id in rubygem_ids:
            self._search.refresh_download_signal(rubygem_id)

        return ApplyResult(
            matched_downloads=sum(version_totals.values()),
            unmatched_downloads=unmatched_downloads,
            versions_updated=len(version_totals),
            rubygems_updated=len(rubygem_ids),
            unmatched_full_names=sorted(unmatched_full_names),
        )
