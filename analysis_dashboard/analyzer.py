"""
Core dashboard analyzer: version resolution, package grouping and ranking.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .exceptions import MalformedTimestamp
from .models import (
    AnalysisRecord,
    DashboardStats,
    DashboardView,
    PackageGroup,
    PackageKey,
    SkippedRecord,
    VersionKey,
)
from .time_utils import extract_time


logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 6


class DashboardAnalyzer:
    """Build the recent-analyses dashboard from a snapshot of analysis records."""

    def __init__(self, limit: int = DEFAULT_LIMIT):
        """Initialize dashboard analyzer.

        Args:
            limit: Maximum number of package groups kept after ranking
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        self.limit = limit

    def _timed(
        self,
        records: Iterable[AnalysisRecord],
        skipped: Optional[List[SkippedRecord]],
    ) -> Iterable[Tuple[AnalysisRecord, datetime]]:
        for record in records:
            try:
                yield record, extract_time(record.analysis_date)
            except MalformedTimestamp as e:
                logger.warning(
                    "Skipping analysis %s/%s/%s/%s: %s",
                    record.customer_id,
                    record.study_id,
                    record.package_name,
                    record.language,
                    e.reason,
                )
                if skipped is not None:
                    skipped.append(SkippedRecord(record=record, reason=e.message))

    def resolve_versions(
        self,
        records: Iterable[AnalysisRecord],
        skipped: Optional[List[SkippedRecord]] = None,
    ) -> Dict[VersionKey, AnalysisRecord]:
        """Keep only the most recent record per (customer, study, package, language).

        On equal analysis times the first record encountered is kept, so the
        result is stable for a given input order.

        Args:
            records: Raw analysis records in source order
            skipped: Optional list collecting records with malformed timestamps

        Returns:
            Mapping of version key to the latest record, in first-seen order
        """
        latest = self._latest_by_version(records, skipped)
        return {key: record for key, (record, _) in latest.items()}

    def _latest_by_version(
        self,
        records: Iterable[AnalysisRecord],
        skipped: Optional[List[SkippedRecord]],
    ) -> Dict[VersionKey, Tuple[AnalysisRecord, datetime]]:
        latest: Dict[VersionKey, Tuple[AnalysisRecord, datetime]] = {}
        for record, when in self._timed(records, skipped):
            key = record.version_key
            existing = latest.get(key)
            if existing is None or when > existing[1]:
                latest[key] = (record, when)
        return latest

    def group_packages(
        self,
        resolved: Dict[VersionKey, AnalysisRecord],
        skipped: Optional[List[SkippedRecord]] = None,
    ) -> Dict[PackageKey, PackageGroup]:
        """Collect resolved records into one group per (customer, study, package).

        The primary record only changes when a later variant is strictly
        newer, so the first-seen variant wins ties.
        """
        return self._build_groups(self._timed(resolved.values(), skipped))

    def _build_groups(
        self, timed: Iterable[Tuple[AnalysisRecord, datetime]]
    ) -> Dict[PackageKey, PackageGroup]:
        building: Dict[PackageKey, Tuple[List[AnalysisRecord], datetime, AnalysisRecord]] = {}
        for record, when in timed:
            key = record.package_key
            entry = building.get(key)
            if entry is None:
                building[key] = ([record], when, record)
                continue
            variants, latest_date, _ = entry
            variants.append(record)
            if when > latest_date:
                building[key] = (variants, when, record)

        return {
            key: PackageGroup(
                package_key=key,
                package_name=key.package_name,
                language_variants=tuple(variants),
                latest_date=latest_date,
                primary_record=primary,
            )
            for key, (variants, latest_date, primary) in building.items()
        }

    def rank_groups(self, groups: Dict[PackageKey, PackageGroup]) -> List[PackageGroup]:
        """Order groups newest first and keep the first ``limit``.

        ``sorted`` is stable, so exact ties keep mapping order.
        """
        ranked = sorted(groups.values(), key=lambda group: group.latest_date, reverse=True)
        return ranked[: self.limit]

    def compute_stats(
        self,
        records: Sequence[AnalysisRecord],
        customers: Optional[Sequence] = None,
    ) -> DashboardStats:
        """Headline counts over the raw (unresolved) records.

        Args:
            records: Raw analysis records
            customers: Optional customer list from the source; when omitted the
                distinct customer ids among the records are counted
        """
        if customers is not None:
            total_customers = len(customers)
        else:
            total_customers = len({record.customer_id for record in records})
        return DashboardStats(
            total_customers=total_customers,
            total_analyses=len(records),
            active_studies=len({record.study_id for record in records}),
            total_packages=len({record.package_name for record in records}),
        )

    def analyze(
        self,
        records: Iterable[AnalysisRecord],
        customers: Optional[Sequence] = None,
    ) -> DashboardView:
        """Run the full computation on a snapshot of records.

        Returns:
            DashboardView with ranked groups, statistics and skipped records
        """
        records = list(records)
        if not records:
            logger.info("No analyses supplied; dashboard is empty")

        skipped: List[SkippedRecord] = []
        # Times computed during resolution are reused for grouping.
        resolved = self._latest_by_version(records, skipped)
        groups = self._build_groups(resolved.values())
        ranked = self.rank_groups(groups)

        logger.debug(
            "Resolved %d records into %d versions and %d packages",
            len(records),
            len(resolved),
            len(groups),
        )
        if skipped:
            logger.warning("Skipped %d analyses with malformed timestamps", len(skipped))

        return DashboardView(
            groups=tuple(ranked),
            stats=self.compute_stats(records, customers),
            skipped=tuple(skipped),
        )


def build_dashboard(
    records: Iterable[AnalysisRecord],
    limit: int = DEFAULT_LIMIT,
    customers: Optional[Sequence] = None,
) -> DashboardView:
    """Convenience wrapper around ``DashboardAnalyzer.analyze``."""
    return DashboardAnalyzer(limit=limit).analyze(records, customers=customers)
