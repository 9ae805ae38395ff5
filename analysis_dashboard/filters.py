"""
Filtering and sorting for the package grid.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .exceptions import MalformedTimestamp
from .models import AnalysisRecord
from .time_utils import extract_time


logger = logging.getLogger(__name__)

ALL = "all"
SORT_OPTIONS = ("date-asc", "date-desc", "name")


def available_languages(records: Iterable[AnalysisRecord]) -> List[str]:
    return sorted({record.language for record in records})


def available_studies(records: Iterable[AnalysisRecord]) -> List[str]:
    return sorted({record.study_id for record in records})


def filter_records(
    records: Iterable[AnalysisRecord],
    language: Optional[str] = None,
    study_id: Optional[str] = None,
) -> List[AnalysisRecord]:
    """Keep records matching the language and study filters (``None``/"all" match everything)."""
    filtered = list(records)
    if language not in (None, ALL):
        filtered = [record for record in filtered if record.language == language]
    if study_id not in (None, ALL):
        filtered = [record for record in filtered if record.study_id == study_id]
    return filtered


def sort_records(records: Iterable[AnalysisRecord], sort_by: str = "date-asc") -> List[AnalysisRecord]:
    """Sort records by analysis date (ascending or descending) or package name.

    Records whose analysis date cannot be read are dropped from date sorts.
    """
    if sort_by not in SORT_OPTIONS:
        raise ValueError(f"Unsupported sort option: {sort_by}")

    if sort_by == "name":
        return sorted(records, key=lambda record: record.package_name)

    dated = []
    for record in records:
        try:
            dated.append((extract_time(record.analysis_date), record))
        except MalformedTimestamp as e:
            logger.warning("Dropping %s/%s from date sort: %s", record.package_name, record.language, e.reason)
    dated.sort(key=lambda item: item[0], reverse=(sort_by == "date-desc"))
    return [record for _, record in dated]


def browse(
    records: Iterable[AnalysisRecord],
    language: Optional[str] = None,
    study_id: Optional[str] = None,
    sort_by: str = "date-asc",
) -> List[AnalysisRecord]:
    """Filter then sort, leaving the input untouched."""
    return sort_records(filter_records(records, language=language, study_id=study_id), sort_by)
