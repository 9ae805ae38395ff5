"""
Core data models for the analysis dashboard.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, NamedTuple, Optional, Tuple


class VersionKey(NamedTuple):
    """Identity of one line of analyses across time."""

    customer_id: str
    study_id: str
    package_name: str
    language: str


class PackageKey(NamedTuple):
    """Identity of a package within a customer/study, independent of language."""

    customer_id: str
    study_id: str
    package_name: str


# Wire (camelCase) name -> field name.
_WIRE_FIELDS = {
    "customerId": "customer_id",
    "studyId": "study_id",
    "packageName": "package_name",
    "language": "language",
    "analysisDate": "analysis_date",
    "fieldsCount": "fields_count",
    "longTitle": "long_title",
    "shortName": "short_name",
    "firstFormOnEntryScreenshotUrl": "screenshot_url",
    "id": "id",
    "version": "version",
    "hasTestData": "has_test_data",
}

_REQUIRED_FIELDS = ("customer_id", "study_id", "package_name", "language")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def _to_count(value: Any) -> int:
    """Parse a display-only count; anything unreadable counts as 0."""
    if _is_missing(value) or value == "":
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number)


def _to_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if _is_missing(value):
        return False
    return bool(value)


@dataclass(frozen=True)
class AnalysisRecord:
    """A single survey analysis run as supplied by the record source.

    ``analysis_date`` is kept exactly as supplied; use
    ``time_utils.extract_time`` to compare it.
    """

    customer_id: str
    study_id: str
    package_name: str
    language: str
    analysis_date: Any
    fields_count: int = 0
    long_title: Optional[str] = None
    short_name: Optional[str] = None
    screenshot_url: Optional[str] = None
    id: Optional[str] = None
    version: Optional[str] = None
    has_test_data: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AnalysisRecord":
        """Build a record from a source document (camelCase or snake_case keys)."""
        values = {}
        for key, value in data.items():
            name = _WIRE_FIELDS.get(key, key)
            if name in cls.__dataclass_fields__:
                values[name] = value

        missing = [name for name in _REQUIRED_FIELDS if _is_missing(values.get(name))]
        if missing:
            raise KeyError(f"Analysis record missing required fields: {', '.join(missing)}")
        for name in _REQUIRED_FIELDS:
            values[name] = str(values[name])

        values.setdefault("analysis_date", None)
        values["fields_count"] = _to_count(values.get("fields_count"))
        values["has_test_data"] = _to_flag(values.get("has_test_data"))
        for name in ("long_title", "short_name", "screenshot_url", "id", "version"):
            if _is_missing(values.get(name)):
                values[name] = None
        return cls(**values)

    @property
    def version_key(self) -> VersionKey:
        return VersionKey(self.customer_id, self.study_id, self.package_name, self.language)

    @property
    def package_key(self) -> PackageKey:
        return PackageKey(self.customer_id, self.study_id, self.package_name)

    @property
    def display_title(self) -> Optional[str]:
        return self.long_title or self.short_name


@dataclass(frozen=True)
class PackageGroup:
    """All resolved language variants of one package.

    ``primary_record`` is the most recently analyzed variant and
    ``latest_date`` is its normalized analysis time.
    """

    package_key: PackageKey
    package_name: str
    language_variants: Tuple[AnalysisRecord, ...]
    latest_date: datetime
    primary_record: AnalysisRecord

    @property
    def languages(self) -> Tuple[str, ...]:
        return tuple(sorted(record.language for record in self.language_variants))

    @property
    def sorted_variants(self) -> Tuple[AnalysisRecord, ...]:
        return tuple(sorted(self.language_variants, key=lambda record: record.language))

    @property
    def display_title(self) -> Optional[str]:
        return self.primary_record.display_title

    @property
    def fields_count(self) -> int:
        return self.primary_record.fields_count

    @property
    def screenshot_url(self) -> Optional[str]:
        return self.primary_record.screenshot_url

    def variant(self, language: str) -> Optional[AnalysisRecord]:
        for record in self.language_variants:
            if record.language == language:
                return record
        return None


@dataclass(frozen=True)
class NavigationTarget:
    """Where a dashboard selection should navigate to."""

    customer_id: str
    study_id: str
    package_name: str
    language: Optional[str] = None

    @property
    def is_language_specific(self) -> bool:
        return self.language is not None

    @property
    def key(self) -> Tuple[str, ...]:
        """The 4-tuple (with language) or 3-tuple (package level) route key."""
        if self.language is None:
            return (self.customer_id, self.study_id, self.package_name)
        return (self.customer_id, self.study_id, self.package_name, self.language)


@dataclass(frozen=True)
class SkippedRecord:
    """A record left out of version resolution and why."""

    record: AnalysisRecord
    reason: str


@dataclass(frozen=True)
class DashboardStats:
    """Headline counts shown above the package cards."""

    total_customers: int
    total_analyses: int
    active_studies: int
    total_packages: int


@dataclass(frozen=True)
class DashboardView:
    """Ranked package groups plus statistics and diagnostics."""

    groups: Tuple[PackageGroup, ...]
    stats: DashboardStats
    skipped: Tuple[SkippedRecord, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.groups
