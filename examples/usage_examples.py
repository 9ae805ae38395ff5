#!/usr/bin/env python3
"""
Example script showing how to use the analysis-dashboard package.
"""

from datetime import datetime, timezone
from pathlib import Path

from analysis_dashboard.analyzer import DashboardAnalyzer
from analysis_dashboard.filters import browse
from analysis_dashboard.models import AnalysisRecord
from analysis_dashboard.navigation import resolve_navigation
from analysis_dashboard.reporting import export_worksheets
from analysis_dashboard.sources import FirestoreAnalysisSource


SAMPLE = [
    AnalysisRecord("acme", "study-1", "intake", "en", "2024-05-01T09:00:00Z", fields_count=14,
                   long_title="Patient Intake"),
    AnalysisRecord("acme", "study-1", "intake", "en", "2024-05-03T09:00:00Z", fields_count=15,
                   long_title="Patient Intake"),
    AnalysisRecord("acme", "study-1", "intake", "fr", {"seconds": 1714640400, "nanoseconds": 0},
                   fields_count=15, short_name="Admission"),
    AnalysisRecord("acme", "study-1", "exit", "en", datetime(2024, 4, 20, tzinfo=timezone.utc),
                   fields_count=6),
]


def example_dashboard():
    """Example: Build the dashboard cards from a snapshot."""
    print("=" * 60)
    print("Example 1: Dashboard")
    print("=" * 60)

    view = DashboardAnalyzer(limit=6).analyze(SAMPLE)

    for group in view.groups:
        print(f"{group.package_name}: {', '.join(group.languages)} "
              f"(latest {group.latest_date.date()}, primary {group.primary_record.language})")
    print(f"Analyses: {view.stats.total_analyses}, packages: {view.stats.total_packages}")


def example_navigation():
    """Example: Where card and chip clicks lead."""
    print("\n" + "=" * 60)
    print("Example 2: Navigation")
    print("=" * 60)

    group = DashboardAnalyzer().analyze(SAMPLE).groups[0]
    print("Card click:", "/".join(resolve_navigation(group).key))
    print("FR chip click:", "/".join(resolve_navigation(group, "fr").key))


def example_package_grid():
    """Example: Filter and sort the package grid."""
    print("\n" + "=" * 60)
    print("Example 3: Package grid")
    print("=" * 60)

    for record in browse(SAMPLE, language="en", sort_by="date-desc"):
        print(record.package_name, record.language, record.analysis_date)


def example_firestore(project_id: str):
    """Example: Query Firestore and export worksheets."""
    source = FirestoreAnalysisSource(project_id)
    records = source.fetch_analyses(limit=10)
    view = DashboardAnalyzer().analyze(records, customers=source.list_customers())
    print(export_worksheets(view, Path("./output/example4"), project_id))


if __name__ == "__main__":
    example_dashboard()
    example_navigation()
    example_package_grid()
