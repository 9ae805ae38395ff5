"""Shared fixtures for analysis dashboard tests."""

import pytest

from analysis_dashboard.models import AnalysisRecord


@pytest.fixture
def make_record():
    def _make(
        package="pkgA",
        language="en",
        analysis_date="2024-01-01T00:00:00Z",
        customer_id="c1",
        study_id="s1",
        **extra,
    ) -> AnalysisRecord:
        return AnalysisRecord(
            customer_id=customer_id,
            study_id=study_id,
            package_name=package,
            language=language,
            analysis_date=analysis_date,
            **extra,
        )

    return _make
