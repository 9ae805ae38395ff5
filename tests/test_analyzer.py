"""Tests for version resolution, package grouping and ranking."""

import logging
from datetime import datetime, timezone

from analysis_dashboard.analyzer import DashboardAnalyzer, build_dashboard
from analysis_dashboard.time_utils import extract_time


class MillisTimestamp:
    def __init__(self, millis):
        self.millis = millis

    def toMillis(self):
        return self.millis


def _ms(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def test_resolve_keeps_one_record_per_version_key(make_record):
    records = [
        make_record("pkgA", "en", "2024-01-01T00:00:00Z"),
        make_record("pkgA", "en", "2024-01-03T00:00:00Z"),
        make_record("pkgA", "fr", "2024-01-02T00:00:00Z"),
        make_record("pkgA", "en", "2024-01-02T00:00:00Z"),
        make_record("pkgB", "en", "2024-01-01T00:00:00Z", study_id="s2"),
    ]

    resolved = DashboardAnalyzer().resolve_versions(records)

    assert len(resolved) == 3
    assert len({record.version_key for record in resolved.values()}) == 3
    assert resolved[("c1", "s1", "pkgA", "en")].analysis_date == "2024-01-03T00:00:00Z"


def test_latest_wins_regardless_of_input_order(make_record):
    older = make_record("pkgA", "en", "2024-01-01T00:00:00Z", id="old")
    newer = make_record("pkgA", "en", "2024-02-01T00:00:00Z", id="new")
    analyzer = DashboardAnalyzer()

    for records in ([older, newer], [newer, older]):
        resolved = analyzer.resolve_versions(records)
        assert resolved[older.version_key].id == "new"


def test_equal_times_keep_first_encountered(make_record):
    first = make_record("pkgA", "en", "2024-01-01T00:00:00Z", id="first")
    second = make_record("pkgA", "en", MillisTimestamp(_ms(2024, 1, 1)), id="second")
    analyzer = DashboardAnalyzer()

    for _ in range(3):
        resolved = analyzer.resolve_versions([first, second])
        assert resolved[first.version_key].id == "first"
    assert analyzer.resolve_versions([second, first])[first.version_key].id == "second"


def test_mixed_representations_compare_by_instant(make_record):
    structured_newer = make_record("pkgA", "en", MillisTimestamp(_ms(2024, 5, 1)), id="structured")
    string_older = make_record("pkgA", "en", "2024-04-30T23:59:59Z", id="string")

    resolved = DashboardAnalyzer().resolve_versions([string_older, structured_newer])

    assert resolved[string_older.version_key].id == "structured"


def test_malformed_timestamp_is_skipped_with_warning(make_record, caplog):
    good = make_record("pkgA", "en", "2024-01-01T00:00:00Z")
    bad = make_record("pkgA", "fr", "yesterday-ish")
    skipped = []

    with caplog.at_level(logging.WARNING, logger="analysis_dashboard.analyzer"):
        resolved = DashboardAnalyzer().resolve_versions([bad, good], skipped)

    assert list(resolved.values()) == [good]
    assert [item.record for item in skipped] == [bad]
    assert "Skipping analysis" in caplog.text


def test_groups_collect_every_language(make_record):
    records = [
        make_record("pkgA", "en", "2024-01-01T00:00:00Z"),
        make_record("pkgA", "fr", "2024-01-05T00:00:00Z"),
        make_record("pkgA", "de", "2024-01-03T00:00:00Z"),
        make_record("pkgA", "fr", "2024-01-02T00:00:00Z"),
        make_record("pkgB", "en", "2024-01-04T00:00:00Z"),
    ]
    analyzer = DashboardAnalyzer()

    groups = analyzer.group_packages(analyzer.resolve_versions(records))

    group = groups[("c1", "s1", "pkgA")]
    assert set(group.languages) == {"en", "fr", "de"}
    assert group.languages == ("de", "en", "fr")
    assert len(group.language_variants) == 3
    assert group.primary_record.language == "fr"
    assert group.latest_date == datetime(2024, 1, 5, tzinfo=timezone.utc)


def test_primary_matches_latest_date(make_record):
    records = [
        make_record("pkgA", "en", "2024-01-01T00:00:00Z"),
        make_record("pkgA", "fr", MillisTimestamp(_ms(2024, 3, 1))),
        make_record("pkgA", "it", {"seconds": _ms(2024, 2, 1) // 1000, "nanoseconds": 0}),
    ]
    analyzer = DashboardAnalyzer()

    for group in analyzer.group_packages(analyzer.resolve_versions(records)).values():
        latest = max(extract_time(v.analysis_date) for v in group.language_variants)
        assert group.latest_date == latest
        assert extract_time(group.primary_record.analysis_date) == latest
        assert group.primary_record in group.language_variants


def test_group_tie_keeps_first_seen_primary(make_record):
    records = [
        make_record("pkgA", "en", "2024-01-01T00:00:00Z"),
        make_record("pkgA", "fr", "2024-01-01T00:00:00Z"),
    ]
    analyzer = DashboardAnalyzer()

    group = analyzer.group_packages(analyzer.resolve_versions(records))[("c1", "s1", "pkgA")]

    assert group.primary_record.language == "en"


def test_same_package_name_in_other_study_is_separate_group(make_record):
    records = [
        make_record("pkgA", "en", "2024-01-01T00:00:00Z", study_id="s1"),
        make_record("pkgA", "en", "2024-01-02T00:00:00Z", study_id="s2"),
    ]

    view = build_dashboard(records)

    assert [group.package_key.study_id for group in view.groups] == ["s2", "s1"]


def test_ranking_is_newest_first_and_capped(make_record):
    records = [make_record(f"pkg{i}", "en", f"2024-01-{i + 1:02d}T00:00:00Z") for i in range(8)]

    view = DashboardAnalyzer().analyze(records)

    assert len(view.groups) == 6
    dates = [group.latest_date for group in view.groups]
    assert dates == sorted(dates, reverse=True)
    assert view.groups[0].package_name == "pkg7"
    assert view.groups[-1].package_name == "pkg2"


def test_ranking_keeps_all_when_fewer_than_limit(make_record):
    records = [make_record(f"pkg{i}", "en", f"2024-01-{i + 1:02d}T00:00:00Z") for i in range(3)]

    view = build_dashboard(records, limit=6)

    assert len(view.groups) == 3


def test_ranking_ties_keep_first_appearance(make_record):
    records = [
        make_record("pkgB", "en", "2024-01-01T00:00:00Z"),
        make_record("pkgA", "en", "2024-01-01T00:00:00Z"),
        make_record("pkgC", "en", "2024-01-02T00:00:00Z"),
    ]

    view = build_dashboard(records)

    assert [group.package_name for group in view.groups] == ["pkgC", "pkgB", "pkgA"]


def test_empty_input_produces_empty_view():
    view = DashboardAnalyzer().analyze([])

    assert view.is_empty
    assert view.skipped == ()
    assert view.stats.total_analyses == 0
    assert view.stats.total_customers == 0


def test_analyze_reports_skipped_and_stats(make_record):
    records = [
        make_record("pkgA", "en", "2024-01-01T00:00:00Z", customer_id="c1", study_id="s1"),
        make_record("pkgA", "en", "2024-01-02T00:00:00Z", customer_id="c1", study_id="s1"),
        make_record("pkgB", "fr", None, customer_id="c2", study_id="s2"),
    ]

    view = DashboardAnalyzer().analyze(records)

    assert len(view.groups) == 1
    assert len(view.skipped) == 1
    assert view.skipped[0].record.package_name == "pkgB"
    assert view.stats.total_analyses == 3
    assert view.stats.total_customers == 2
    assert view.stats.active_studies == 2
    assert view.stats.total_packages == 2


def test_customer_list_overrides_customer_count(make_record):
    view = DashboardAnalyzer().analyze([make_record()], customers=[{"id": "a"}, {"id": "b"}, {"id": "c"}])

    assert view.stats.total_customers == 3


def test_analyze_is_repeatable_and_does_not_mutate_input(make_record):
    records = [
        make_record("pkgA", "en", "2024-01-01T00:00:00Z"),
        make_record("pkgB", "en", "2024-01-01T00:00:00Z"),
        make_record("pkgA", "fr", "2024-01-03T00:00:00Z"),
    ]
    snapshot = list(records)
    analyzer = DashboardAnalyzer()

    first = analyzer.analyze(records)
    second = analyzer.analyze(records)

    assert records == snapshot
    assert first == second


class FailingTimestamp:
    def toMillis(self):
        raise ValueError("corrupt timestamp")


def test_failing_timestamp_accessor_skips_only_that_record(make_record):
    good = make_record("pkgA", "en", "2024-01-01T00:00:00Z")
    other = make_record("pkgB", "en", "2024-01-02T00:00:00Z")
    bad = make_record("pkgC", "en", FailingTimestamp())

    view = build_dashboard([good, bad, other])

    assert [group.package_name for group in view.groups] == ["pkgB", "pkgA"]
    assert [item.record for item in view.skipped] == [bad]
    assert "toMillis() failed" in view.skipped[0].reason


def test_analyze_normalizes_each_record_once(make_record, monkeypatch):
    from analysis_dashboard import analyzer as analyzer_module

    calls = []

    def counting_extract_time(value):
        calls.append(value)
        return extract_time(value)

    monkeypatch.setattr(analyzer_module, "extract_time", counting_extract_time)
    records = [
        make_record("pkgA", "en", "2024-01-01T00:00:00Z"),
        make_record("pkgA", "fr", "2024-01-02T00:00:00Z"),
        make_record("pkgB", "en", "2024-01-03T00:00:00Z"),
    ]

    view = DashboardAnalyzer().analyze(records)

    assert len(calls) == 3
    assert [group.package_name for group in view.groups] == ["pkgB", "pkgA"]
