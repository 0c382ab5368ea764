"""Tests for the supervision hours and billing aggregator.

These run without an application: the aggregator only sees
``SessionRecord`` snapshots.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from training_portal.services.supervision_hours import (
    DEFAULT_HOURLY_RATE,
    CountsForHours,
    SessionRecord,
    estimate_amount,
    for_intern,
    for_interns,
    for_supervisor,
    hours_by_intern,
    minutes_to_hours,
    month_key,
    monthly_invoice_previews,
    normalize_minutes,
    partition_by_counted,
    partition_by_status,
    select,
    summarize_hours,
)

UTC = timezone.utc
RATE = 100.0


def record(id=1, intern_id=1, minutes=60, status="submitted", counts=None,
           occurred_at="2024-03-15T10:00:00Z", supervisor_id=None) -> SessionRecord:
    return SessionRecord.from_row({
        "id": id,
        "intern_id": intern_id,
        "supervisor_id": supervisor_id,
        "duration_minutes": minutes,
        "status": status,
        "counts_for_hours": counts,
        "occurred_at": occurred_at,
    })


class TestNormalizer:
    @pytest.mark.parametrize("value", [None, "", "abc", True, False, float("nan"), float("inf"), object()])
    def test_missing_or_non_numeric_is_zero(self, value) -> None:
        assert normalize_minutes(value) == 0
        assert minutes_to_hours(value) == 0

    def test_numbers_pass_through(self) -> None:
        assert normalize_minutes(90) == 90
        assert normalize_minutes(45.5) == 45.5
        assert normalize_minutes(Decimal("30")) == 30
        assert normalize_minutes(" 75 ") == 75

    def test_negative_minutes_are_not_clamped(self) -> None:
        assert normalize_minutes(-30) == -30
        assert record(minutes=-30).hours == -0.5

    def test_hours_are_not_rounded(self) -> None:
        assert minutes_to_hours(50) == pytest.approx(50 / 60)


class TestCountsForHours:
    def test_tri_state(self) -> None:
        assert CountsForHours.from_flag(True) is CountsForHours.COUNTS
        assert CountsForHours.from_flag(False) is CountsForHours.EXCLUDED
        assert CountsForHours.from_flag(None) is CountsForHours.UNSPECIFIED

    def test_unspecified_counts(self) -> None:
        assert CountsForHours.UNSPECIFIED.counts
        assert CountsForHours.COUNTS.counts
        assert not CountsForHours.EXCLUDED.counts


class TestPartitions:
    def test_null_flag_is_counted(self) -> None:
        partition = partition_by_counted([record(counts=None)])
        assert len(partition.included) == 1
        assert partition.excluded == ()

    def test_excluded_regardless_of_status(self) -> None:
        sessions = [
            record(id=1, counts=False, status="submitted"),
            record(id=2, counts=False, status="draft"),
            record(id=3, counts=True, status="draft", minutes=30),
        ]
        partition = partition_by_counted(sessions)
        assert [s.id for s in partition.included] == [3]
        assert partition.included_minutes == 30
        assert partition.excluded_minutes == 120

    def test_status_axis_is_independent(self) -> None:
        sessions = [
            record(id=1, status="submitted", counts=False),
            record(id=2, status="draft"),
            record(id=3, status="archived"),
        ]
        partition = partition_by_status(sessions)
        assert [s.id for s in partition.included] == [1]
        assert [s.id for s in partition.excluded] == [2]

    def test_status_is_case_insensitive(self) -> None:
        assert record(status="Submitted").is_submitted


class TestSummaries:
    def test_single_submitted_session(self) -> None:
        summary = summarize_hours([record(minutes=90, counts=None)])
        assert summary.submitted_hours == 1.5
        assert summary.draft_hours == 0
        assert summary.total_hours == 1.5
        assert summary.counted_hours == 1.5

    def test_submitted_and_draft_in_same_month(self) -> None:
        sessions = [
            record(id=1, minutes=60, status="submitted"),
            record(id=2, minutes=30, status="draft"),
        ]
        summary = summarize_hours(sessions)
        assert summary.submitted_hours == 1.0
        assert summary.draft_hours == 0.5
        assert summary.total_hours == 1.5
        assert summary.session_count == 2

    def test_undated_session_still_counts_toward_hours(self) -> None:
        summary = summarize_hours([record(occurred_at=None, minutes=60)])
        assert summary.submitted_hours == 1.0

    def test_predicate_filters(self) -> None:
        sessions = [record(id=1, intern_id=1), record(id=2, intern_id=2, supervisor_id=9)]
        assert summarize_hours(sessions, for_intern(2)).session_count == 1
        assert summarize_hours(sessions, for_supervisor(9)).total_hours == 1.0
        assert len(select(sessions, for_interns([1, 2]))) == 2

    def test_hours_by_intern_skips_excluded_sessions(self) -> None:
        sessions = [
            record(id=1, intern_id=1, minutes=60),
            record(id=2, intern_id=1, minutes=30, status="draft"),
            record(id=3, intern_id=2, minutes=45, counts=False),
            record(id=4, intern_id=None, minutes=15),
        ]
        assert hours_by_intern(sessions) == {1: 1.5}

    def test_hours_by_intern_with_custom_predicate(self) -> None:
        sessions = [record(id=1, intern_id=1, minutes=60), record(id=2, intern_id=2, minutes=45, counts=False)]
        assert hours_by_intern(sessions, lambda s: True) == {1: 1.0, 2: 0.75}


class TestInvoicePreviews:
    def test_single_session_bucket(self) -> None:
        previews = monthly_invoice_previews([record(minutes=90)], rate=RATE, tz=UTC)
        assert len(previews) == 1
        preview = previews[0]
        assert preview.year_month_key == "2024-03"
        assert preview.session_count == 1
        assert preview.total_minutes == 90
        assert preview.total_hours == 1.5
        assert preview.estimated_amount == 1.5 * RATE

    def test_drafts_are_not_billed(self) -> None:
        sessions = [
            record(id=1, minutes=60, status="submitted"),
            record(id=2, minutes=30, status="draft", counts=True),
        ]
        previews = monthly_invoice_previews(sessions, rate=RATE, tz=UTC)
        assert [(p.year_month_key, p.total_minutes) for p in previews] == [("2024-03", 60)]

    def test_undated_or_unparseable_sessions_are_excluded(self) -> None:
        sessions = [record(id=1, occurred_at=None), record(id=2, occurred_at="not a date")]
        assert monthly_invoice_previews(sessions, tz=UTC) == []

    def test_sorted_most_recent_first_with_unique_keys(self) -> None:
        sessions = [
            record(id=1, occurred_at="2023-12-02T09:00:00Z"),
            record(id=2, occurred_at="2024-02-10T09:00:00Z"),
            record(id=3, occurred_at="2024-02-20T09:00:00Z"),
            record(id=4, occurred_at="2024-01-05T09:00:00Z"),
        ]
        previews = monthly_invoice_previews(sessions, tz=UTC)
        keys = [p.year_month_key for p in previews]
        assert keys == ["2024-02", "2024-01", "2023-12"]
        assert len(set(keys)) == len(keys)
        assert previews[0].session_count == 2

    def test_bucket_minutes_add_up_to_included_sessions(self) -> None:
        start = datetime(2024, 1, 1, 12, tzinfo=UTC)
        sessions = [
            record(id=i, minutes=15 * (i % 5), occurred_at=(start + timedelta(days=11 * i)).isoformat(),
                   status="submitted" if i % 3 else "draft")
            for i in range(40)
        ]
        included = [s for s in sessions if s.is_submitted and s.occurred_at is not None]
        previews = monthly_invoice_previews(sessions, tz=UTC)
        assert sum(p.total_minutes for p in previews) == sum(s.minutes for s in included)
        assert sum(p.session_count for p in previews) == len(included)

    def test_month_follows_display_timezone(self) -> None:
        late_utc = datetime(2024, 4, 1, 2, 30, tzinfo=UTC)
        toronto = timezone(timedelta(hours=-4))
        assert month_key(late_utc, UTC) == (2024, 4)
        assert month_key(late_utc, toronto) == (2024, 3)

    def test_naive_timestamps_are_read_as_local(self) -> None:
        assert month_key(datetime(2024, 3, 31, 23, 0), UTC) == (2024, 3)

    def test_counts_flag_ignored_unless_requested(self) -> None:
        sessions = [record(id=1, minutes=60), record(id=2, minutes=30, counts=False)]
        default = monthly_invoice_previews(sessions, tz=UTC)
        strict = monthly_invoice_previews(sessions, tz=UTC, respect_counts_flag=True)
        assert default[0].total_minutes == 90
        assert strict[0].total_minutes == 60

    def test_rate_rescales_linearly(self) -> None:
        sessions = [record(minutes=75)]
        base = monthly_invoice_previews(sessions, rate=RATE, tz=UTC)[0]
        doubled = monthly_invoice_previews(sessions, rate=RATE * 2, tz=UTC)[0]
        assert doubled.estimated_amount == pytest.approx(base.estimated_amount * 2)
        assert doubled.total_minutes == base.total_minutes

    def test_to_dict(self) -> None:
        data = monthly_invoice_previews([record(minutes=90)], rate=RATE, tz=UTC)[0].to_dict()
        assert data == {
            "year_month_key": "2024-03",
            "session_count": 1,
            "total_minutes": 90,
            "total_hours": 1.5,
            "estimated_amount": 150.0,
        }


def test_estimate_amount_uses_default_rate() -> None:
    assert estimate_amount(2) == 2 * DEFAULT_HOURLY_RATE
    assert estimate_amount(1.5, 80) == 120


def test_from_row_reads_objects_and_attaches_naive_timezone() -> None:
    class Row:
        id = 7
        intern_id = 3
        supervisor_id = None
        occurred_at = datetime(2024, 5, 1, 12, 0)
        duration_minutes = 50
        format = "group"
        status = "draft"
        counts_for_hours = False
        focus = "Case review"

    rec = SessionRecord.from_row(Row(), naive_tz=UTC)
    assert rec.occurred_at == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    assert rec.counts_for_hours is CountsForHours.EXCLUDED
    assert rec.is_draft
    assert rec.minutes == 50
