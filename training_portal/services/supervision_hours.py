"""Supervision hours and billing aggregation.

Every dashboard that shows supervision time (the intern view, the
supervisor view, the executive view and the invoice preview) goes
through the functions in this module. They operate on an in-memory
snapshot of session rows and never touch the database, so they are
safe to call from any request.

The pipeline, leaf first:

* ``normalize_minutes`` / ``minutes_to_hours`` turn a nullable duration
  into a number. Missing or non-numeric durations count as zero.
  Negative values are passed through unchanged; the write path rejects
  them, so they only appear in rows written by other tools.
* ``partition_by_counted`` and ``partition_by_status`` split sessions
  along two independent axes: whether the time counts toward training
  hours, and whether the record is draft or submitted.
* ``monthly_invoice_previews`` buckets submitted sessions by calendar
  month and prices each bucket with ``estimate_amount``.

Malformed input is never an error here: it is defaulted or dropped.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional

from dateutil.parser import parse as parse_date  # type: ignore

#: Demo hourly supervision rate used for invoice previews.
DEFAULT_HOURLY_RATE = 120.0

SUBMITTED = "submitted"
DRAFT = "draft"


class CountsForHours(enum.Enum):
    """Whether a session's time counts toward training hours.

    ``UNSPECIFIED`` is what older rows with a null flag carry; it counts.
    """
    COUNTS = "counts"
    EXCLUDED = "excluded"
    UNSPECIFIED = "unspecified"

    @classmethod
    def from_flag(cls, value: Any) -> "CountsForHours":
        if isinstance(value, CountsForHours):
            return value
        if value is True:
            return cls.COUNTS
        if value is False:
            return cls.EXCLUDED
        return cls.UNSPECIFIED

    @property
    def counts(self) -> bool:
        return self is not CountsForHours.EXCLUDED


def _value_of(raw: Any) -> Any:
    # Enum members coming straight from ORM rows.
    return raw.value if isinstance(raw, enum.Enum) else raw


def _parse_timestamp(raw: Any, naive_tz: Optional[tzinfo]) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str):
        try:
            value = parse_date(raw)
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if value.tzinfo is None and naive_tz is not None:
        value = value.replace(tzinfo=naive_tz)
    return value


@dataclass(frozen=True)
class SessionRecord:
    """Immutable view of one supervision session row."""

    id: Any
    intern_id: Any
    supervisor_id: Any = None
    occurred_at: Optional[datetime] = None
    duration_minutes: Any = None
    format: Optional[str] = None
    status: Optional[str] = None
    counts_for_hours: CountsForHours = CountsForHours.UNSPECIFIED
    focus: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any, naive_tz: Optional[tzinfo] = None) -> "SessionRecord":
        """Build a record from an ORM object or a mapping.

        ``naive_tz`` is attached to naive timestamps; leave it ``None``
        when naive values are already in local display time.
        """
        if isinstance(row, Mapping):
            get = row.get
        else:
            def get(name, default=None):
                return getattr(row, name, default)

        status = _value_of(get("status"))
        return cls(
            id=get("id"),
            intern_id=get("intern_id"),
            supervisor_id=get("supervisor_id"),
            occurred_at=_parse_timestamp(get("occurred_at"), naive_tz),
            duration_minutes=get("duration_minutes"),
            format=_value_of(get("format")),
            status=status.lower() if isinstance(status, str) else status,
            counts_for_hours=CountsForHours.from_flag(get("counts_for_hours")),
            focus=get("focus"),
        )

    @property
    def minutes(self) -> float:
        return normalize_minutes(self.duration_minutes)

    @property
    def hours(self) -> float:
        return minutes_to_hours(self.minutes)

    @property
    def is_counted(self) -> bool:
        return self.counts_for_hours.counts

    @property
    def is_submitted(self) -> bool:
        return self.status == SUBMITTED

    @property
    def is_draft(self) -> bool:
        return self.status == DRAFT


def normalize_minutes(value: Any) -> float:
    """Return ``value`` as a number of minutes, defaulting to ``0``."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float, Decimal)):
        number = float(value) if isinstance(value, Decimal) else value
    elif isinstance(value, str):
        try:
            number = float(value.strip()) if value.strip() else 0
        except ValueError:
            return 0
    else:
        return 0
    if isinstance(number, float) and not math.isfinite(number):
        return 0
    return number


def minutes_to_hours(minutes: Any) -> float:
    return normalize_minutes(minutes) / 60


def total_minutes(sessions: Iterable[SessionRecord]) -> float:
    return sum(s.minutes for s in sessions)


SessionPredicate = Callable[[SessionRecord], bool]


def all_sessions(session: SessionRecord) -> bool:
    return True


def is_counted(session: SessionRecord) -> bool:
    return session.is_counted


def for_intern(intern_id: Any) -> SessionPredicate:
    return lambda s: s.intern_id == intern_id


def for_interns(intern_ids: Iterable[Any]) -> SessionPredicate:
    wanted = frozenset(intern_ids)
    return lambda s: s.intern_id in wanted


def for_supervisor(supervisor_id: Any) -> SessionPredicate:
    return lambda s: s.supervisor_id == supervisor_id


def select(sessions: Iterable[SessionRecord], predicate: SessionPredicate = all_sessions) -> list[SessionRecord]:
    return [s for s in sessions if predicate(s)]


@dataclass(frozen=True)
class Partition:
    """Two disjoint groups of sessions along one axis."""

    included: tuple[SessionRecord, ...] = ()
    excluded: tuple[SessionRecord, ...] = ()

    @property
    def included_minutes(self) -> float:
        return total_minutes(self.included)

    @property
    def excluded_minutes(self) -> float:
        return total_minutes(self.excluded)

    @property
    def included_hours(self) -> float:
        return minutes_to_hours(self.included_minutes)

    @property
    def excluded_hours(self) -> float:
        return minutes_to_hours(self.excluded_minutes)


def partition_by_counted(sessions: Iterable[SessionRecord]) -> Partition:
    """Split into sessions that count toward hours and those that do not."""
    included, excluded = [], []
    for session in sessions:
        (included if session.is_counted else excluded).append(session)
    return Partition(tuple(included), tuple(excluded))


def partition_by_status(sessions: Iterable[SessionRecord]) -> Partition:
    """Split into submitted (``included``) and draft (``excluded``) sessions.

    Sessions with any other status belong to neither side.
    """
    submitted, drafts = [], []
    for session in sessions:
        if session.is_submitted:
            submitted.append(session)
        elif session.is_draft:
            drafts.append(session)
    return Partition(tuple(submitted), tuple(drafts))


@dataclass(frozen=True)
class HoursSummary:
    submitted_hours: float
    draft_hours: float
    total_hours: float
    counted_hours: float
    not_counted_hours: float
    session_count: int

    def to_dict(self) -> dict[str, float]:
        return {
            "submitted_hours": self.submitted_hours,
            "draft_hours": self.draft_hours,
            "total_hours": self.total_hours,
            "counted_hours": self.counted_hours,
            "not_counted_hours": self.not_counted_hours,
            "session_count": self.session_count,
        }


def summarize_hours(sessions: Iterable[SessionRecord], predicate: SessionPredicate = all_sessions) -> HoursSummary:
    selected = select(sessions, predicate)
    by_status = partition_by_status(selected)
    by_counted = partition_by_counted(selected)
    return HoursSummary(
        submitted_hours=by_status.included_hours,
        draft_hours=by_status.excluded_hours,
        total_hours=minutes_to_hours(total_minutes(selected)),
        counted_hours=by_counted.included_hours,
        not_counted_hours=by_counted.excluded_hours,
        session_count=len(selected),
    )


def hours_by_intern(sessions: Iterable[SessionRecord], predicate: SessionPredicate = is_counted) -> dict[Any, float]:
    """Sum hours per intern over the sessions matching ``predicate``."""
    minutes: dict[Any, float] = {}
    for session in sessions:
        if session.intern_id is None or not predicate(session):
            continue
        minutes[session.intern_id] = minutes.get(session.intern_id, 0) + session.minutes
    return {intern_id: minutes_to_hours(total) for intern_id, total in minutes.items()}


def estimate_amount(hours: float, rate: float = DEFAULT_HOURLY_RATE) -> float:
    return hours * rate


@dataclass(frozen=True)
class MonthlyInvoicePreview:
    year: int
    month: int
    session_count: int
    total_minutes: float
    rate: float = field(default=DEFAULT_HOURLY_RATE)

    @property
    def year_month_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def total_hours(self) -> float:
        return minutes_to_hours(self.total_minutes)

    @property
    def estimated_amount(self) -> float:
        return estimate_amount(self.total_hours, self.rate)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year_month_key": self.year_month_key,
            "session_count": self.session_count,
            "total_minutes": self.total_minutes,
            "total_hours": self.total_hours,
            "estimated_amount": self.estimated_amount,
        }


def month_key(occurred_at: datetime, tz: Optional[tzinfo] = None) -> tuple[int, int]:
    """Calendar (year, month) of ``occurred_at`` in the display timezone.

    Aware timestamps are converted to ``tz`` (system local time when
    ``tz`` is ``None``); naive ones are read as already local.
    """
    local = occurred_at.astimezone(tz) if occurred_at.tzinfo is not None else occurred_at
    return local.year, local.month


def monthly_invoice_previews(
    sessions: Iterable[SessionRecord],
    rate: float = DEFAULT_HOURLY_RATE,
    tz: Optional[tzinfo] = None,
    respect_counts_flag: bool = False,
) -> list[MonthlyInvoicePreview]:
    """Group submitted, dated sessions into monthly invoice previews.

    By default the counts-for-hours flag is ignored here, so a submitted
    session marked as not counting still appears in the preview. Pass
    ``respect_counts_flag=True`` to drop those sessions as well.
    """
    buckets: dict[tuple[int, int], list[float]] = {}
    for session in sessions:
        if not session.is_submitted or session.occurred_at is None:
            continue
        if respect_counts_flag and not session.is_counted:
            continue
        bucket = buckets.setdefault(month_key(session.occurred_at, tz), [0, 0])
        bucket[0] += 1
        bucket[1] += session.minutes
    return [
        MonthlyInvoicePreview(year, month, count, minutes, rate)
        for (year, month), (count, minutes) in sorted(buckets.items(), reverse=True)
    ]
