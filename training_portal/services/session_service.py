"""Supervision session workflow.

Sessions are logged as drafts and submitted once finalised. The
transition is one-way: a submitted session is locked, cannot be edited
or deleted, and cannot be submitted again. These functions stage
changes on the database session and flush; the caller commits.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Iterable, Optional

from dateutil import tz as dateutil_tz  # type: ignore
from dateutil.parser import parse as parse_date  # type: ignore
from flask import current_app

from .. import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Intern, Supervisor, SupervisionSession, SessionStatus
from ..util.sanitization import clean_optional
from .supervision_hours import SessionRecord

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "intern_id",
    "supervisor_id",
    "occurred_at",
    "duration_minutes",
    "format",
    "status",
    "counts_for_hours",
    "focus",
    "notes",
)


def display_timezone() -> Optional[tzinfo]:
    """Timezone used for calendar-month keys; ``None`` means server local."""
    name = current_app.config.get("DISPLAY_TIMEZONE")
    if not name:
        return None
    zone = dateutil_tz.gettz(name)
    if zone is None:
        logger.warning("Unknown DISPLAY_TIMEZONE %r, falling back to local time", name)
    return zone


def parse_occurred_at(raw: Any) -> Optional[datetime]:
    """Parse a client-supplied timestamp into naive UTC for storage.

    Naive input is read as wall-clock time in the display timezone,
    which is how the session form has always submitted dates.
    """
    if raw is None or raw == "":
        return None
    try:
        value = parse_date(raw) if isinstance(raw, str) else raw
    except (ValueError, OverflowError):
        raise ValidationError("Invalid date format. Use ISO 8601.", fields={"occurred_at": ["Not a valid datetime."]})
    if not isinstance(value, datetime):
        raise ValidationError("Invalid date format. Use ISO 8601.", fields={"occurred_at": ["Not a valid datetime."]})
    if value.tzinfo is None:
        zone = display_timezone()
        value = value.replace(tzinfo=zone) if zone is not None else value.astimezone()
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def get_session(session_id: int) -> SupervisionSession:
    session = db.session.get(SupervisionSession, session_id)
    if session is None:
        raise NotFoundError("Supervision session not found.")
    return session


def _check_references(data: dict) -> None:
    if "intern_id" in data:
        intern = db.session.get(Intern, data["intern_id"])
        if intern is None or intern.deleted_at is not None:
            raise NotFoundError("Intern not found.")
    if data.get("supervisor_id") is not None:
        supervisor = db.session.get(Supervisor, data["supervisor_id"])
        if supervisor is None or supervisor.deleted_at is not None:
            raise NotFoundError("Supervisor not found.")


def _apply(session: SupervisionSession, data: dict) -> None:
    for name in EDITABLE_FIELDS:
        if name not in data:
            continue
        value = data[name]
        if name == "occurred_at":
            value = parse_occurred_at(value)
        elif name in ("focus", "notes"):
            value = clean_optional(value)
        setattr(session, name, value)


def create_session(data: dict) -> SupervisionSession:
    """Create a session from validated input."""
    _check_references(data)
    session = SupervisionSession()
    _apply(session, data)
    db.session.add(session)
    db.session.flush()
    logger.info(
        "Logged supervision session %s for intern %s (%s)",
        session.id, session.intern_id, session.status.value,
    )
    return session


def update_session(session: SupervisionSession, data: dict) -> SupervisionSession:
    """Apply a partial update to a draft session."""
    if session.is_locked:
        raise ConflictError("Submitted sessions are locked and cannot be edited.")
    _check_references(data)
    _apply(session, data)
    db.session.flush()
    logger.info("Updated supervision session %s", session.id)
    return session


def delete_session(session: SupervisionSession) -> None:
    if session.is_locked:
        raise ConflictError("Submitted sessions are locked and cannot be deleted.")
    db.session.delete(session)
    db.session.flush()
    logger.info("Deleted supervision session %s", session.id)


def submit_session(session: SupervisionSession) -> SupervisionSession:
    """Move a draft session to ``submitted``."""
    if session.status == SessionStatus.SUBMITTED:
        raise ConflictError("Session has already been submitted.")
    session.status = SessionStatus.SUBMITTED
    db.session.flush()
    logger.info("Submitted supervision session %s for intern %s", session.id, session.intern_id)
    return session


def query_sessions(intern_ids: Optional[Iterable[int]] = None):
    """Sessions ordered newest first, optionally restricted to some interns."""
    query = SupervisionSession.query
    if intern_ids is not None:
        query = query.filter(SupervisionSession.intern_id.in_(list(intern_ids)))
    return query.order_by(
        SupervisionSession.occurred_at.desc(), SupervisionSession.id.desc()
    )


def load_records(intern_ids: Optional[Iterable[int]] = None) -> list[SessionRecord]:
    """Snapshot the matching sessions for the aggregator."""
    return [row.to_record() for row in query_sessions(intern_ids).all()]
