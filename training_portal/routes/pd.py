"""
Routes for professional-development events.

Executives publish PD events; interns register interest in them, and
executives confirm or cancel those requests. Event detail includes a
simple demand-versus-capacity figure.
"""

from __future__ import annotations

import logging

from dateutil.parser import parse as parse_date  # type: ignore
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from .. import db
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..models import (
    Intern,
    InterestStatus,
    ProfessionalDevelopmentEvent,
    ProfessionalDevelopmentInterest,
    Role,
)
from ..schemas import (
    PDEventInput,
    PDInterestUpdateInput,
    ProfessionalDevelopmentEventSchema,
    ProfessionalDevelopmentInterestSchema,
)
from ..util.sanitization import clean_optional
from ._access import current_intern_id, current_role, get_or_404, load_body, require_role

logger = logging.getLogger(__name__)

pd_bp = Blueprint("pd", __name__)


def _get_event(event_id: int) -> ProfessionalDevelopmentEvent:
    event = db.session.get(ProfessionalDevelopmentEvent, event_id)
    if event is None:
        raise NotFoundError("Event not found.")
    return event


@pd_bp.route("/pd/events", methods=["GET"])
@jwt_required()
def list_events() -> tuple[list[dict], int]:
    """Events ordered by start time, undated events last."""
    events = ProfessionalDevelopmentEvent.query.order_by(
        ProfessionalDevelopmentEvent.starts_at.is_(None),
        ProfessionalDevelopmentEvent.starts_at.asc(),
    ).all()
    return ProfessionalDevelopmentEventSchema(many=True).dump(events), 200


@pd_bp.route("/pd/events", methods=["POST"])
@jwt_required()
def create_event() -> tuple[dict, int]:
    require_role(Role.EXECUTIVE)
    data = load_body(PDEventInput())
    starts_at = None
    if data.get("starts_at"):
        try:
            starts_at = parse_date(data["starts_at"])
        except (ValueError, OverflowError):
            raise ValidationError("Invalid date format. Use ISO 8601.", fields={"starts_at": [data["starts_at"]]})
    event = ProfessionalDevelopmentEvent(
        title=data["title"],
        description=clean_optional(data.get("description")),
        starts_at=starts_at,
        location=clean_optional(data.get("location")),
        capacity=data.get("capacity"),
        price=data.get("price"),
    )
    db.session.add(event)
    db.session.commit()
    logger.info("Created PD event %s", event.id)
    return ProfessionalDevelopmentEventSchema().dump(event), 201


@pd_bp.route("/pd/events/<int:event_id>", methods=["GET"])
@jwt_required()
def get_event(event_id: int) -> tuple[dict, int]:
    """Event detail; executives also receive the interest list."""
    event = _get_event(event_id)
    payload = ProfessionalDevelopmentEventSchema().dump(event)
    if event.capacity:
        payload["demand_ratio"] = event.interest_count / event.capacity
    else:
        payload["demand_ratio"] = None
    if current_role() == Role.EXECUTIVE:
        payload["interests"] = ProfessionalDevelopmentInterestSchema(many=True).dump(event.interests)
    return payload, 200


@pd_bp.route("/pd/events/<int:event_id>/interests", methods=["POST"])
@jwt_required()
def register_interest(event_id: int) -> tuple[dict, int]:
    """Record the calling intern's interest in an event."""
    require_role(Role.INTERN)
    intern_id = current_intern_id()
    if intern_id is None:
        raise ForbiddenError("No intern profile is linked to this login.")
    get_or_404(Intern, intern_id, "Intern not found.")
    event = _get_event(event_id)
    existing = ProfessionalDevelopmentInterest.query.filter_by(event_id=event.id, intern_id=intern_id).first()
    if existing is not None and existing.status != InterestStatus.CANCELLED:
        raise ConflictError("Interest already registered for this event.")
    if existing is None:
        existing = ProfessionalDevelopmentInterest(event_id=event.id, intern_id=intern_id)
        db.session.add(existing)
    existing.status = InterestStatus.REQUESTED
    db.session.commit()
    logger.info("Intern %s requested PD event %s", intern_id, event.id)
    return ProfessionalDevelopmentInterestSchema().dump(existing), 201


@pd_bp.route("/pd/interests", methods=["GET"])
@jwt_required()
def list_interests() -> tuple[list[dict], int]:
    """Interest requests, newest first.

    Interns see their own requests; executives see all of them and may
    narrow the list with ``?event_id=``.
    """
    role = require_role(Role.INTERN, Role.EXECUTIVE)
    query = ProfessionalDevelopmentInterest.query
    if role == Role.INTERN:
        intern_id = current_intern_id()
        if intern_id is None:
            raise ForbiddenError("No intern profile is linked to this login.")
        query = query.filter_by(intern_id=intern_id)
    event_id = request.args.get("event_id", type=int)
    if event_id is not None:
        query = query.filter_by(event_id=event_id)
    interests = query.order_by(
        ProfessionalDevelopmentInterest.created_at.desc(), ProfessionalDevelopmentInterest.id.desc()
    ).all()
    return ProfessionalDevelopmentInterestSchema(many=True).dump(interests), 200


@pd_bp.route("/pd/interests/<int:interest_id>", methods=["PUT"])
@jwt_required()
def update_interest(interest_id: int) -> tuple[dict, int]:
    require_role(Role.EXECUTIVE)
    interest = db.session.get(ProfessionalDevelopmentInterest, interest_id)
    if interest is None:
        raise NotFoundError("Interest not found.")
    data = load_body(PDInterestUpdateInput())
    interest.status = data["status"]
    db.session.commit()
    logger.info("PD interest %s is now %s", interest.id, interest.status.value)
    return ProfessionalDevelopmentInterestSchema().dump(interest), 200
