"""
Routes for intern profiles.

Executives maintain the intern roster, including the status and
``ready_for_clients`` flag that together decide whether an intern can
take new clients. Supervisors see the interns assigned to them and
interns see their own profile.
"""

from __future__ import annotations

import logging

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from .. import db
from ..errors import ValidationError
from ..models import Intern, InternStatus, Role
from ..schemas import InternInput, InternSchema
from ..services import soft_delete_intern
from ..util.sanitization import clean_optional
from ._access import ensure_intern_visible, get_or_404, load_body, require_role, visible_intern_ids

logger = logging.getLogger(__name__)

interns_bp = Blueprint("interns", __name__)

_TEXT_FIELDS = ("pronouns", "school", "program", "site", "supervision_focus")


def _apply(intern: Intern, data: dict) -> None:
    for field, value in data.items():
        if field in _TEXT_FIELDS:
            value = clean_optional(value)
        setattr(intern, field, value)


@interns_bp.route("/interns", methods=["GET"])
@jwt_required()
def list_interns() -> tuple[list[dict], int]:
    """List interns visible to the caller, ordered by name.

    ``?eligible=true`` restricts the list to interns who may take a new
    client; ``?status=`` filters by intern status.
    """
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    query = Intern.query.filter_by(deleted_at=None)
    visible = visible_intern_ids()
    if visible is not None:
        query = query.filter(Intern.id.in_(visible))
    status = request.args.get("status")
    if status:
        query = query.filter(Intern.status == _intern_status(status))
    interns = query.order_by(Intern.full_name.asc()).all()
    if request.args.get("eligible", "").lower() in {"1", "true", "yes"}:
        interns = [i for i in interns if i.is_eligible_for_clients]
    return InternSchema(many=True).dump(interns), 200


def _intern_status(value: str):
    try:
        return InternStatus(value.lower())
    except ValueError:
        raise ValidationError("Unknown intern status.", fields={"status": [value]})


@interns_bp.route("/interns", methods=["POST"])
@jwt_required()
def create_intern() -> tuple[dict, int]:
    require_role(Role.EXECUTIVE)
    data = load_body(InternInput())
    intern = Intern()
    _apply(intern, data)
    db.session.add(intern)
    db.session.commit()
    logger.info("Created intern %s (%s)", intern.id, intern.status.value)
    return InternSchema().dump(intern), 201


@interns_bp.route("/interns/<int:intern_id>", methods=["GET"])
@jwt_required()
def get_intern(intern_id: int) -> tuple[dict, int]:
    intern = get_or_404(Intern, intern_id, "Intern not found.")
    ensure_intern_visible(intern_id)
    return InternSchema().dump(intern), 200


@interns_bp.route("/interns/<int:intern_id>", methods=["PUT"])
@jwt_required()
def update_intern(intern_id: int) -> tuple[dict, int]:
    """Update an intern's profile, status or client readiness."""
    require_role(Role.EXECUTIVE)
    intern = get_or_404(Intern, intern_id, "Intern not found.")
    data = load_body(InternInput(), partial=True)
    _apply(intern, data)
    db.session.commit()
    logger.info("Updated intern %s", intern.id)
    return InternSchema().dump(intern), 200


@interns_bp.route("/interns/<int:intern_id>", methods=["DELETE"])
@jwt_required()
def delete_intern(intern_id: int) -> tuple[dict, int]:
    """Soft delete an intern; their active clients go back to the waitlist."""
    require_role(Role.EXECUTIVE)
    intern = get_or_404(Intern, intern_id, "Intern not found.")
    released = soft_delete_intern(intern)
    db.session.commit()
    return {"message": "Intern deleted.", "waitlisted_client_ids": [c.id for c in released]}, 200
