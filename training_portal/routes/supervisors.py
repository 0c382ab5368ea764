"""
Routes for supervisors and their intern assignments.

Executives create supervisors and link interns to them. A supervisor's
links decide which interns, clients and supervision sessions appear on
their dashboard.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Blueprint
from flask_jwt_extended import jwt_required

from .. import db
from ..errors import ConflictError, ForbiddenError, NotFoundError
from ..models import Intern, Role, Supervisor, SupervisorIntern
from ..schemas import SupervisorAssignmentInput, SupervisorInput, SupervisorInternSchema, SupervisorSchema
from ..util.sanitization import clean_optional
from ._access import current_supervisor_id, get_or_404, load_body, require_role

logger = logging.getLogger(__name__)

supervisors_bp = Blueprint("supervisors", __name__)


def _active_links(supervisor: Supervisor) -> list[SupervisorIntern]:
    return [
        link for link in supervisor.intern_links
        if link.deleted_at is None and link.intern.deleted_at is None
    ]


@supervisors_bp.route("/supervisors", methods=["GET"])
@jwt_required()
def list_supervisors() -> tuple[list[dict], int]:
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    supervisors = (
        Supervisor.query.filter_by(deleted_at=None).order_by(Supervisor.full_name.asc()).all()
    )
    return SupervisorSchema(many=True).dump(supervisors), 200


@supervisors_bp.route("/supervisors", methods=["POST"])
@jwt_required()
def create_supervisor() -> tuple[dict, int]:
    require_role(Role.EXECUTIVE)
    data = load_body(SupervisorInput())
    supervisor = Supervisor(
        full_name=data["full_name"], email=data.get("email"), pronouns=clean_optional(data.get("pronouns"))
    )
    db.session.add(supervisor)
    db.session.commit()
    logger.info("Created supervisor %s", supervisor.id)
    return SupervisorSchema().dump(supervisor), 201


@supervisors_bp.route("/supervisors/<int:supervisor_id>/interns", methods=["GET"])
@jwt_required()
def list_supervisor_interns(supervisor_id: int) -> tuple[list[dict], int]:
    """Interns assigned to a supervisor.

    Supervisors may only list their own assignments.
    """
    role = require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    if role == Role.SUPERVISOR and current_supervisor_id() != supervisor_id:
        raise ForbiddenError()
    supervisor = get_or_404(Supervisor, supervisor_id, "Supervisor not found.")
    return SupervisorInternSchema(many=True).dump(_active_links(supervisor)), 200


@supervisors_bp.route("/supervisors/<int:supervisor_id>/interns", methods=["POST"])
@jwt_required()
def assign_intern(supervisor_id: int) -> tuple[dict, int]:
    """Link an intern to a supervisor.

    Re-assigning a previously removed pair reactivates the old link.
    """
    require_role(Role.EXECUTIVE)
    supervisor = get_or_404(Supervisor, supervisor_id, "Supervisor not found.")
    data = load_body(SupervisorAssignmentInput())
    intern = get_or_404(Intern, data["intern_id"], "Intern not found.")
    link = SupervisorIntern.query.filter_by(supervisor_id=supervisor.id, intern_id=intern.id).first()
    if link is not None and link.deleted_at is None:
        raise ConflictError("Intern is already assigned to this supervisor.")
    if link is None:
        link = SupervisorIntern(supervisor_id=supervisor.id, intern_id=intern.id)
        db.session.add(link)
    link.deleted_at = None
    link.relationship = data["relationship"]
    db.session.commit()
    logger.info("Assigned intern %s to supervisor %s", intern.id, supervisor.id)
    return SupervisorInternSchema().dump(link), 201


@supervisors_bp.route("/supervisors/<int:supervisor_id>/interns/<int:intern_id>", methods=["DELETE"])
@jwt_required()
def unassign_intern(supervisor_id: int, intern_id: int) -> tuple[dict, int]:
    require_role(Role.EXECUTIVE)
    link = SupervisorIntern.query.filter_by(
        supervisor_id=supervisor_id, intern_id=intern_id, deleted_at=None
    ).first()
    if link is None:
        raise NotFoundError("Assignment not found.")
    link.deleted_at = datetime.now(timezone.utc).replace(tzinfo=None)
    db.session.commit()
    logger.info("Removed intern %s from supervisor %s", intern_id, supervisor_id)
    return {"message": "Assignment removed."}, 200
