"""
Routes for supervision session logs.

Supervisors and executives log sessions; interns can read their own.
A session starts as a draft and is submitted once finalised, after
which it is locked against edits and deletion. Only submitted sessions
are billed.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from .. import db
from ..errors import ForbiddenError
from ..models import Role
from ..schemas import SupervisionSessionInput, SupervisionSessionSchema
from ..services import session_service
from ._access import (
    current_role,
    current_supervisor_id,
    ensure_intern_visible,
    load_body,
    pagination,
    require_role,
    visible_intern_ids,
)


supervision_bp = Blueprint("supervision", __name__)


def _check_attribution(data: dict) -> None:
    """Supervisors log sessions under their own name only."""
    if current_role() != Role.SUPERVISOR:
        return
    if data.get("supervisor_id") not in (None, current_supervisor_id()):
        raise ForbiddenError("Supervisors can only log their own sessions.")


def _visible_session(session_id: int):
    session = session_service.get_session(session_id)
    ensure_intern_visible(session.intern_id)
    return session


@supervision_bp.route("/supervision/sessions", methods=["GET"])
@jwt_required()
def list_sessions() -> tuple[list[dict], int]:
    """Sessions visible to the caller, newest first.

    ``?intern_id=`` narrows the list to one intern.
    """
    intern_ids = visible_intern_ids()
    intern_id = request.args.get("intern_id", type=int)
    if intern_id is not None:
        ensure_intern_visible(intern_id)
        intern_ids = [intern_id]
    limit, offset = pagination()
    sessions = session_service.query_sessions(intern_ids).limit(limit).offset(offset).all()
    return SupervisionSessionSchema(many=True).dump(sessions), 200


@supervision_bp.route("/supervision/sessions", methods=["POST"])
@jwt_required()
def create_session() -> tuple[dict, int]:
    """Log a supervision session.

    When a supervisor logs a session without naming a supervisor, the
    session is attributed to them.
    """
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    data = load_body(SupervisionSessionInput())
    ensure_intern_visible(data["intern_id"])
    _check_attribution(data)
    if current_role() == Role.SUPERVISOR and data.get("supervisor_id") is None:
        data["supervisor_id"] = current_supervisor_id()
    session = session_service.create_session(data)
    db.session.commit()
    return SupervisionSessionSchema().dump(session), 201


@supervision_bp.route("/supervision/sessions/<int:session_id>", methods=["GET"])
@jwt_required()
def get_session(session_id: int) -> tuple[dict, int]:
    return SupervisionSessionSchema().dump(_visible_session(session_id)), 200


@supervision_bp.route("/supervision/sessions/<int:session_id>", methods=["PUT"])
@jwt_required()
def update_session(session_id: int) -> tuple[dict, int]:
    """Edit a draft session. Submitted sessions return 409."""
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    session = _visible_session(session_id)
    data = load_body(SupervisionSessionInput(), partial=True)
    if "intern_id" in data:
        ensure_intern_visible(data["intern_id"])
    _check_attribution(data)
    session_service.update_session(session, data)
    db.session.commit()
    return SupervisionSessionSchema().dump(session), 200


@supervision_bp.route("/supervision/sessions/<int:session_id>", methods=["DELETE"])
@jwt_required()
def delete_session(session_id: int) -> tuple[dict, int]:
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    session = _visible_session(session_id)
    session_service.delete_session(session)
    db.session.commit()
    return {"message": "Session deleted."}, 200


@supervision_bp.route("/supervision/sessions/<int:session_id>/submit", methods=["POST"])
@jwt_required()
def submit_session(session_id: int) -> tuple[dict, int]:
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    session = _visible_session(session_id)
    session_service.submit_session(session)
    db.session.commit()
    return SupervisionSessionSchema().dump(session), 200
