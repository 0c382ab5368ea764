"""
Routes for managing client files and the waitlist.

Executives see every client, supervisors see the clients of the interns
assigned to them and interns see their own caseload. New clients
normally start on the waitlist and are placed with an eligible intern
(``active`` and ready for clients) from there.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from .. import db
from ..errors import ValidationError
from ..models import Client, ClientStatus, Role
from ..schemas import ClientAssignmentInput, ClientInput, ClientSchema, InternSchema
from ..services import client_service, soft_delete_client
from ._access import ensure_intern_visible, load_body, pagination, require_role, visible_intern_ids


clients_bp = Blueprint("clients", __name__)


def _scoped_query():
    query = Client.query.filter_by(deleted_at=None)
    visible = visible_intern_ids()
    if visible is not None:
        query = query.filter(Client.intern_id.in_(visible))
    return query


def _visible_client(client_id: int) -> Client:
    client = client_service.get_client(client_id)
    if visible_intern_ids() is not None:
        if client.intern_id is None:
            # Unassigned clients are only visible to executives.
            require_role(Role.EXECUTIVE)
        else:
            ensure_intern_visible(client.intern_id)
    return client


def _check_placement(data: dict) -> None:
    """Supervisors may only place clients with interns they supervise."""
    if data.get("intern_id") is not None:
        ensure_intern_visible(data["intern_id"])


@clients_bp.route("/clients", methods=["GET"])
@jwt_required()
def list_clients() -> tuple[list[dict], int]:
    """Return the clients visible to the caller, newest first.

    Supports ``status``, ``intern_id``, ``limit`` and ``offset`` query
    parameters.
    """
    query = _scoped_query()
    status = request.args.get("status")
    if status:
        try:
            query = query.filter(Client.status == ClientStatus(status.lower()))
        except ValueError:
            raise ValidationError("Unknown client status.", fields={"status": [status]})
    intern_id = request.args.get("intern_id", type=int)
    if intern_id is not None:
        query = query.filter(Client.intern_id == intern_id)
    limit, offset = pagination()
    clients = query.order_by(Client.created_at.desc(), Client.id.desc()).limit(limit).offset(offset).all()
    return ClientSchema(many=True).dump(clients), 200


@clients_bp.route("/clients/waitlist", methods=["GET"])
@jwt_required()
def list_waitlist() -> tuple[dict, int]:
    """Waitlisted clients, oldest first, with the interns who can take them."""
    require_role(Role.EXECUTIVE)
    waitlisted = (
        Client.query.filter_by(deleted_at=None, status=ClientStatus.WAITLISTED)
        .order_by(Client.created_at.asc(), Client.id.asc())
        .all()
    )
    return {
        "clients": ClientSchema(many=True).dump(waitlisted),
        "eligible_interns": InternSchema(many=True, only=("id", "full_name", "current_clients")).dump(
            client_service.eligible_interns()
        ),
    }, 200


@clients_bp.route("/clients", methods=["POST"])
@jwt_required()
def create_client() -> tuple[dict, int]:
    """Create a new client file.

    The status defaults to ``waitlisted``. An intern may be set up
    front, but only one who is eligible for new clients.
    """
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    data = load_body(ClientInput())
    _check_placement(data)
    client = client_service.create_client(data)
    db.session.commit()
    return ClientSchema().dump(client), 201


@clients_bp.route("/clients/<int:client_id>", methods=["GET"])
@jwt_required()
def get_client(client_id: int) -> tuple[dict, int]:
    return ClientSchema().dump(_visible_client(client_id)), 200


@clients_bp.route("/clients/<int:client_id>", methods=["PUT"])
@jwt_required()
def update_client(client_id: int) -> tuple[dict, int]:
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    client = _visible_client(client_id)
    data = load_body(ClientInput(), partial=True)
    _check_placement(data)
    client_service.update_client(client, data)
    db.session.commit()
    return ClientSchema().dump(client), 200


@clients_bp.route("/clients/<int:client_id>", methods=["DELETE"])
@jwt_required()
def delete_client(client_id: int) -> tuple[dict, int]:
    """Soft delete a client file. Only executives may do this."""
    require_role(Role.EXECUTIVE)
    client = client_service.get_client(client_id)
    soft_delete_client(client)
    db.session.commit()
    return {"message": "Client deleted."}, 200


@clients_bp.route("/clients/<int:client_id>/assign", methods=["POST"])
@jwt_required()
def assign_client(client_id: int) -> tuple[dict, int]:
    """Assign a waitlisted client to an eligible intern and mark them active."""
    require_role(Role.EXECUTIVE)
    client = client_service.get_client(client_id)
    data = load_body(ClientAssignmentInput())
    client_service.assign_waitlisted_client(client, data["intern_id"])
    db.session.commit()
    return ClientSchema().dump(client), 200
