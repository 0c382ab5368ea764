"""Client caseload rules.

A client can only be placed with an intern who is eligible for new
clients: the intern must be ``active`` and flagged ready for clients.
Assigning a waitlisted client moves them to ``active``.
"""
from __future__ import annotations

import logging
from typing import Optional

from .. import db
from ..errors import ConflictError, NotFoundError
from ..models import Client, ClientStatus, Intern
from ..util.sanitization import clean_optional, clean_tags

logger = logging.getLogger(__name__)


def get_client(client_id: int) -> Client:
    client = db.session.get(Client, client_id)
    if client is None or client.deleted_at is not None:
        raise NotFoundError("Client not found.")
    return client


def get_eligible_intern(intern_id: int) -> Intern:
    """Return the intern if they may take a new client, else raise."""
    intern = db.session.get(Intern, intern_id)
    if intern is None or intern.deleted_at is not None:
        raise NotFoundError("Intern not found.")
    if not intern.is_eligible_for_clients:
        raise ConflictError("Intern is not active and ready for clients.")
    return intern


def eligible_interns() -> list[Intern]:
    interns = Intern.query.filter_by(deleted_at=None).order_by(Intern.full_name.asc()).all()
    return [i for i in interns if i.is_eligible_for_clients]


def _apply(client: Client, data: dict, previous_intern_id: Optional[int]) -> None:
    if "full_name" in data:
        client.full_name = data["full_name"]
    if "status" in data:
        client.status = data["status"]
    if "referral_source" in data:
        client.referral_source = clean_optional(data["referral_source"])
    if "notes" in data:
        client.notes = clean_optional(data["notes"])
    if "characteristics" in data:
        client.characteristics = clean_tags(data["characteristics"])
    if "intern_id" in data:
        intern_id = data["intern_id"]
        # Only a change of intern is checked; an existing placement stays valid.
        if intern_id is not None and intern_id != previous_intern_id:
            get_eligible_intern(intern_id)
        client.intern_id = intern_id


def create_client(data: dict) -> Client:
    client = Client(status=ClientStatus.WAITLISTED)
    _apply(client, data, previous_intern_id=None)
    db.session.add(client)
    db.session.flush()
    logger.info("Created client %s (%s)", client.id, client.status.value)
    return client


def update_client(client: Client, data: dict) -> Client:
    _apply(client, data, previous_intern_id=client.intern_id)
    db.session.flush()
    logger.info("Updated client %s", client.id)
    return client


def assign_waitlisted_client(client: Client, intern_id: int) -> Client:
    """Place a waitlisted client with an eligible intern and activate them."""
    if client.status != ClientStatus.WAITLISTED:
        raise ConflictError("Only waitlisted clients can be assigned from the waitlist.")
    intern = get_eligible_intern(intern_id)
    client.intern_id = intern.id
    client.status = ClientStatus.ACTIVE
    db.session.flush()
    logger.info("Assigned waitlisted client %s to intern %s", client.id, intern.id)
    return client
