"""Soft delete utilities.

Interns and clients are never removed from the database, because
their supervision history and grant-reporting figures must survive.
Instead a ``deleted_at`` timestamp is set and listing queries filter
``deleted_at IS NULL``.

Deleting an intern also ends their supervisor assignments and sends
any client they were still seeing back to the waitlist. Supervision
sessions are left untouched so hour totals stay stable.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from .. import db
from ..models import Client, ClientStatus, Intern

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def soft_delete_intern(intern: Intern) -> list[Client]:
    """Soft delete an intern and release their caseload.

    Changes are flushed to the database session but not committed,
    allowing the caller to decide when to commit.

    Returns
    -------
    list[Client]
        The clients that were returned to the waitlist.
    """
    now = _now()
    intern.deleted_at = now
    intern.ready_for_clients = False
    for link in intern.supervisor_links:
        if link.deleted_at is None:
            link.deleted_at = now
    released = []
    for client in intern.clients:
        if client.deleted_at is not None:
            continue
        client.intern_id = None
        if client.status == ClientStatus.ACTIVE:
            client.status = ClientStatus.WAITLISTED
            released.append(client)
    db.session.flush()
    logger.info("Soft deleted intern %s; %d client(s) returned to waitlist", intern.id, len(released))
    return released


def soft_delete_client(client: Client) -> None:
    client.deleted_at = _now()
    db.session.flush()
    logger.info("Soft deleted client %s", client.id)
