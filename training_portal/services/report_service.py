"""Dashboard and reporting computations.

These functions assemble the read-only view models the dashboards
render: hours summaries and invoice previews (delegating the
arithmetic to ``supervision_hours``), the executive overview counts,
and the email-ready grant summary built from client records.
"""
from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Any, Iterable, Optional

from flask import current_app

from ..models import Client, ClientStatus, Intern, InternStatus, SupervisionSession
from .session_service import display_timezone
from .supervision_hours import (
    DEFAULT_HOURLY_RATE,
    MonthlyInvoicePreview,
    SessionRecord,
    monthly_invoice_previews,
)

ORGANISATION_NAME = "Moving Forward Family Services"


def hourly_rate() -> float:
    return float(current_app.config.get("SUPERVISION_HOURLY_RATE", DEFAULT_HOURLY_RATE))


def invoice_previews(records: Iterable[SessionRecord]) -> list[MonthlyInvoicePreview]:
    """Monthly previews using the configured rate and display timezone."""
    return monthly_invoice_previews(
        records,
        rate=hourly_rate(),
        tz=display_timezone(),
        respect_counts_flag=bool(current_app.config.get("INVOICE_RESPECT_COUNTS_FLAG", False)),
    )


def program_overview() -> dict[str, Any]:
    """Counts shown on the executive overview."""
    interns = Intern.query.filter_by(deleted_at=None).all()
    clients = Client.query.filter_by(deleted_at=None).all()
    intern_counts = Counter(i.status.value for i in interns)
    client_counts = Counter(c.status.value for c in clients)
    return {
        "interns": {
            "total": len(interns),
            "by_status": {s.value: intern_counts.get(s.value, 0) for s in InternStatus},
            "eligible_for_clients": sum(1 for i in interns if i.is_eligible_for_clients),
        },
        "clients": {
            "total": len(clients),
            "by_status": {s.value: client_counts.get(s.value, 0) for s in ClientStatus},
            "waitlisted": client_counts.get(ClientStatus.WAITLISTED.value, 0),
        },
        "supervision_sessions": SupervisionSession.query.count(),
    }


def extract_identity_tags(client: Client) -> list[str]:
    """Characteristic labels of a client.

    Older rows stored a comma-separated string instead of a list.
    """
    raw = client.characteristics
    if isinstance(raw, list):
        return [t.strip() for t in raw if isinstance(t, str) and t.strip()]
    if isinstance(raw, str):
        return [t.strip() for t in raw.split(",") if t.strip()]
    return []


def client_aggregates(clients: Iterable[Client]) -> dict[str, Any]:
    active = waitlisted = total = 0
    identity_counts: Counter = Counter()
    for client in clients:
        total += 1
        if client.status == ClientStatus.ACTIVE:
            active += 1
        elif client.status == ClientStatus.WAITLISTED:
            waitlisted += 1
        for tag in extract_identity_tags(client):
            identity_counts[tag.lower()] += 1
    return {
        "total_clients": total,
        "active_clients": active,
        "waitlisted_clients": waitlisted,
        "identity_counts": dict(sorted(identity_counts.items())),
    }


def build_grant_summary(aggregates: dict[str, Any], start: date, end: date) -> str:
    """Render the aggregates as paragraphs suitable for a funder email."""
    parts = [
        f"Between {start.isoformat()} and {end.isoformat()}, {ORGANISATION_NAME} provided or "
        f"coordinated counselling support for {aggregates['total_clients']} clients captured in "
        f"this portal. Of these, {aggregates['active_clients']} were active in service and "
        f"{aggregates['waitlisted_clients']} were on a waitlist or pending assignment."
    ]
    identity_counts = aggregates["identity_counts"]
    if identity_counts:
        ranked = sorted(identity_counts.items(), key=lambda item: (-item[1], item[0]))
        pieces = [f"{count} {label}" for label, count in ranked]
        parts.append(
            "Within the limits of self-identification in this dataset, we recorded the following "
            f"identity markers among clients: {'; '.join(pieces)}. These categories are approximate "
            "and not exhaustive, but they help demonstrate who is currently accessing or waiting "
            "for support."
        )
    else:
        parts.append(
            "Identity markers were not available in the current dataset; the portal will report "
            "them as those fields are completed."
        )
    parts.append(
        "These figures are intended to support grant reporting, equity-focused planning, and "
        "accountability to funders and communities."
    )
    return "\n\n".join(parts)


def grant_summary(start: date, end: date, clients: Optional[list[Client]] = None) -> dict[str, Any]:
    """Aggregate clients created between ``start`` and ``end`` inclusive."""
    if clients is None:
        clients = [
            c for c in Client.query.filter_by(deleted_at=None).all()
            if c.created_at is not None and start <= c.created_at.date() <= end
        ]
    aggregates = client_aggregates(clients)
    return {
        "from": start.isoformat(),
        "to": end.isoformat(),
        **aggregates,
        "summary": build_grant_summary(aggregates, start, end),
    }
