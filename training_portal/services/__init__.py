"""Service layer for the family-services training portal.

This package contains business logic that sits between the
Flask route handlers and the database models. Keeping it out of
the routes keeps the handlers thin and makes the calculations
(supervision hours, invoice previews, grant summaries) easy to
unit test.

Nothing in this package performs HTTP handling. Services return
plain Python data structures or database objects, and raise the
exceptions defined in ``training_portal.errors`` when something
goes wrong. ``supervision_hours`` is pure and does not touch the
database at all.
"""

from .supervision_hours import (
    CountsForHours,
    SessionRecord,
    summarize_hours,
    hours_by_intern,
    monthly_invoice_previews,
    estimate_amount,
)
from .soft_delete_service import soft_delete_client, soft_delete_intern

__all__ = [
    "CountsForHours",
    "SessionRecord",
    "summarize_hours",
    "hours_by_intern",
    "monthly_invoice_previews",
    "estimate_amount",
    "soft_delete_client",
    "soft_delete_intern",
]
