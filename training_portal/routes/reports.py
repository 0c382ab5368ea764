"""Routes for derived dashboards and reports.

This blueprint exposes the read-only summaries the intern, supervisor
and executive dashboards display: supervision hours split by workflow
status and by whether they count, hours per intern, monthly invoice
previews, the executive overview and the grant summary. The arithmetic
lives in ``training_portal.services``; the handlers only decide which
sessions the caller may see.
"""
from __future__ import annotations

from datetime import date, timedelta

from dateutil.parser import parse as parse_date  # type: ignore
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from ..errors import ForbiddenError, ValidationError
from ..models import Intern, Role
from ..services import hours_by_intern, summarize_hours
from ..services.report_service import grant_summary, hourly_rate, invoice_previews, program_overview
from ..services.session_service import load_records
from ..services.supervision_hours import all_sessions, for_supervisor, minutes_to_hours, select
from ._access import current_role, current_supervisor_id, ensure_intern_visible, require_role, visible_intern_ids

reports_bp = Blueprint("reports", __name__)

GRANT_SUMMARY_DEFAULT_DAYS = 30


def _scoped_records():
    intern_ids = visible_intern_ids()
    intern_id = request.args.get("intern_id", type=int)
    if intern_id is not None:
        ensure_intern_visible(intern_id)
        intern_ids = [intern_id]
    return load_records(intern_ids)


def _supervisor_predicate():
    """Executives may narrow a report with ``?supervisor_id=``."""
    supervisor_id = request.args.get("supervisor_id", type=int)
    if supervisor_id is None:
        return all_sessions
    require_role(Role.EXECUTIVE)
    return for_supervisor(supervisor_id)


@reports_bp.route("/reports/hours", methods=["GET"])
@jwt_required()
def hours_summary() -> tuple[dict, int]:
    """Submitted, draft and total hours for the sessions the caller can see."""
    summary = summarize_hours(_scoped_records(), _supervisor_predicate())
    return summary.to_dict(), 200


@reports_bp.route("/reports/hours/interns", methods=["GET"])
@jwt_required()
def hours_per_intern() -> tuple[dict, int]:
    """Counted hours per intern, keyed by intern id."""
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    hours = hours_by_intern(select(_scoped_records(), _supervisor_predicate()))
    names = {
        i.id: i.full_name
        for i in Intern.query.filter(Intern.id.in_(list(hours))).all()
    } if hours else {}
    return {
        "hours_by_intern": {str(intern_id): value for intern_id, value in hours.items()},
        "intern_names": {str(intern_id): name for intern_id, name in names.items()},
    }, 200


@reports_bp.route("/reports/invoices/preview", methods=["GET"])
@jwt_required()
def invoice_preview() -> tuple[dict, int]:
    """Monthly invoice previews of submitted supervision time.

    Supervisors see the sessions they ran; executives see everything,
    or one supervisor's sessions with ``?supervisor_id=``.
    """
    require_role(Role.EXECUTIVE, Role.SUPERVISOR)
    if current_role() == Role.SUPERVISOR:
        if current_supervisor_id() is None:
            raise ForbiddenError("No supervisor profile is linked to this login.")
        predicate = for_supervisor(current_supervisor_id())
    else:
        predicate = _supervisor_predicate()
    previews = invoice_previews(select(load_records(), predicate))
    total_minutes = sum(p.total_minutes for p in previews)
    return {
        "rate": hourly_rate(),
        "months": [p.to_dict() for p in previews],
        "total_hours": minutes_to_hours(total_minutes),
        "estimated_total": sum(p.estimated_amount for p in previews),
    }, 200


@reports_bp.route("/reports/overview", methods=["GET"])
@jwt_required()
def overview() -> tuple[dict, int]:
    require_role(Role.EXECUTIVE)
    data = program_overview()
    data["hours"] = summarize_hours(load_records()).to_dict()
    return data, 200


def _date_arg(name: str, default: date) -> date:
    raw = request.args.get(name)
    if not raw:
        return default
    try:
        return parse_date(raw).date()
    except (ValueError, OverflowError):
        raise ValidationError(f"Invalid '{name}' date. Use ISO format YYYY-MM-DD.", fields={name: [raw]})


@reports_bp.route("/reports/grant-summary", methods=["GET"])
@jwt_required()
def grant_summary_report() -> tuple[dict, int]:
    """Client figures for funders, defaulting to the last 30 days."""
    require_role(Role.EXECUTIVE)
    today = date.today()
    start = _date_arg("from", today - timedelta(days=GRANT_SUMMARY_DEFAULT_DAYS))
    end = _date_arg("to", today)
    if start > end:
        raise ValidationError("'from' must not be after 'to'.", fields={"from": [start.isoformat()]})
    return grant_summary(start, end), 200
