"""Role checks and request helpers shared by the blueprints."""
from __future__ import annotations

from typing import Optional

from flask import request
from flask_jwt_extended import get_jwt
from marshmallow import Schema

from .. import db
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..models import Role, Supervisor


def current_role() -> Optional[Role]:
    try:
        return Role(get_jwt().get("role"))
    except ValueError:
        return None


def current_intern_id() -> Optional[int]:
    return get_jwt().get("intern_id")


def current_supervisor_id() -> Optional[int]:
    return get_jwt().get("supervisor_id")


def require_role(*roles: Role) -> Role:
    """Raise ``ForbiddenError`` unless the caller has one of ``roles``."""
    role = current_role()
    if role not in roles:
        raise ForbiddenError()
    return role


def visible_intern_ids() -> Optional[list[int]]:
    """Interns whose records the caller may see; ``None`` means all of them."""
    role = current_role()
    if role == Role.EXECUTIVE:
        return None
    if role == Role.SUPERVISOR:
        supervisor = db.session.get(Supervisor, current_supervisor_id() or 0)
        return supervisor.intern_ids if supervisor is not None else []
    if role == Role.INTERN and current_intern_id() is not None:
        return [current_intern_id()]
    return []


def ensure_intern_visible(intern_id: int) -> None:
    visible = visible_intern_ids()
    if visible is not None and intern_id not in visible:
        raise ForbiddenError()


def load_body(schema: Schema, partial: bool = False) -> dict:
    """Validate the JSON body; marshmallow errors become 400 responses."""
    return schema.load(request.get_json(silent=True) or {}, partial=partial)


def get_or_404(model, object_id: int, message: str):
    obj = db.session.get(model, object_id)
    if obj is None or getattr(obj, "deleted_at", None) is not None:
        raise NotFoundError(message)
    return obj


def pagination() -> tuple[int, int]:
    try:
        limit = int(request.args.get("limit", 50))
        offset = int(request.args.get("offset", 0))
    except ValueError:
        raise ValidationError("Invalid pagination parameters.")
    return max(1, min(limit, 200)), max(0, offset)
