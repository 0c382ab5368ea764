"""
Authentication routes for the training portal.

Provides endpoints for creating login accounts and logging in to obtain
JSON Web Tokens (JWTs). The token carries the caller's role and, for
interns and supervisors, the id of their profile, which the other
blueprints use to scope what each dashboard can see.
"""

from __future__ import annotations

import logging

from flask import Blueprint, request
from flask_jwt_extended import create_access_token, get_jwt_identity, jwt_required, verify_jwt_in_request

from .. import db
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..models import Intern, Role, Supervisor, User
from ..schemas import (
    InternSchema,
    PasswordChangeInput,
    ProfileUpdateInput,
    RegisterInput,
    SupervisorSchema,
    UserSchema,
)
from ..util.sanitization import clean_optional
from ._access import current_role, load_body

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def _token_for(user: User) -> str:
    additional_claims = {"role": user.role.value}
    if user.intern_id is not None:
        additional_claims["intern_id"] = user.intern_id
    if user.supervisor_id is not None:
        additional_claims["supervisor_id"] = user.supervisor_id
    return create_access_token(identity=str(user.id), additional_claims=additional_claims)


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple[dict, int]:
    """Create a login account.

    Only executives may create accounts, except for the very first
    account of a fresh deployment. Intern accounts must point at an
    intern profile and supervisor accounts at a supervisor profile.
    """
    if User.query.first() is not None:
        verify_jwt_in_request()
        if current_role() != Role.EXECUTIVE:
            raise ForbiddenError()

    data = load_body(RegisterInput())
    email = data["email"].lower()
    if User.query.filter_by(email=email).first():
        raise ConflictError("A user with that email already exists.")

    role = data["role"]
    user = User(email=email, role=role, full_name=data.get("full_name") or None)
    if role == Role.INTERN:
        intern_id = data.get("intern_id")
        if intern_id is None:
            raise ValidationError("Intern accounts need an intern_id.", fields={"intern_id": ["Required."]})
        if db.session.get(Intern, intern_id) is None:
            raise NotFoundError("Intern not found.")
        user.intern_id = intern_id
    elif role == Role.SUPERVISOR:
        supervisor_id = data.get("supervisor_id")
        if supervisor_id is None:
            raise ValidationError(
                "Supervisor accounts need a supervisor_id.", fields={"supervisor_id": ["Required."]}
            )
        if db.session.get(Supervisor, supervisor_id) is None:
            raise NotFoundError("Supervisor not found.")
        user.supervisor_id = supervisor_id

    user.set_password(data["password"])
    db.session.add(user)
    db.session.commit()
    logger.info("Registered %s account %s", role.value, user.id)
    return UserSchema().dump(user), 201


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple[dict, int]:
    """Authenticate a user and return a JWT.

    Expects JSON with ``email`` and ``password``. Invalid credentials
    return 401.
    """
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        logger.warning("Failed login for %s", email or "<blank>")
        return {"error": {"code": "UNAUTHORIZED", "message": "Invalid email or password."}}, 401

    return {"access_token": _token_for(user), "user": UserSchema().dump(user)}, 200


_INTERN_PROFILE_FIELDS = ("school", "program", "site", "supervision_focus")


def _current_user() -> User:
    user = db.session.get(User, int(get_jwt_identity()))
    if user is None:
        raise NotFoundError("User not found.")
    return user


def _me_payload(user: User) -> dict:
    payload = UserSchema().dump(user)
    if user.intern is not None:
        payload["profile"] = InternSchema().dump(user.intern)
    elif user.supervisor is not None:
        payload["profile"] = SupervisorSchema().dump(user.supervisor)
    return payload


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me() -> tuple[dict, int]:
    return _me_payload(_current_user()), 200


@auth_bp.route("/me", methods=["PUT"])
@jwt_required()
def update_me() -> tuple[dict, int]:
    """Edit the caller's own account and profile.

    Display name and pronouns are written to the linked intern or
    supervisor profile as well. Only interns may set the school,
    program, site and supervision focus of their profile.
    """
    user = _current_user()
    data = load_body(ProfileUpdateInput(), partial=True)

    intern_fields = {k: data.pop(k) for k in _INTERN_PROFILE_FIELDS if k in data}
    if intern_fields and user.intern is None:
        raise ValidationError(
            "Only intern profiles have these fields.",
            fields={k: ["Not available for this account."] for k in intern_fields},
        )

    if "email" in data:
        email = data["email"].lower()
        taken = User.query.filter(User.email == email, User.id != user.id).first()
        if taken is not None:
            raise ConflictError("A user with that email already exists.")
        user.email = email
    if "full_name" in data:
        user.full_name = data["full_name"]
    if "pronouns" in data:
        user.pronouns = clean_optional(data["pronouns"])

    profile = user.intern or user.supervisor
    if profile is not None:
        if "full_name" in data:
            profile.full_name = data["full_name"]
        if "pronouns" in data:
            profile.pronouns = clean_optional(data["pronouns"])
    for field, value in intern_fields.items():
        setattr(user.intern, field, clean_optional(value))

    db.session.commit()
    logger.info("User %s updated their profile", user.id)
    return _me_payload(user), 200


@auth_bp.route("/me/password", methods=["POST"])
@jwt_required()
def change_password() -> tuple[dict, int]:
    """Change the caller's password after checking the current one."""
    user = _current_user()
    data = load_body(PasswordChangeInput())
    if not user.check_password(data["current_password"]):
        logger.warning("Rejected password change for user %s", user.id)
        raise ValidationError(
            "Current password is incorrect.", fields={"current_password": ["Incorrect password."]}
        )
    user.set_password(data["new_password"])
    db.session.commit()
    logger.info("User %s changed their password", user.id)
    return {"message": "Password updated."}, 200
