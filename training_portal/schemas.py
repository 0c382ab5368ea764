"""
Serialization schemas using Marshmallow for the training portal.

Output schemas are ``SQLAlchemyAutoSchema`` subclasses that turn models
into JSON-friendly dictionaries; password hashes are never included.
Enum columns are dumped by value (``"active"`` rather than ``"ACTIVE"``).

Input schemas are plain ``Schema`` classes used to validate request
bodies before the service layer builds or updates a model. They load
into dictionaries, not model instances, so partial updates can be
applied field by field.
"""

from __future__ import annotations

from datetime import timezone

from marshmallow import Schema, ValidationError, fields, pre_load, validate, validates_schema
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema

from .models import (
    User,
    Role,
    Intern,
    InternStatus,
    Supervisor,
    SupervisorIntern,
    Client,
    ClientStatus,
    SupervisionSession,
    SessionFormat,
    SessionStatus,
    ProfessionalDevelopmentEvent,
    ProfessionalDevelopmentInterest,
    InterestStatus,
)


class UTCDateTime(fields.DateTime):
    """Dump a naive UTC column with an explicit ``+00:00`` offset.

    Naive request input is read in the display timezone, so a stored
    value must carry its offset to survive being sent back unchanged.
    """

    def _serialize(self, value, attr, obj, **kwargs):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return super()._serialize(value, attr, obj, **kwargs)


class UserSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``User`` objects."""

    role = fields.Enum(Role, by_value=True)

    class Meta:
        model = User
        include_fk = True
        exclude = ("password_hash",)


class InternSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Intern`` profiles."""

    status = fields.Enum(InternStatus, by_value=True)
    current_clients = fields.Integer(dump_only=True)
    is_eligible_for_clients = fields.Boolean(dump_only=True)

    class Meta:
        model = Intern
        exclude = ("deleted_at",)


class SupervisorSchema(SQLAlchemyAutoSchema):
    intern_ids = fields.List(fields.Integer(), dump_only=True)

    class Meta:
        model = Supervisor
        exclude = ("deleted_at",)


class SupervisorInternSchema(SQLAlchemyAutoSchema):
    intern = fields.Nested(InternSchema, only=("id", "full_name", "status", "ready_for_clients"))

    class Meta:
        model = SupervisorIntern
        include_fk = True
        exclude = ("deleted_at",)


class ClientSchema(SQLAlchemyAutoSchema):
    status = fields.Enum(ClientStatus, by_value=True)
    characteristics = fields.List(fields.String(), allow_none=True)

    class Meta:
        model = Client
        include_fk = True
        exclude = ("deleted_at",)


class SupervisionSessionSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``SupervisionSession`` objects."""

    format = fields.Enum(SessionFormat, by_value=True)
    status = fields.Enum(SessionStatus, by_value=True)
    occurred_at = UTCDateTime(allow_none=True)
    created_at = UTCDateTime(dump_only=True)
    is_locked = fields.Boolean(dump_only=True)

    class Meta:
        model = SupervisionSession
        include_fk = True


class ProfessionalDevelopmentEventSchema(SQLAlchemyAutoSchema):
    price = fields.Float(allow_none=True)
    interest_count = fields.Integer(dump_only=True)

    class Meta:
        model = ProfessionalDevelopmentEvent


class ProfessionalDevelopmentInterestSchema(SQLAlchemyAutoSchema):
    status = fields.Enum(InterestStatus, by_value=True)

    class Meta:
        model = ProfessionalDevelopmentInterest
        include_fk = True


class _StripStrings(Schema):
    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}


class RegisterInput(_StripStrings):
    email = fields.Email(required=True, validate=validate.Length(max=120))
    password = fields.String(required=True, validate=validate.Length(min=8))
    role = fields.Enum(Role, by_value=True, load_default=Role.INTERN)
    intern_id = fields.Integer(allow_none=True)
    supervisor_id = fields.Integer(allow_none=True)
    full_name = fields.String(allow_none=True, validate=validate.Length(max=120))


class ProfileUpdateInput(_StripStrings):
    """Self-service profile edits. The intern-only fields are rejected for other roles."""

    full_name = fields.String(validate=validate.Length(min=1, max=120))
    email = fields.Email(validate=validate.Length(max=120))
    pronouns = fields.String(allow_none=True, validate=validate.Length(max=40))
    school = fields.String(allow_none=True, validate=validate.Length(max=120))
    program = fields.String(allow_none=True, validate=validate.Length(max=120))
    site = fields.String(allow_none=True, validate=validate.Length(max=120))
    supervision_focus = fields.String(allow_none=True, validate=validate.Length(max=255))


class PasswordChangeInput(Schema):
    current_password = fields.String(required=True)
    new_password = fields.String(required=True, validate=validate.Length(min=8))
    confirm_password = fields.String(required=True)

    @validates_schema
    def passwords_match(self, data, **kwargs):
        if data.get("new_password") != data.get("confirm_password"):
            raise ValidationError("New password and confirmation do not match.", "confirm_password")


class InternInput(_StripStrings):
    full_name = fields.String(required=True, validate=validate.Length(min=1, max=120))
    email = fields.Email(allow_none=True)
    pronouns = fields.String(allow_none=True, validate=validate.Length(max=40))
    school = fields.String(allow_none=True, validate=validate.Length(max=120))
    program = fields.String(allow_none=True, validate=validate.Length(max=120))
    site = fields.String(allow_none=True, validate=validate.Length(max=120))
    status = fields.Enum(InternStatus, by_value=True)
    ready_for_clients = fields.Boolean()
    supervision_focus = fields.String(allow_none=True, validate=validate.Length(max=255))


class SupervisorInput(_StripStrings):
    full_name = fields.String(required=True, validate=validate.Length(min=1, max=120))
    email = fields.Email(allow_none=True)
    pronouns = fields.String(allow_none=True, validate=validate.Length(max=40))


class SupervisorAssignmentInput(_StripStrings):
    intern_id = fields.Integer(required=True)
    relationship = fields.String(
        load_default="primary", validate=validate.OneOf(["primary", "secondary", "group"])
    )


class ClientInput(_StripStrings):
    full_name = fields.String(required=True, validate=validate.Length(min=1, max=120))
    status = fields.Enum(ClientStatus, by_value=True)
    intern_id = fields.Integer(allow_none=True)
    referral_source = fields.String(allow_none=True, validate=validate.Length(max=120))
    notes = fields.String(allow_none=True, validate=validate.Length(max=2000))
    characteristics = fields.List(fields.String(validate=validate.Length(min=1, max=60)), allow_none=True)


class ClientAssignmentInput(Schema):
    intern_id = fields.Integer(required=True)


class SupervisionSessionInput(_StripStrings):
    intern_id = fields.Integer(required=True)
    supervisor_id = fields.Integer(allow_none=True)
    occurred_at = fields.String(allow_none=True)
    duration_minutes = fields.Integer(allow_none=True, validate=validate.Range(min=0, max=24 * 60))
    format = fields.Enum(SessionFormat, by_value=True, load_default=SessionFormat.INDIVIDUAL)
    status = fields.Enum(SessionStatus, by_value=True, load_default=SessionStatus.DRAFT)
    counts_for_hours = fields.Boolean(allow_none=True)
    focus = fields.String(allow_none=True, validate=validate.Length(max=255))
    notes = fields.String(allow_none=True, validate=validate.Length(max=2000))


class PDEventInput(_StripStrings):
    title = fields.String(required=True, validate=validate.Length(min=1, max=200))
    description = fields.String(allow_none=True)
    starts_at = fields.String(allow_none=True)
    location = fields.String(allow_none=True, validate=validate.Length(max=200))
    capacity = fields.Integer(allow_none=True, validate=validate.Range(min=0))
    price = fields.Decimal(allow_none=True, places=2, validate=validate.Range(min=0))


class PDInterestUpdateInput(Schema):
    status = fields.Enum(InterestStatus, by_value=True, required=True)
