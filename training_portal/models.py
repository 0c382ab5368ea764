"""
Database models for the family-services training portal.

The schema mirrors the tables the portal has always used: intern
profiles, supervisors and the links between them, clients (identified
by a practice ID rather than a real name), supervision sessions and
professional-development events with the interest requests interns
register against them. Login accounts live in ``users`` and point at
the intern or supervisor profile they belong to.

Supervision sessions follow a two-state workflow: a session is logged
as ``draft`` and becomes ``submitted`` once finalised. Submitted
sessions are locked and are the only ones that count toward billing.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

from werkzeug.security import generate_password_hash, check_password_hash

from . import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(enum.Enum):
    """Enumeration of portal roles."""
    INTERN = "intern"
    SUPERVISOR = "supervisor"
    EXECUTIVE = "executive"


class InternStatus(enum.Enum):
    ONBOARDING = "onboarding"
    ACTIVE = "active"
    PAUSED = "paused"
    GRADUATED = "graduated"
    WAITLISTED = "waitlisted"
    ON_BREAK = "on_break"
    COMPLETED = "completed"


class ClientStatus(enum.Enum):
    WAITLISTED = "waitlisted"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class SessionFormat(enum.Enum):
    INDIVIDUAL = "individual"
    DYAD = "dyad"
    GROUP = "group"


class SessionStatus(enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class InterestStatus(enum.Enum):
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


def _enum_column(enum_cls, **kwargs):
    # Store the lowercase values rather than the member names.
    return db.Column(
        db.Enum(enum_cls, values_callable=lambda members: [m.value for m in members]),
        **kwargs,
    )


class User(db.Model):
    __allow_unmapped__ = True
    """A login account.

    Interns and supervisors are linked to their profile row so the
    portal can scope what they see; executives have no profile.
    Passwords are stored as salted hashes.
    """
    __tablename__ = "users"

    id: int = db.Column(db.Integer, primary_key=True)
    email: str = db.Column(db.String(120), unique=True, nullable=False)
    full_name: Optional[str] = db.Column(db.String(120))
    pronouns: Optional[str] = db.Column(db.String(40))
    password_hash: str = db.Column(db.String(256), nullable=False)
    role: Role = _enum_column(Role, nullable=False, default=Role.INTERN)
    intern_id: Optional[int] = db.Column(db.Integer, db.ForeignKey("intern_profiles.id"))
    supervisor_id: Optional[int] = db.Column(db.Integer, db.ForeignKey("supervisors.id"))
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=_utcnow)

    intern: Optional[Intern] = db.relationship("Intern")
    supervisor: Optional[Supervisor] = db.relationship("Supervisor")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"


class Intern(db.Model):
    __allow_unmapped__ = True
    """An intern's training profile."""
    __tablename__ = "intern_profiles"

    id: int = db.Column(db.Integer, primary_key=True)
    full_name: str = db.Column(db.String(120), nullable=False)
    email: Optional[str] = db.Column(db.String(120))
    pronouns: Optional[str] = db.Column(db.String(40))
    school: Optional[str] = db.Column(db.String(120))
    program: Optional[str] = db.Column(db.String(120))
    site: Optional[str] = db.Column(db.String(120))
    status: InternStatus = _enum_column(InternStatus, nullable=False, default=InternStatus.ONBOARDING)
    ready_for_clients: bool = db.Column(db.Boolean, nullable=False, default=False)
    supervision_focus: Optional[str] = db.Column(db.String(255))
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=_utcnow)

    # Soft delete timestamp
    deleted_at = db.Column(db.DateTime, nullable=True)

    # Collection relationships stay unannotated; a plain ``List[...]``
    # annotation would map them as scalars.
    clients = db.relationship("Client", back_populates="intern")
    sessions = db.relationship("SupervisionSession", back_populates="intern")
    supervisor_links = db.relationship(
        "SupervisorIntern", back_populates="intern", cascade="all, delete-orphan"
    )

    @property
    def is_eligible_for_clients(self) -> bool:
        """Whether a new client may be assigned to this intern."""
        return self.status == InternStatus.ACTIVE and bool(self.ready_for_clients)

    @property
    def current_clients(self) -> int:
        return sum(
            1 for c in self.clients
            if c.deleted_at is None and c.status == ClientStatus.ACTIVE
        )

    def __repr__(self) -> str:
        return f"<Intern {self.full_name} ({self.status.value})>"


class Supervisor(db.Model):
    __allow_unmapped__ = True
    __tablename__ = "supervisors"

    id: int = db.Column(db.Integer, primary_key=True)
    full_name: str = db.Column(db.String(120), nullable=False)
    email: Optional[str] = db.Column(db.String(120))
    pronouns: Optional[str] = db.Column(db.String(40))
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=_utcnow)

    # Soft delete timestamp
    deleted_at = db.Column(db.DateTime, nullable=True)

    intern_links = db.relationship(
        "SupervisorIntern", back_populates="supervisor", cascade="all, delete-orphan"
    )

    @property
    def intern_ids(self) -> list[int]:
        return [link.intern_id for link in self.intern_links if link.deleted_at is None]

    def __repr__(self) -> str:
        return f"<Supervisor {self.full_name}>"


class SupervisorIntern(db.Model):
    __allow_unmapped__ = True
    """Assignment of an intern to a supervisor."""
    __tablename__ = "supervisor_interns"

    id: int = db.Column(db.Integer, primary_key=True)
    supervisor_id: int = db.Column(db.Integer, db.ForeignKey("supervisors.id"), nullable=False)
    intern_id: int = db.Column(db.Integer, db.ForeignKey("intern_profiles.id"), nullable=False)
    relationship: Optional[str] = db.Column(db.String(40), default="primary")
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=_utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    supervisor: Supervisor = db.relationship("Supervisor", back_populates="intern_links")
    intern: Intern = db.relationship("Intern", back_populates="supervisor_links")

    __table_args__ = (
        db.UniqueConstraint("supervisor_id", "intern_id", name="uix_supervisor_intern"),
    )

    def __repr__(self) -> str:
        return f"<SupervisorIntern supervisor={self.supervisor_id} intern={self.intern_id}>"


class Client(db.Model):
    __allow_unmapped__ = True
    """A client file.

    ``full_name`` holds the practice-management ID; the portal does not
    store real client names.
    """
    __tablename__ = "clients"

    id: int = db.Column(db.Integer, primary_key=True)
    full_name: str = db.Column(db.String(120), nullable=False)
    status: ClientStatus = _enum_column(ClientStatus, nullable=False, default=ClientStatus.WAITLISTED)
    intern_id: Optional[int] = db.Column(db.Integer, db.ForeignKey("intern_profiles.id"))
    referral_source: Optional[str] = db.Column(db.String(120))
    notes: Optional[str] = db.Column(db.Text)
    characteristics = db.Column(db.JSON)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=_utcnow)

    # Soft delete timestamp
    deleted_at = db.Column(db.DateTime, nullable=True)

    intern: Optional[Intern] = db.relationship("Intern", back_populates="clients")

    def __repr__(self) -> str:
        return f"<Client {self.full_name} ({self.status.value})>"


class SupervisionSession(db.Model):
    __allow_unmapped__ = True
    """A logged supervision meeting.

    ``occurred_at`` is stored as naive UTC. ``counts_for_hours`` is a
    nullable flag: ``None`` means the session counts.
    """
    __tablename__ = "supervision_sessions"

    id: int = db.Column(db.Integer, primary_key=True)
    intern_id: int = db.Column(db.Integer, db.ForeignKey("intern_profiles.id"), nullable=False)
    supervisor_id: Optional[int] = db.Column(db.Integer, db.ForeignKey("supervisors.id"))
    occurred_at: Optional[datetime] = db.Column(db.DateTime)
    duration_minutes: Optional[int] = db.Column(db.Integer)
    format: SessionFormat = _enum_column(SessionFormat, nullable=False, default=SessionFormat.INDIVIDUAL)
    status: SessionStatus = _enum_column(SessionStatus, nullable=False, default=SessionStatus.DRAFT)
    counts_for_hours: Optional[bool] = db.Column(db.Boolean, nullable=True)
    focus: Optional[str] = db.Column(db.String(255))
    notes: Optional[str] = db.Column(db.Text)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=_utcnow)

    intern: Intern = db.relationship("Intern", back_populates="sessions")
    supervisor: Optional[Supervisor] = db.relationship("Supervisor")

    @property
    def is_locked(self) -> bool:
        return self.status == SessionStatus.SUBMITTED

    def to_record(self):
        """Return an immutable ``SessionRecord`` snapshot for aggregation."""
        from .services.supervision_hours import SessionRecord

        return SessionRecord.from_row(self, naive_tz=timezone.utc)

    def __repr__(self) -> str:
        return f"<SupervisionSession intern={self.intern_id} {self.status.value}>"


class ProfessionalDevelopmentEvent(db.Model):
    __allow_unmapped__ = True
    __tablename__ = "professional_development_events"

    id: int = db.Column(db.Integer, primary_key=True)
    title: str = db.Column(db.String(200), nullable=False)
    description: Optional[str] = db.Column(db.Text)
    starts_at: Optional[datetime] = db.Column(db.DateTime)
    location: Optional[str] = db.Column(db.String(200))
    capacity: Optional[int] = db.Column(db.Integer)
    price = db.Column(db.Numeric(8, 2))
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=_utcnow)

    interests = db.relationship(
        "ProfessionalDevelopmentInterest", back_populates="event", cascade="all, delete-orphan"
    )

    @property
    def interest_count(self) -> int:
        return sum(1 for i in self.interests if i.status != InterestStatus.CANCELLED)

    def __repr__(self) -> str:
        return f"<ProfessionalDevelopmentEvent {self.title}>"


class ProfessionalDevelopmentInterest(db.Model):
    __allow_unmapped__ = True
    """An intern's request to attend a PD event."""
    __tablename__ = "professional_development_interests"

    id: int = db.Column(db.Integer, primary_key=True)
    event_id: int = db.Column(
        db.Integer, db.ForeignKey("professional_development_events.id"), nullable=False
    )
    intern_id: int = db.Column(db.Integer, db.ForeignKey("intern_profiles.id"), nullable=False)
    status: InterestStatus = _enum_column(InterestStatus, nullable=False, default=InterestStatus.REQUESTED)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=_utcnow)

    event: ProfessionalDevelopmentEvent = db.relationship(
        "ProfessionalDevelopmentEvent", back_populates="interests"
    )
    intern: Intern = db.relationship("Intern")

    __table_args__ = (
        db.UniqueConstraint("event_id", "intern_id", name="uix_event_intern"),
    )

    def __repr__(self) -> str:
        return f"<ProfessionalDevelopmentInterest event={self.event_id} intern={self.intern_id}>"
