"""Seed script for demo data.

Running this script populates an empty database with a small demo
program: an executive login, two supervisors, a handful of interns in
different states, a waitlist, some supervision sessions and a PD
event. Execute it with ``python -m seed.seed`` from the repository
root.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from training_portal import create_app, db
from training_portal.models import (
    Client,
    ClientStatus,
    Intern,
    InternStatus,
    ProfessionalDevelopmentEvent,
    Role,
    SessionFormat,
    SessionStatus,
    SupervisionSession,
    Supervisor,
    SupervisorIntern,
    User,
)

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"


def _login(email: str, role: Role, **profile) -> User:
    user = User(email=email, role=role, **profile)
    user.set_password(DEMO_PASSWORD)
    return user


def run_seeds() -> None:
    """Insert demo records unless the database already has users."""
    app = create_app()
    with app.app_context():
        db.create_all()
        if User.query.first() is not None:
            logger.warning("Database already seeded; nothing to do.")
            return

        supervisors = [
            Supervisor(full_name="Dana Okafor", email="dana@example.com"),
            Supervisor(full_name="Sam Lee", email="sam@example.com"),
        ]
        interns = [
            Intern(full_name="Alex Rivera", status=InternStatus.ACTIVE, ready_for_clients=True, site="North"),
            Intern(full_name="Jordan Smith", status=InternStatus.ACTIVE, ready_for_clients=False, site="North"),
            Intern(full_name="Riley Chen", status=InternStatus.ONBOARDING, site="East"),
        ]
        db.session.add_all(supervisors + interns)
        db.session.flush()

        db.session.add_all([
            SupervisorIntern(supervisor_id=supervisors[0].id, intern_id=interns[0].id),
            SupervisorIntern(supervisor_id=supervisors[0].id, intern_id=interns[1].id),
            SupervisorIntern(supervisor_id=supervisors[1].id, intern_id=interns[2].id),
        ])

        db.session.add_all([
            Client(full_name="OWL-1001", status=ClientStatus.ACTIVE, intern_id=interns[0].id,
                   characteristics=["LGBTQ2S+"]),
            Client(full_name="OWL-1002", status=ClientStatus.WAITLISTED, referral_source="School board",
                   characteristics=["Indigenous", "Youth"]),
            Client(full_name="OWL-1003", status=ClientStatus.WAITLISTED),
        ])

        now = datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)
        for weeks_ago, minutes, status in ((1, 60, SessionStatus.DRAFT), (3, 90, SessionStatus.SUBMITTED),
                                           (6, 60, SessionStatus.SUBMITTED)):
            db.session.add(SupervisionSession(
                intern_id=interns[0].id,
                supervisor_id=supervisors[0].id,
                occurred_at=now - timedelta(weeks=weeks_ago),
                duration_minutes=minutes,
                format=SessionFormat.INDIVIDUAL,
                status=status,
            ))

        db.session.add(ProfessionalDevelopmentEvent(
            title="Trauma-informed practice",
            starts_at=now + timedelta(days=21),
            capacity=20,
            price=0,
        ))

        db.session.add_all([
            _login("executive@example.com", Role.EXECUTIVE),
            _login("dana@example.com", Role.SUPERVISOR, supervisor_id=supervisors[0].id),
            _login("alex@example.com", Role.INTERN, intern_id=interns[0].id),
        ])
        db.session.commit()
        print("Seed data inserted successfully.")


if __name__ == "__main__":
    run_seeds()
