import os
import sys
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SMTP_DISABLE"] = "1"
os.environ["MATCH_SWEEP_ENABLED"] = "0"
os.environ["SELECTION_EMAIL_SWEEP_ENABLED"] = "0"
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

import db as db_module
from db import Base
from models.models_user import User
from mentoring.models import (
    AlumniProfile,
    MentoringProgram,
    MentorRegistration,
    MenteeRegistration,
)
from utils import email_service
from utils.auth_utils import create_token

TENANT = "tenant-1"

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite needs explicit BEGIN for SAVEPOINT to behave
@event.listens_for(test_engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(test_engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


db_module.SessionLocal.configure(bind=test_engine)


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Record outgoing emails instead of sending them."""
    outbox = []

    def fake_send(to_email, subject, html):
        outbox.append({"to": to_email, "subject": subject, "html": html})
        return True

    monkeypatch.setattr(email_service, "send_email", fake_send)
    return outbox


@pytest.fixture
def session():
    s = db_module.SessionLocal()
    try:
        yield s
    finally:
        s.rollback()
        s.close()


@pytest.fixture
def factory(session):
    return Factory(session)


def auth_header(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token(user.id, user.tenant_id)}"}


class Factory:
    """Builds users, programs and registrations for one tenant."""

    def __init__(self, session):
        self.session = session
        self._n = 0

    def user(self, role="alumni", first_name=None, tenant_id=TENANT, email=None, **profile):
        self._n += 1
        user = User(
            email=email or f"user{self._n}@example.com",
            first_name=first_name or f"User{self._n}",
            last_name="Tester",
            role=role,
            tenant_id=tenant_id,
            password_hash="x",
        )
        self.session.add(user)
        self.session.flush()
        if profile:
            self.session.add(AlumniProfile(user_id=user.id, **profile))
            self.session.flush()
        return user

    def program(self, open_for_matching=True, **overrides):
        now = datetime.utcnow()
        if open_for_matching:
            dates = dict(
                registration_end_date_mentee=now - timedelta(days=2),
                registration_end_date_mentor=now - timedelta(days=2),
                matching_end_date=now + timedelta(days=30),
            )
        else:
            dates = dict(
                registration_end_date_mentee=now + timedelta(days=5),
                registration_end_date_mentor=now + timedelta(days=5),
                matching_end_date=now + timedelta(days=30),
            )
        values = dict(tenant_id=TENANT, name="Spring Mentoring", category="Career", status="published", coordinators=[])
        values.update(dates)
        values.update(overrides)
        program = MentoringProgram(**values)
        self.session.add(program)
        self.session.flush()
        return program

    def mentor(self, mentoring_program, areas=(), status="approved", **profile):
        user = self.user(**profile)
        reg = MentorRegistration(
            tenant_id=mentoring_program.tenant_id,
            program_id=mentoring_program.id,
            user_id=user.id,
            areas_of_mentoring=list(areas),
            status=status,
        )
        self.session.add(reg)
        self.session.flush()
        return user

    def mentee(self, mentoring_program, preferred=(), areas=(), user=None, status="approved", **kwargs):
        self._n += 1
        values = dict(
            tenant_id=mentoring_program.tenant_id,
            program_id=mentoring_program.id,
            user_id=user.id if user else None,
            first_name=user.first_name if user else "Mona",
            last_name="Mentee",
            personal_email=user.email if user else f"mentee{self._n}@example.com",
            areas_of_mentoring=list(areas),
            status=status,
            preferred_mentors=list(preferred),
            class_of=2024,
        )
        values.update(kwargs)
        reg = MenteeRegistration(**values)
        self.session.add(reg)
        self.session.flush()
        return reg
