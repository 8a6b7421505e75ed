"""
Shared fixtures: in-memory database, fixed clock, recording email
dispatcher, model factories and an API client wired to all of them.
"""
import os

# Must be set before campus_booking.config.settings is first imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEFAULT_TIMEZONE"] = "UTC"
os.environ["RATE_LIMIT_PER_SECOND"] = "1000"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

from datetime import datetime
from typing import Iterable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campus_booking.api.dependencies import get_clock, get_db, get_email_dispatcher
from campus_booking.models import (
    Appointment,
    AppointmentStatus,
    Base,
    OrganizationSettings,
    GLOBAL_SETTINGS_ID,
    TeacherAvailability,
    TeacherProfile,
    UserProfile,
)
from campus_booking.services.identity.identity_service import Identity, IdentityService
from campus_booking.services.notification.notification_service import NotificationService
from campus_booking.utils.time_intervals import combine

# Monday 2 March 2026, 10:00 organization time
NOW = datetime(2026, 3, 2, 10, 0)


def fixed_clock() -> datetime:
    return NOW


class RecordingDispatcher:
    """Email dispatcher that records instead of queueing"""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def __call__(self, email: str, subject: str, html: str, text: Optional[str] = None) -> None:
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.sent.append({"email": email, "subject": subject, "html": html, "text": text})

    def subjects_for(self, email: str):
        return [m["subject"] for m in self.sent if m["email"] == email]


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def notifier(db, dispatcher):
    return NotificationService(db, dispatcher=dispatcher)


# ============================================================================
# Identities
# ============================================================================

@pytest.fixture
def admin():
    return Identity(uid="admin-1", roles=frozenset({"admin"}), approved=True, email="admin@school.test")


@pytest.fixture
def teacher():
    return Identity(uid="teacher-1", roles=frozenset({"teacher"}), approved=True, email="teacher@school.test")


@pytest.fixture
def student():
    return Identity(uid="student-a", roles=frozenset(), approved=True, email="a@school.test")


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def make_user(db):
    def _make(uid: str, email: Optional[str] = None, roles: Iterable[str] = (), approved: bool = True,
              name: Optional[str] = None) -> UserProfile:
        profile = UserProfile(
            id=uid,
            email=email,
            display_name=name,
            roles=sorted(roles),
            approved=approved,
        )
        db.add(profile)
        db.commit()
        return profile
    return _make


@pytest.fixture
def make_teacher(db, make_user):
    def _make(uid: str = "teacher-1", email: str = "teacher@school.test", name: str = "Ms. Rivera") -> UserProfile:
        profile = make_user(uid, email=email, roles=["teacher"], name=name)
        db.add(TeacherProfile(id=uid, name=name, email=email))
        db.commit()
        return profile
    return _make


@pytest.fixture
def make_appointment(db):
    def _make(day: str, start: str, end: str, student_id: str = "student-a", teacher_id: str = "teacher-1",
              status: str = AppointmentStatus.PENDING.value) -> Appointment:
        appointment = Appointment(
            teacher_id=teacher_id,
            student_id=student_id,
            start_at=combine(day, start),
            end_at=combine(day, end),
            status=status,
        )
        db.add(appointment)
        db.commit()
        return appointment
    return _make


@pytest.fixture
def set_weekly(db):
    def _set(teacher_id: str = "teacher-1", weekly: Optional[dict] = None, busy: Optional[list] = None):
        row = db.get(TeacherAvailability, teacher_id)
        if row is None:
            row = TeacherAvailability(teacher_id=teacher_id)
            db.add(row)
        row.weekly = weekly or {}
        row.busy = busy or []
        db.commit()
        return row
    return _set


@pytest.fixture
def save_policy(db):
    def _save(workday_start: str = "09:00", workday_end: str = "17:00", holidays: Optional[list] = None):
        row = db.get(OrganizationSettings, GLOBAL_SETTINGS_ID)
        if row is None:
            row = OrganizationSettings(id=GLOBAL_SETTINGS_ID)
            db.add(row)
        row.workday_start = workday_start
        row.workday_end = workday_end
        row.holidays = holidays or []
        db.commit()
        return row
    return _save


# ============================================================================
# API
# ============================================================================

def auth_header(uid: str, roles: Iterable[str] = (), email: Optional[str] = None) -> dict:
    token = IdentityService.create_access_token(uid, roles, email=email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db, dispatcher):
    from campus_booking.main import create_app

    app = create_app()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_clock] = lambda: fixed_clock

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def failing_dispatcher():
    return RecordingDispatcher(fail=True)


@pytest.fixture
def auth():
    return auth_header
