import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="shiftrota-tests-")

# must be set before anything under app/ reads settings
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SMTP_HOST"] = ""
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import date, datetime, timezone
from typing import Any, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.db.database import Base, SessionLocal, engine
from app.db import models  # noqa: F401
from app.main import app
from app.api.deps import get_email_sink, get_registry
from app.core.security import create_access_token, get_password_hash
from app.db.models.users import Users, Role, Gender
from app.db.models.availabilities import Availabilities
from app.services.mailer import EmailSink
from app.services.realtime import ConnectionRegistry, SessionHandle
from app.services.scheduling.availability import submit_availabilities
from app.services.scheduling.types import ShiftTemplate


# Saturday morning slot used throughout; 2025-03-10 is the day the
# organisers used for the walkthrough even though it is a Monday
SAT_MORNING = ShiftTemplate("saturday", "Piazza Dalmazia", "09:00", "11:00")
SAT_LATE = ShiftTemplate("saturday", "Piazza Dalmazia", "11:00", "13:00")
SCENARIO_DAY = date(2025, 3, 10)

# far from any test date so nothing counts as last-minute
QUIET_NOW = datetime(2020, 1, 1, 12, 0, tzinfo=timezone.utc)

PASSWORD = "password123"


def shift_payload(shift: ShiftTemplate = SAT_MORNING) -> dict:
    return {
        "day": shift.day,
        "location": shift.location,
        "start_time": shift.start_time,
        "end_time": shift.end_time,
    }


class RecordingHandle(SessionHandle):
    """In-memory session that keeps every frame it is sent."""

    def __init__(self, user_id: Optional[int] = None):
        self.user_id = user_id
        self.frames: List[Tuple[str, Any]] = []

    def send(self, event: str, data: Any = None) -> None:
        self.frames.append((event, data))

    def events(self, name: str) -> List[Any]:
        return [data for event, data in self.frames if event == name]


class FailingHandle(SessionHandle):
    def send(self, event: str, data: Any = None) -> None:
        raise RuntimeError("connection gone")


def make_user(
    db,
    email: str,
    gender: Gender,
    role: Role = Role.USER,
    firstname: str = "Test",
    surname: str = "User",
) -> Users:
    user = Users(
        email=email,
        firstname=firstname,
        surname=surname,
        gender=gender,
        role=role,
        password_hash=get_password_hash(PASSWORD),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: Users) -> dict:
    token = create_access_token(data={"sub": user.id, "email": user.email, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


def token_for(user: Users) -> str:
    return create_access_token(data={"sub": user.id, "email": user.email})


def submit(
    db,
    registry: ConnectionRegistry,
    user: Users,
    shift: ShiftTemplate = SAT_MORNING,
    day=SCENARIO_DAY,
) -> Availabilities:
    """Submit a single pending entry outside the last-minute window."""
    return submit_availabilities(db, registry, user, [(shift, day)], now=QUIET_NOW)[0]


@pytest.fixture
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(schema):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def email_sink() -> MagicMock:
    return MagicMock(spec=EmailSink)


@pytest.fixture
def client(schema, registry, email_sink):
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_email_sink] = lambda: email_sink
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin(db) -> Users:
    return make_user(db, "admin@example.com", Gender.FEMALE, Role.ADMIN, "Anna", "Admin")


@pytest.fixture
def marco(db) -> Users:
    # category A
    return make_user(db, "marco@example.com", Gender.MALE, firstname="Marco", surname="Rossi")


@pytest.fixture
def luca(db) -> Users:
    # category A
    return make_user(db, "luca@example.com", Gender.MALE, firstname="Luca", surname="Bianchi")


@pytest.fixture
def giulia(db) -> Users:
    # category B
    return make_user(db, "giulia@example.com", Gender.FEMALE, firstname="Giulia", surname="Verdi")


@pytest.fixture
def sara(db) -> Users:
    # category B
    return make_user(db, "sara@example.com", Gender.FEMALE, firstname="Sara", surname="Neri")


@pytest.fixture
def elena(db) -> Users:
    # category B
    return make_user(db, "elena@example.com", Gender.FEMALE, firstname="Elena", surname="Gallo")
