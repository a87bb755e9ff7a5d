"""
Shared fixtures: in-memory SQLite, seeded users, and an API client whose
database and notification queue are swapped for test doubles.
"""
import os

# Settings are read at import time; keep tests off any real database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from conduct_scoring.core.config import settings
from conduct_scoring.core.security import create_access_token
from conduct_scoring.db.base import Base
from conduct_scoring.db.session import get_db
from conduct_scoring.main import app
from conduct_scoring.models.user import User
from conduct_scoring.schemas.scoring import Actor
from conduct_scoring.workers import queue


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a test database session."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def _make_user(db, **fields):
    user = User(
        # Pre-hashed password to avoid running bcrypt in tests
        password_hash="$2b$12$hashed_password_000",
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_teacher(db_session):
    return _make_user(
        db_session,
        email="teacher@test.com",
        full_name="Giảng viên Test",
        role="teacher",
        class_id="CNTT2024A",
    )


@pytest.fixture
def test_student(db_session):
    return _make_user(
        db_session,
        email="nguyenvana@student.test.com",
        full_name="Nguyễn Văn A",
        role="student",
        student_code="SV2024001",
        class_id="CNTT2024A",
        phone="0123456789",
    )


@pytest.fixture
def other_student(db_session):
    return _make_user(
        db_session,
        email="levanc@student.test.com",
        full_name="Lê Văn C",
        role="student",
        student_code="SV2024003",
        class_id="CNTT2024B",
    )


@pytest.fixture
def student_actor():
    return Actor(user_id=1, role="student")


@pytest.fixture
def teacher_actor():
    return Actor(user_id=99, role="teacher")


@pytest.fixture
def dispatched(monkeypatch):
    """Collects notification payloads instead of queueing them on Redis."""
    sent = []

    def fake_enqueue(payload):
        sent.append(payload)
        return f"job-{len(sent)}"

    monkeypatch.setattr(queue, "enqueue_notification_task", fake_enqueue)
    return sent


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    return tmp_path / "uploads"


@pytest.fixture
def client(session_factory, dispatched, upload_dir):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}
