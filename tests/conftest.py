import os
import tempfile
from datetime import date

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("API_KEY", "test-key")
os.environ.setdefault("LOG_DIR", tempfile.gettempdir())

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_schedule.config import settings
from school_schedule.database import Base, get_db
from school_schedule.main import app
from school_schedule.models.schedule import Schedule

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db_session():
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Authenticated test client bound to the test session."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, headers={"x-api-key": settings.API_KEY}) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def add_schedule(db_session):
    """Insert a schedule row directly, bypassing the API."""

    def _add(**overrides):
        data = dict(
            class_code="XTKJ1",
            class_name="TKJ Dasar",
            subject_code="TKJ01",
            teacher_id="12345",
            teacher_name="Budi",
            date=date(2024, 1, 1),
            period_number=1,
            time_start="07:00:00",
            time_end="08:00:00",
        )
        data.update(overrides)
        s = Schedule(**data)
        db_session.add(s)
        db_session.commit()
        db_session.refresh(s)
        return s

    return _add


@pytest.fixture
def payload():
    """Request body for a valid create call."""

    def _payload(**overrides):
        data = {
            "class_code": "XTKJ1",
            "class_name": "TKJ Dasar",
            "subject_code": "TKJ01",
            "teacher_id": "12345",
            "teacher_name": "Budi",
            "date": "2024-01-01",
            "period_number": 1,
            "time_start": "07:00:00",
            "time_end": "08:00:00",
        }
        data.update(overrides)
        return data

    return _payload
