"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.models import Base, UserAccount
from app.notification_config import NotificationConfig
from app.stores.base import Backends
from app.stores.sql import SqlDocumentStore, SqlMessageSender, SqlUserDirectory

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    """Settings with defaults, ignoring the environment's .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def config(settings):
    """Create test config."""
    return NotificationConfig.from_settings(settings)


@pytest.fixture
def session_factory():
    """Create an in-memory database for the SQL backend."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(engine)


@pytest.fixture
def store(session_factory):
    return SqlDocumentStore(session_factory)


@pytest.fixture
def backends(session_factory, store):
    """SQL-backed collaborators sharing one in-memory database."""
    return Backends(
        store=store,
        directory=SqlUserDirectory(session_factory),
        sender=SqlMessageSender(session_factory),
    )


@pytest.fixture
def add_user(session_factory):
    """Insert a directory user."""

    def _add(user_id="user-1", email="jane.doe@example.org", name="Jane Doe"):
        db = session_factory()
        try:
            db.add(UserAccount(id=user_id, email=email, name=name))
            db.commit()
        finally:
            db.close()

    return _add


@pytest.fixture
def application_record():
    """An application that just moved into review."""
    return {
        "$id": "app123456789",
        "$collectionId": "application_forms",
        "$databaseId": "main",
        "$createdAt": "2026-03-01T09:00:00.000+00:00",
        "$updatedAt": "2026-03-02T11:59:00.000+00:00",
        "status": "in_review",
        "userId": "user-1",
        "fullName": "Jane Doe",
        "referenceNumber": "REF-001",
    }


@pytest.fixture
def pay_stub_record():
    """A freshly generated pay stub."""
    return {
        "$id": "stub-1",
        "$collectionId": "pay_stubs",
        "$databaseId": "main",
        "$createdAt": "2026-03-02T11:00:00.000+00:00",
        "$updatedAt": "2026-03-02T11:00:00.000+00:00",
        "hash": "abc",
        "generatedAt": "2026-03-02T11:00:00.000+00:00",
        "netPay": 1234.5,
        "payPeriodId": "2026-02",
        "periodName": "February 2026",
        "employeeId": "emp-1",
    }


@pytest.fixture
def employee_record():
    return {"userId": "user-1", "fullName": "Jane Employee"}
