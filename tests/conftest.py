"""
Root test configuration and fixtures.

Tests run against SQLite in-memory; the portable UUID and UTC timestamp
column types make the models dialect independent.
"""

import os
import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# app.database.engine refuses to import without a URL
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from app.database.base import Base  # noqa: E402
from app.models import ActivationCode  # noqa: E402


@pytest.fixture
def db_engine():
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
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_code(db_session):
    """Factory for activation code rows; defaults to a fresh general monthly code."""

    def _make_code(**overrides) -> ActivationCode:
        values = {
            "encoded_value": f"CODE-{uuid.uuid4().hex[:10].upper()}",
            "name": "Test code",
            "type": "general_monthly",
            "is_active": True,
            "is_used": False,
            "valid_from": datetime(2024, 1, 1, tzinfo=timezone.utc),
            "valid_until": datetime(2024, 2, 1, tzinfo=timezone.utc),
        }
        values.update(overrides)
        code = ActivationCode(**values)
        db_session.add(code)
        db_session.commit()
        db_session.refresh(code)
        return code

    return _make_code


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
def mid_window():
    """A moment inside the default code validity window."""
    return datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
