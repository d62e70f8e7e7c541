from __future__ import annotations

import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from auth import api_keys  # noqa: E402
from db import models  # noqa: E402,F401
from db.database import Base  # noqa: E402
from db.models import Profile, User  # noqa: E402


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _fk_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(email: str | None = None, target_calories: int | None = None, suggested_calories: int | None = None) -> str:
        user = User(email=email)
        db.add(user)
        db.flush()
        db.add(Profile(id=user.id, target_calories=target_calories, suggested_calories=suggested_calories))
        db.commit()
        return user.id

    return _make


@pytest.fixture
def fast_scrypt(monkeypatch):
    # Production cost makes every hash take tens of milliseconds.
    monkeypatch.setattr(api_keys, "SCRYPT_N", 1024)
