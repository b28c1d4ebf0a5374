"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. Every
test starts from empty tables: the ledger holds global state (one current
period, one streak row) that would otherwise leak between tests.
"""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from screenledger.core.clock import FixedClock
from screenledger.core.config import Settings
from screenledger.db.base import Base, get_db
from screenledger.main import app
from screenledger.services.ledger import AccountabilityLedger
import screenledger.models  # noqa: F401

SQLITE_URL = "sqlite:///./test_screenledger.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wednesday, so a week rollover is a few clock jumps away in both directions.
START = datetime(2026, 3, 4, 10, 0)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class BrokenCommitSession(Session):
    """Every commit fails the way a locked or vanished database does."""

    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))


def make_settings(**overrides) -> Settings:
    values = {"DATABASE_URL": SQLITE_URL, "COMMIT_RETRIES": 2, "TIMEZONE": "UTC"}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def clock():
    return FixedClock(START)


@pytest.fixture()
def settings():
    return make_settings()


@pytest.fixture()
def broken_sessions():
    return sessionmaker(autoflush=False, bind=engine, class_=BrokenCommitSession)


@pytest.fixture()
def ledger(clock, settings):
    return AccountabilityLedger(TestingSessionLocal, clock, settings)


@pytest.fixture()
def client(ledger):
    app.state.ledger = ledger
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.ledger = None
