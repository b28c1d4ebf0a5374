"""
Database session management (SQLAlchemy).

The engine is created lazily so importing models never needs a live driver.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from screenledger.core.config import settings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        connect_args = {}
        if settings.DATABASE_URL.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(
            settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args
        )
    return _engine


def get_session_factory() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_db():
    """FastAPI dependency: one session per request, always closed."""
    db: Session = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
