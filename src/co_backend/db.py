from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import get_database_config


class Base(DeclarativeBase):
    """
    Declarative base for the ontology tables (sites, pages, their classifier
    links, analytics samples and derived scores).
    """


_engine = None
_SessionLocal: sessionmaker[Session] | None = None


def get_engine():
    """
    Build the engine for CO_DATABASE_URL on first use and cache it.
    """
    global _engine
    if _engine is None:
        db_cfg = get_database_config()
        _engine = create_engine(db_cfg.database_url, future=True)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    # Autoflush is off: ingest and scoring flush explicitly between steps.
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autoflush=False,
            autocommit=False,
            future=True,
        )
    return _SessionLocal


def reset_engine() -> None:
    """
    Dispose of the cached engine so the next session re-reads CO_DATABASE_URL.
    """
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def ping_database(session: Session) -> None:
    """
    Run a trivial statement; raises the driver's error when the store is
    unreachable.
    """
    session.execute(text("SELECT 1"))


@contextmanager
def get_session() -> Iterator[Session]:
    """
    Unit of work for one CLI command or API request.

    Commits on success, rolls back on exception, and always closes.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "Base",
    "get_engine",
    "get_session",
    "get_session_factory",
    "ping_database",
    "reset_engine",
]
