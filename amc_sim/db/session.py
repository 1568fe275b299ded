"""Opinionated SQLAlchemy session helpers."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .engine import create_sync_engine


def get_sessionmaker(url: str | None = None, *, engine: Engine | None = None, **kwargs) -> sessionmaker:
    """Return a ``sessionmaker`` bound to ``engine`` or a freshly configured one."""

    bind = engine or create_sync_engine(url, **kwargs)
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """Provide a transactional scope: commit on success, roll back on error."""

    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
