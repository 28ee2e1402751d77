"""Sessions and transactions.

Every request gets its own Session from get_db(). Writes go through
transaction(), which commits on success and rolls back on any exception.
expire_on_commit is off so returned ORM rows stay readable after commit.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from spotcomments.db.engine import get_engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    return sessionmaker(bind=engine or get_engine(), autoflush=False, expire_on_commit=False)


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return create_session_factory()


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a request-scoped session."""
    with get_session_factory()() as db:
        yield db


@contextmanager
def transaction(db: Session) -> Iterator[None]:
    """Commit the enclosed writes, or roll them back and re-raise.

    Usage:
        with transaction(db):
            db.add(comment)
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
