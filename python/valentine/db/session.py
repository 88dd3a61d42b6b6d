"""Session factories and the transaction helper.

Requests get sessions from the factory stored on app.state (see
valentine.api.deps). Accept-flow collaborators open their own short-lived
session per call from the same factory, because they run on threadpool
workers after the request has finished.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from valentine.db.engine import get_engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Build a sessionmaker; defaults to the cached settings engine.

    Objects stay loaded after commit so services can return them.
    """
    return sessionmaker(
        bind=engine if engine is not None else get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return create_session_factory()


@contextmanager
def transaction(db: Session) -> Iterator[None]:
    """Commit the block's work, or roll it back and re-raise.

    Usage:
        with transaction(db):
            db.add(page)
            db.flush()  # surface IntegrityError inside the block
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
