"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file by default) and provides
small helpers used by scripts and tests.
"""

from sqlmodel import Session, SQLModel, create_engine

from . import models  # noqa: F401  (registers the tables on SQLModel.metadata)
from .config import settings


def make_engine(url: str = None):
    """Create an engine; SQLite connections may be shared across threads."""
    url = url or settings.DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = make_engine()


def create_db_and_tables(bind=None):
    """Create database tables using SQLModel metadata.

    Intended for local use and tests; deployments should manage the
    schema with their own migration tooling.
    """
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Yield a database `Session` and close it when the caller is done."""
    with Session(engine) as session:
        yield session
