"""Engine and session helpers for the SQLite document store."""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .schema import create_all


def get_engine(sqlite_path: Union[str, Path]) -> Engine:
    """
    Open the SQLite file at sqlite_path, creating it and the documents table if missing.

    Args:
        sqlite_path: Database file path (parent directories must exist)

    Returns:
        SQLAlchemy engine bound to the file
    """
    engine = create_engine(f"sqlite:///{sqlite_path}", future=True)
    create_all(engine)
    return engine


def get_session(sqlite_path: Union[str, Path]) -> Session:
    """Get a session over the document store (caller must close it)."""
    return sessionmaker(bind=get_engine(sqlite_path), autoflush=False, autocommit=False)()


@contextmanager
def session_context(sqlite_path: Union[str, Path]) -> Generator[Session, None, None]:
    """
    Session scope for one CLI command.

    Read commands only query through SqliteDocumentStore. The fixture loader
    commits its own writes, so nothing is committed here: an exception rolls
    back whatever was pending and the session is always closed.

    Usage:
        with session_context(settings["storage"]["sqlite_path"]) as session:
            store = SqliteDocumentStore(session)
    """
    session = get_session(sqlite_path)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
