"""Database connection and session management using SQLModel."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from sqlmodel import Session, SQLModel, create_engine

from .config import DATA_DIR
from .logging_config import get_logger

logger = get_logger(__name__)

DB_PATH = DATA_DIR / "library.db"
SQLITE_URL = f"sqlite:///{DB_PATH}"

# check_same_thread=False: the monitor runs syncs from a worker thread
engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})


def init_db() -> None:
    """Create database tables."""
    # Import models to ensure they are registered with SQLModel.metadata
    from . import models  # noqa: F401

    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
        conn.exec_driver_sql("PRAGMA foreign_keys=ON;")

    SQLModel.metadata.create_all(engine)


def reset_database() -> None:
    """Delete the database file and recreate it."""
    engine.dispose()
    if DB_PATH.exists():
        DB_PATH.unlink()
    init_db()


def get_engine():
    """Return the global engine instance."""
    return engine


_library_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _library_lock(key: str) -> threading.Lock:
    with _locks_guard:
        return _library_locks.setdefault(key, threading.Lock())


class TransactionSession:
    """All-or-nothing boundary around a SQLModel session.

    At most one transaction per library key runs at a time within the
    process. The body commits on success and rolls back on any exception.
    """

    def __init__(self, session: Session, library_key: str = "default"):
        self.session = session
        self.library_key = library_key

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        with _library_lock(self.library_key):
            try:
                yield self.session
                self.session.commit()
            except BaseException:
                logger.debug(f"Rolling back transaction for {self.library_key}")
                self.session.rollback()
                raise
