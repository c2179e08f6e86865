"""
Record store: connection, session and lock management for SQLAlchemy.

The store is an explicitly constructed component. Callers ``open()`` it once
per process (or per test), hand it to the managers and the circulation
engine, and ``close()`` it at shutdown. It knows nothing about business
rules; it offers:

1. Transactional sessions - ``session_scope`` commits or rolls back as a unit
2. Writer serialisation - SQLite allows one writer, so write scopes queue
3. Keyed locks - ``book_lock`` serialises every mutation of one book
"""

import logging
import threading
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from .errors import RepositoryException, StorageError
from .schema import Base

logger = logging.getLogger(__name__)

MEMORY_URL = "sqlite://"


def _casefold(value: str | None) -> str | None:
    """Unicode case folding for SQL; SQLite's own ``lower`` only folds ASCII."""
    return value.casefold() if value is not None else None


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class KeyedLockRegistry:
    """
    One re-entrant lock per key, alive only while someone holds or waits for it.

    Entries are reference counted: the last user to leave removes the entry,
    so ids that were only looked up once (unknown or deleted books) do not
    accumulate. Two users of the same key always share one lock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _LockEntry] = {}

    @contextmanager
    def hold(self, key: str) -> Generator[None, None, None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _LockEntry()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


class RecordStore:
    """
    Durable key-indexed collections for books, members, loans and notifications.

    Backed by SQLite through SQLAlchemy. A file database gives each session
    its own connection, so readers only ever see committed rows. An in-memory
    database shares a single connection, so every scope (read or write) is
    serialised through the writer lock.
    """

    def __init__(self, database_url: str | None = None):
        """
        Args:
            database_url: SQLAlchemy URL. If None, uses the configured SQLite file.
        """
        if database_url is None:
            db_path = get_config().database_path
            if not db_path.is_absolute():
                db_path = Path.cwd() / db_path
            db_path.parent.mkdir(exist_ok=True, parents=True)
            database_url = f"sqlite:///{db_path}"
            logger.info("Using SQLite record store at: %s", db_path)

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._write_lock = threading.RLock()
        self._book_locks = KeyedLockRegistry()

    @property
    def is_memory(self) -> bool:
        return self.database_url in (MEMORY_URL, "sqlite:///:memory:")

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if self.is_memory:
                self._engine = create_engine(
                    self.database_url,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    echo=False,
                )
            else:
                self._engine = create_engine(
                    self.database_url,
                    connect_args={"check_same_thread": False, "timeout": 30},
                    echo=False,
                )

            is_file = not self.is_memory

            @event.listens_for(self._engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA busy_timeout=30000")
                if is_file:
                    cursor.execute("PRAGMA journal_mode=WAL")
                cursor.close()
                dbapi_connection.create_function("casefold", 1, _casefold, deterministic=True)

            logger.info("Record store engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def open(self, drop_existing: bool = False) -> "RecordStore":
        """Create the schema if needed and return the store."""
        engine = self.engine
        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        logger.info("Record store ready")
        return self

    def close(self) -> None:
        """Dispose of the engine. The store can be re-opened afterwards."""
        if self._engine:
            self._engine.dispose()
            logger.info("Record store engine disposed")
        self._engine = None
        self._session_factory = None

    def __enter__(self) -> "RecordStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def session_scope(self, write: bool = False) -> Generator[Session, None, None]:
        """
        Provide a transactional scope.

        ```python
        with store.session_scope(write=True) as session:
            book = BookRepository(session).get_for_update(book_id)
            book.available_copies -= 1
        # committed here, or rolled back if the block raised
        ```

        Args:
            write: Serialise against other writers. Required for any mutation.

        Raises:
            StorageError: If SQLAlchemy fails while running or committing
        """
        serialise = write or self.is_memory
        if serialise:
            self._write_lock.acquire()
        session = self.session_factory()
        try:
            yield session
            session.commit()
            logger.debug("Record store transaction committed")
        except RepositoryException:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.exception("Record store error, rolling back")
            session.rollback()
            raise StorageError(f"Record store operation failed: {e!s}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
            if serialise:
                self._write_lock.release()

    @contextmanager
    def book_lock(self, book_id: str) -> Generator[None, None, None]:
        """Hold the lock that serialises all mutations of one book."""
        with self._book_locks.hold(book_id):
            yield

    def verify_connection(self) -> bool:
        """Return True if the store answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.exception("Record store connection failed")
            return False


def safe_flush(session: Session, operation: str) -> None:
    """
    Flush pending changes, translating driver failures.

    Raises:
        StorageError: If the flush fails
    """
    try:
        session.flush()
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError(f"Record store operation '{operation}' failed: {e!s}") from e


T = TypeVar("T")


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, translating driver failures.

    Raises:
        StorageError: If the query fails
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed")
        raise StorageError(f"{error_msg}: record store query failed") from e
