"""
Wiring for the whole service: one record store, one event notifier, and
the managers and engine that share them.
"""

import logging
from datetime import datetime

from ..config import LibrarySettings, get_config
from ..database.session import RecordStore
from ..events import EventNotifier
from .base import Clock
from .catalog import CatalogManager
from .circulation import CirculationEngine
from .membership import MembershipManager
from .notifications import NotificationLog

logger = logging.getLogger(__name__)


class Library:
    """Explicitly constructed service graph with a process-scoped lifecycle."""

    def __init__(
        self,
        store: RecordStore,
        notifier: EventNotifier | None = None,
        settings: LibrarySettings | None = None,
        clock: Clock = datetime.now,
    ):
        settings = settings or get_config()
        self.settings = settings
        self.store = store
        self.notifier = notifier
        self.catalog = CatalogManager(store, notifier, clock=clock)
        self.members = MembershipManager(store, notifier, clock=clock)
        self.notifications = NotificationLog(store, clock=clock)
        self.circulation = CirculationEngine(
            store,
            self.notifications,
            notifier,
            loan_period_days=settings.loan_period_days,
            unknown_placeholder=settings.unknown_placeholder,
            clock=clock,
        )

    @classmethod
    def open(
        cls,
        database_url: str | None = None,
        settings: LibrarySettings | None = None,
        clock: Clock = datetime.now,
    ) -> "Library":
        """Open a store at ``database_url`` (configured file if None) with a fresh notifier."""
        settings = settings or get_config()
        store = RecordStore(database_url or settings.get_database_url()).open()
        notifier = EventNotifier(max_workers=settings.notifier_workers)
        return cls(store, notifier, settings=settings, clock=clock)

    def close(self) -> None:
        if self.notifier is not None:
            self.notifier.close()
        self.store.close()
        logger.info("Library closed")

    def __enter__(self) -> "Library":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


_library: Library | None = None


def get_library() -> Library:
    """Get the process-wide library, opening it from configuration on first use."""
    global _library  # noqa: PLW0603 - process-lifetime service graph
    if _library is None:
        _library = Library.open()
    return _library


def set_library(library: Library | None) -> None:
    """Install (or clear) the process-wide library. Used by tests and the server."""
    global _library  # noqa: PLW0603
    _library = library


def close_library() -> None:
    global _library  # noqa: PLW0603
    if _library is not None:
        _library.close()
        _library = None
