"""Test configuration and fixtures for the library circulation service.

1. Isolated record stores - each test gets its own SQLite file
2. Configuration overrides - settings are reset around every test
3. A controllable clock - loans can be moved past their due date
4. A recording subscriber - published events can be asserted on
"""

import os
import threading
from collections.abc import Generator
from datetime import datetime, timedelta
from pathlib import Path

import logfire
import pytest

from library_circulation.config import reset_config
from library_circulation.database.session import RecordStore
from library_circulation.events import Event, EventNotifier
from library_circulation.services import Library, set_library

logfire.configure(send_to_logfire=False, console=False)


class FakeClock:
    """A clock that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingSubscriber:
    """Collects every delivered event in arrival order."""

    def __init__(self):
        self.events: list[Event] = []
        self._lock = threading.Lock()

    def __call__(self, event: Event) -> None:
        with self._lock:
            self.events.append(event)

    def of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.type == event_type]

    @property
    def types(self) -> list[str]:
        return [e.type for e in self.events]


# === Environment Fixtures ===


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path) -> Generator[None, None, None]:
    """Run every test with fresh settings pointing at a temporary database."""
    original_env = os.environ.copy()
    for key in list(os.environ):
        if key.startswith("LIBRARY_"):
            del os.environ[key]
    os.environ["LIBRARY_DATABASE_PATH"] = str(tmp_path / "configured.db")
    reset_config()

    yield

    os.environ.clear()
    os.environ.update(original_env)
    reset_config()


# === Record Store Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_library.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def store(test_database_url: str) -> Generator[RecordStore, None, None]:
    record_store = RecordStore(test_database_url).open()
    yield record_store
    record_store.close()


# === Service Fixtures ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 10, 0, 0))


@pytest.fixture
def notifier() -> Generator[EventNotifier, None, None]:
    event_notifier = EventNotifier()
    yield event_notifier
    event_notifier.close()


@pytest.fixture
def recorder(notifier: EventNotifier) -> RecordingSubscriber:
    subscriber = RecordingSubscriber()
    notifier.subscribe(subscriber)
    return subscriber


@pytest.fixture
def library(store: RecordStore, notifier: EventNotifier, clock: FakeClock) -> Library:
    return Library(store, notifier, clock=clock)


@pytest.fixture
def installed_library(library: Library) -> Generator[Library, None, None]:
    """The test library installed as the process-wide one the tool handlers use."""
    set_library(library)
    yield library
    set_library(None)


@pytest.fixture
def book(library: Library):
    return library.catalog.create(
        {
            "title": "The Left Hand of Darkness",
            "author": "Ursula K. Le Guin",
            "category": "Science Fiction",
            "publishYear": 1969,
            "totalCopies": 2,
        }
    )


@pytest.fixture
def single_copy_book(library: Library):
    return library.catalog.create(
        {"title": "Dune", "author": "Frank Herbert", "category": "Science Fiction"}
    )


@pytest.fixture
def member(library: Library):
    return library.members.create({"name": "Ada Lovelace", "email": "ada@example.com"})


@pytest.fixture
def other_member(library: Library):
    return library.members.create({"name": "Alan Turing", "email": "alan@example.com"})
