"""
Event notifier: fans state-change events out to subscribers.

Publishing is fire-and-forget. ``publish`` only enqueues; delivery runs on a
background executor, so a slow or failing subscriber can never block or fail
the mutation that produced the event. With the default single worker, events
reach each subscriber in the order they were published.

Delivery is best-effort and at-most-once. There is no replay.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    BOOK_ADDED = "book_added"
    BOOK_UPDATED = "book_updated"
    BOOK_DELETED = "book_deleted"
    MEMBER_ADDED = "member_added"
    BOOK_BORROWED = "book_borrowed"
    BOOK_RETURNED = "book_returned"
    BOOKS_UPDATED = "books_updated"


class Event(BaseModel):
    """A published state change."""

    type: EventType
    payload: Any = None
    published_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


Subscriber = Callable[[Event], None]


class EventNotifier:
    """In-process publish/subscribe hub with background delivery."""

    def __init__(self, max_workers: int = 1):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="event-notifier"
        )
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()
        self._closed = False

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber and return a function that removes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(
        self,
        event_type: EventType | str,
        payload: Any = None,
        published_at: datetime | None = None,
    ) -> Future | None:
        """
        Queue an event for every current subscriber.

        Never raises: an invalid event or a closed notifier is logged and
        dropped. Returns the delivery future, mostly useful to tests.
        """
        try:
            event = Event(
                type=EventType(event_type),
                payload=payload,
                published_at=published_at or datetime.now(),
            )
            with self._lock:
                if self._closed:
                    logger.warning("Event notifier closed, dropping %s event", event.type)
                    return None
                subscribers = list(self._subscribers)
                return self._executor.submit(self._deliver, event, subscribers)
        except Exception:
            logger.exception("Failed to publish %s event", event_type)
            return None

    def _deliver(self, event: Event, subscribers: list[Subscriber]) -> None:
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed handling %s event", callback, event.type
                )

    def flush(self, timeout: float | None = 5.0) -> None:
        """Block until queued deliveries drain. Exact only with a single worker."""
        with self._lock:
            if self._closed:
                return
            marker = self._executor.submit(lambda: None)
        marker.result(timeout=timeout)

    def close(self, wait: bool = True) -> None:
        """Stop accepting events; optionally wait for queued deliveries."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
