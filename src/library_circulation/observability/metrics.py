"""Custom metrics for the library circulation service."""

import logfire

books_circulation = logfire.metric_counter(
    "library.books.circulation", description="Book circulation events (borrow/return)"
)

circulation_failures = logfire.metric_counter(
    "library.books.circulation_failures",
    description="Rejected borrow/return requests by error kind",
)


def record_circulation_event(event_type: str, category: str | None) -> None:
    books_circulation.add(1, {"event_type": event_type, "category": category or "none"})


def record_circulation_failure(operation: str, kind: str) -> None:
    circulation_failures.add(1, {"operation": operation, "kind": kind})
