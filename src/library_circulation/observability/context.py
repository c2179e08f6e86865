"""Context managers for tracing record store and circulation operations."""

from contextlib import contextmanager

import logfire


@contextmanager
def trace_repository_operation(repository: str, operation: str, **attributes):
    """Open a Logfire span around one manager or engine operation."""
    with logfire.span(
        "db.{repository}.{operation}",
        repository=repository,
        operation=operation,
        db_system="sqlite",
        **attributes,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.set_attribute("db.error", str(e))
            span.set_attribute("db.error_kind", getattr(e, "kind", type(e).__name__))
            raise
