"""
Catalog manager: create, read, update, delete and search books.

``availableCopies`` is owned by the circulation engine. Catalog edits may
change ``totalCopies``, which moves the available count with it, but never
set the available count directly; updates and deletes take the same per-book
lock as borrow and return, so neither can interleave with a loan.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..database.book_repository import BookRepository
from ..database.errors import BookInUseError, BookNotFoundError, RecordValidationError
from ..database.loan_repository import LoanRepository
from ..database.session import safe_flush
from ..events import EventType
from ..models.book import Book, BookCreate, BookUpdate
from ..observability.context import trace_repository_operation
from .base import Service, parse_input

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("title", "author", "total_copies")


class CatalogManager(Service):
    """CRUD and search over the book collection."""

    def create(self, book_data: BookCreate | Mapping[str, Any]) -> Book:
        """Add a book with ``availableCopies == totalCopies`` (default 1)."""
        data = parse_input(BookCreate, book_data)
        with trace_repository_operation("catalog", "create"):
            with self.store.session_scope(write=True) as session:
                book = BookRepository(session).create(data, created_at=self.clock())
        logger.info("Added book %s (%s, %d copies)", book.id, book.title, book.total_copies)
        self._publish(EventType.BOOK_ADDED, book.model_dump(by_alias=True, mode="json"))
        return book

    def read(self, book_id: str) -> Book | None:
        with self.store.session_scope() as session:
            return BookRepository(session).get_by_id(book_id)

    def list(self) -> list[Book]:
        """Every book in store order."""
        with self.store.session_scope() as session:
            return BookRepository(session).get_all()

    def update(self, book_id: str, fields: BookUpdate | Mapping[str, Any]) -> Book:
        """
        Merge ``fields`` into the book.

        A new ``totalCopies`` re-derives ``availableCopies`` as the new total
        minus the book's open loans.

        Raises:
            BookNotFoundError: If the book does not exist
            RecordValidationError: On bad fields, a direct ``availableCopies``
                edit, or a total below the number of copies on loan
        """
        changes = parse_input(BookUpdate, fields).model_dump(exclude_unset=True)
        if "available_copies" in changes:
            raise RecordValidationError(
                "availableCopies is maintained by borrow and return and cannot be edited"
            )
        for name in _REQUIRED_FIELDS:
            if name in changes and changes[name] is None:
                raise RecordValidationError(f"{name} cannot be cleared")

        with trace_repository_operation("catalog", "update", book_id=book_id):
            with self.store.book_lock(book_id):
                with self.store.session_scope(write=True) as session:
                    books = BookRepository(session)
                    row = books.get_for_update(book_id)
                    if row is None:
                        raise BookNotFoundError(book_id)

                    if "total_copies" in changes:
                        new_total = changes.pop("total_copies")
                        on_loan = LoanRepository(session).count_open_for_book(book_id)
                        if new_total < on_loan:
                            raise RecordValidationError(
                                f"totalCopies {new_total} is below the {on_loan} copies on loan"
                            )
                        row.total_copies = new_total
                        row.available_copies = new_total - on_loan

                    for name, value in changes.items():
                        setattr(row, name, value)
                    safe_flush(session, "update book")
                    book = books.to_model(row)

                self._publish(EventType.BOOK_UPDATED, book.model_dump(by_alias=True, mode="json"))
        return book

    def delete(self, book_id: str) -> None:
        """
        Remove a book.

        Raises:
            BookNotFoundError: If the book does not exist
            BookInUseError: While any copy is still on loan
        """
        with trace_repository_operation("catalog", "delete", book_id=book_id):
            with self.store.book_lock(book_id):
                with self.store.session_scope(write=True) as session:
                    books = BookRepository(session)
                    row = books.get_for_update(book_id)
                    if row is None:
                        raise BookNotFoundError(book_id)
                    on_loan = LoanRepository(session).count_open_for_book(book_id)
                    if on_loan:
                        raise BookInUseError(book_id, on_loan)
                    books.delete_row(row)
                logger.info("Deleted book %s", book_id)
                self._publish(EventType.BOOK_DELETED, {"id": book_id})

    def search(self, query: str) -> list[Book]:
        """Case-insensitive substring match on title, author or category."""
        with self.store.session_scope() as session:
            return BookRepository(session).search(query)

    def list_by_category(self, category: str) -> list[Book]:
        with self.store.session_scope() as session:
            return BookRepository(session).by_category(category)

    def broadcast_catalog(self) -> list[Book]:
        """Publish the full catalog as a ``books_updated`` event for refreshing clients."""
        books = self.list()
        self._publish(
            EventType.BOOKS_UPDATED, [b.model_dump(by_alias=True, mode="json") for b in books]
        )
        return books
