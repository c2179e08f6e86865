"""Tests for the record store: transactions, locks and error translation."""

import threading
from datetime import datetime

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from library_circulation.database import (
    MEMORY_URL,
    BookRepository,
    LoanRepository,
    RecordStore,
    RecordValidationError,
    StorageError,
    safe_flush,
)
from library_circulation.database.schema import Book as BookDB
from library_circulation.models import BookCreate

NOW = datetime(2024, 3, 1, 9, 0, 0)


def add_book(store, title="Emma", copies=1):
    with store.session_scope(write=True) as session:
        return BookRepository(session).create(
            BookCreate(title=title, author="Jane Austen", total_copies=copies), NOW
        )


class TestSessionScope:
    def test_commits_on_success(self, store):
        book = add_book(store)
        with store.session_scope() as session:
            assert BookRepository(session).get_by_id(book.id) == book

    def test_rolls_back_on_domain_error(self, store):
        with pytest.raises(RecordValidationError):
            with store.session_scope(write=True) as session:
                BookRepository(session).create(
                    BookCreate(title="Emma", author="Jane Austen"), NOW
                )
                raise RecordValidationError("changed my mind")

        with store.session_scope() as session:
            assert BookRepository(session).count() == 0

    def test_constraint_violation_becomes_storage_error(self, store):
        book = add_book(store, copies=1)

        with pytest.raises(StorageError) as exc_info:
            with store.session_scope(write=True) as session:
                repo = BookRepository(session)
                repo.adjust_available(repo.get_for_update(book.id), -2)

        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value.__cause__, IntegrityError)
        with store.session_scope() as session:
            assert BookRepository(session).get_by_id(book.id).available_copies == 1

    def test_raw_driver_error_is_translated(self, store):
        with pytest.raises(StorageError):
            with store.session_scope() as session:
                session.execute(text("SELECT * FROM no_such_table"))

    def test_safe_flush_rolls_back(self, store):
        with pytest.raises(StorageError, match="bad insert"):
            with store.session_scope(write=True) as session:
                session.add(
                    BookDB(
                        id="x",
                        title="T",
                        author="A",
                        total_copies=0,
                        available_copies=0,
                        created_at=NOW,
                    )
                )
                safe_flush(session, "bad insert")


class TestStoreLifecycle:
    def test_memory_store_round_trip(self):
        with RecordStore(MEMORY_URL) as store:
            assert store.is_memory
            book = add_book(store, copies=2)
            with store.session_scope() as session:
                assert BookRepository(session).get_by_id(book.id).total_copies == 2
        assert not store.is_open

    def test_reopen_keeps_file_data(self, test_database_url):
        store = RecordStore(test_database_url).open()
        book = add_book(store)
        store.close()

        store.open()
        with store.session_scope() as session:
            assert BookRepository(session).get_by_id(book.id) is not None
        store.close()

    def test_drop_existing_clears_tables(self, test_database_url):
        store = RecordStore(test_database_url).open()
        add_book(store)
        store.open(drop_existing=True)
        with store.session_scope() as session:
            assert BookRepository(session).count() == 0
        store.close()

    def test_verify_connection(self, store):
        assert store.verify_connection() is True


class TestBookLock:
    def test_same_book_shares_one_lock(self, store):
        entered = threading.Event()
        release = threading.Event()

        def hold():
            with store.book_lock("b1"):
                entered.set()
                release.wait(5)

        holder = threading.Thread(target=hold)
        holder.start()
        assert entered.wait(5)

        waiter_in = threading.Event()

        def wait_for_b1():
            with store.book_lock("b1"):
                waiter_in.set()

        waiter = threading.Thread(target=wait_for_b1)
        waiter.start()
        assert not waiter_in.wait(0.2)

        with store.book_lock("b2"):
            assert len(store._book_locks) == 2

        release.set()
        holder.join(5)
        waiter.join(5)
        assert waiter_in.is_set()

    def test_registry_drops_released_keys(self, store):
        with store.book_lock("b1"):
            with store.book_lock("b1"):
                assert len(store._book_locks) == 1
            assert len(store._book_locks) == 1
        assert len(store._book_locks) == 0

    def test_registry_drops_key_when_body_raises(self, store):
        with pytest.raises(RuntimeError):
            with store.book_lock("b1"):
                raise RuntimeError("boom")
        assert len(store._book_locks) == 0


class TestRepositories:
    def test_search_orders_by_store_order(self, store):
        for title in ["Beta", "Alpha"]:
            add_book(store, title=title)
        with store.session_scope() as session:
            assert [b.title for b in BookRepository(session).search("a")] == ["Beta", "Alpha"]

    def test_open_counts_by_book(self, store):
        book = add_book(store, copies=3)
        with store.session_scope(write=True) as session:
            loans = LoanRepository(session)
            first = loans.create(book.id, "m1", NOW, NOW.replace(day=15))
            loans.create(book.id, "m2", NOW, NOW.replace(day=15))
            loans.mark_returned(first, NOW.replace(day=2))

        with store.session_scope() as session:
            loans = LoanRepository(session)
            assert loans.open_counts_by_book() == {book.id: 1}
            assert loans.count_open_for_book(book.id) == 1
            assert loans.count_open_for_book("other") == 0

    def test_get_rows_by_ids_skips_missing(self, store):
        book = add_book(store)
        with store.session_scope() as session:
            rows = BookRepository(session).get_rows_by_ids({book.id, "missing"})
        assert list(rows) == [book.id]
