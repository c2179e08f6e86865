"""
Tests for the circulation engine.

Covers the availability invariant, the borrow/return lifecycle, the
single ``borrowed -> returned`` transition, the derived overdue flag and
the enriched loan views.
"""

from datetime import timedelta

import pytest

from library_circulation.database.errors import (
    AlreadyReturnedError,
    BookNotFoundError,
    BookUnavailableError,
    LoanNotFoundError,
    MemberNotFoundError,
    RecordValidationError,
)
from library_circulation.database.schema import Book as BookDB
from library_circulation.models.loan import LoanStatus
from library_circulation.services.notifications import NotificationLog


def assert_invariant_holds(library):
    assert library.circulation.check_availability_invariant() == []
    for book in library.catalog.list():
        assert 0 <= book.available_copies <= book.total_copies


class TestBorrow:
    """Lending a copy."""

    def test_borrow_decrements_available_and_creates_open_loan(
        self, library, book, member, clock
    ):
        receipt = library.circulation.borrow(book.id, member.id)

        assert receipt.book_id == book.id
        assert receipt.member_id == member.id
        assert receipt.due_date == clock.now + timedelta(days=14)
        assert library.catalog.read(book.id).available_copies == 1

        loan = library.circulation.get_loan(receipt.loan_id)
        assert loan.status == LoanStatus.BORROWED
        assert loan.return_date is None
        assert loan.borrow_date == clock.now
        assert_invariant_holds(library)

    def test_loan_period_follows_configuration(self, store, clock, book, member):
        from library_circulation.services import CirculationEngine

        engine = CirculationEngine(store, loan_period_days=7, clock=clock)
        receipt = engine.borrow(book.id, member.id)
        assert receipt.due_date == clock.now + timedelta(days=7)

    @pytest.mark.parametrize("days", [0, -3])
    def test_loan_period_must_be_positive(self, store, clock, days):
        from library_circulation.services import CirculationEngine

        with pytest.raises(ValueError):
            CirculationEngine(store, loan_period_days=days, clock=clock)

    def test_borrow_unavailable_book_leaves_records_unchanged(
        self, library, single_copy_book, member, other_member
    ):
        library.circulation.borrow(single_copy_book.id, member.id)
        book_before = library.catalog.read(single_copy_book.id)
        loans_before = library.circulation.active_loans()
        notifications_before = library.notifications.list(other_member.id)

        with pytest.raises(BookUnavailableError) as exc_info:
            library.circulation.borrow(single_copy_book.id, other_member.id)

        assert exc_info.value.kind == "BookUnavailable"
        assert exc_info.value.status_code == 409
        assert "Dune" in str(exc_info.value)
        assert library.catalog.read(single_copy_book.id) == book_before
        assert library.circulation.active_loans() == loans_before
        assert library.notifications.list(other_member.id) == notifications_before
        assert library.circulation.borrowing_history(other_member.id) == []

    def test_borrow_unknown_book(self, library, member):
        with pytest.raises(BookNotFoundError):
            library.circulation.borrow("no-such-book", member.id)

    def test_failed_borrows_release_their_book_locks(self, library, store, member):
        for i in range(500):
            with pytest.raises(BookNotFoundError):
                library.circulation.borrow(f"missing-{i}", member.id)
        assert len(store._book_locks) == 0

    def test_borrow_unknown_member(self, library, book):
        with pytest.raises(MemberNotFoundError):
            library.circulation.borrow(book.id, "no-such-member")
        assert library.catalog.read(book.id).available_copies == 2
        assert library.circulation.active_loans() == []

    def test_failure_mid_transaction_rolls_back_every_write(
        self, library, book, member, monkeypatch
    ):
        def broken_append(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(NotificationLog, "append", broken_append)

        with pytest.raises(RuntimeError):
            library.circulation.borrow(book.id, member.id)

        assert library.catalog.read(book.id).available_copies == 2
        assert library.circulation.active_loans() == []
        assert library.circulation.borrowing_history(member.id) == []


class TestReturn:
    """Closing a loan."""

    def test_borrow_then_return_restores_available_exactly(self, library, book, member):
        before = library.catalog.read(book.id).available_copies

        receipt = library.circulation.borrow(book.id, member.id)
        result = library.circulation.return_loan(receipt.loan_id)

        assert result.success is True
        assert result.loan_id == receipt.loan_id
        assert library.catalog.read(book.id).available_copies == before
        assert_invariant_holds(library)

    def test_return_marks_loan_returned_with_date(self, library, book, member, clock):
        receipt = library.circulation.borrow(book.id, member.id)
        clock.advance(days=3)

        result = library.circulation.return_loan(receipt.loan_id)

        loan = library.circulation.get_loan(receipt.loan_id)
        assert loan.status == LoanStatus.RETURNED
        assert loan.return_date == clock.now
        assert result.return_date == clock.now

    def test_second_return_is_rejected_and_increments_once(self, library, book, member):
        receipt = library.circulation.borrow(book.id, member.id)
        library.circulation.return_loan(receipt.loan_id)

        with pytest.raises(AlreadyReturnedError) as exc_info:
            library.circulation.return_loan(receipt.loan_id)

        assert exc_info.value.status_code == 409
        assert library.catalog.read(book.id).available_copies == 2
        assert_invariant_holds(library)

    def test_return_unknown_loan(self, library):
        with pytest.raises(LoanNotFoundError) as exc_info:
            library.circulation.return_loan("no-such-loan")
        assert exc_info.value.kind == "NotFound"

    def test_return_checks_member_when_given(self, library, book, member, other_member):
        receipt = library.circulation.borrow(book.id, member.id)

        with pytest.raises(RecordValidationError):
            library.circulation.return_loan(receipt.loan_id, member_id=other_member.id)
        assert library.catalog.read(book.id).available_copies == 1

        library.circulation.return_loan(receipt.loan_id, member_id=member.id)
        assert library.catalog.read(book.id).available_copies == 2


class TestSingleCopyScenario:
    """A one-copy book passed from one member to another."""

    def test_last_copy_moves_between_members(
        self, library, single_copy_book, member, other_member
    ):
        book_id = single_copy_book.id
        assert library.catalog.read(book_id).available_copies == 1

        loan_a = library.circulation.borrow(book_id, member.id)
        assert library.catalog.read(book_id).available_copies == 0

        with pytest.raises(BookUnavailableError):
            library.circulation.borrow(book_id, other_member.id)

        library.circulation.return_loan(loan_a.loan_id)
        assert library.catalog.read(book_id).available_copies == 1
        assert library.circulation.get_loan(loan_a.loan_id).status == LoanStatus.RETURNED

        loan_b = library.circulation.borrow(book_id, other_member.id)
        assert loan_b.member_id == other_member.id
        assert library.catalog.read(book_id).available_copies == 0
        assert_invariant_holds(library)


class TestLoanViews:
    """Active loans, overdue loans and borrowing history."""

    def test_active_loans_exclude_returned_and_sort_by_due_date(
        self, library, book, single_copy_book, member, other_member, clock
    ):
        start = clock.now
        clock.advance(days=5)
        later = library.circulation.borrow(book.id, member.id)
        clock.now = start
        sooner = library.circulation.borrow(single_copy_book.id, other_member.id)
        returned = library.circulation.borrow(book.id, other_member.id)
        library.circulation.return_loan(returned.loan_id)

        active = library.circulation.active_loans()

        assert [loan.id for loan in active] == [sooner.loan_id, later.loan_id]
        assert all(loan.status == LoanStatus.BORROWED for loan in active)
        assert active == sorted(active, key=lambda loan: loan.due_date)

    def test_active_loans_are_enriched(self, library, book, member):
        library.circulation.borrow(book.id, member.id)

        [loan] = library.circulation.active_loans()

        assert loan.title == "The Left Hand of Darkness"
        assert loan.author == "Ursula K. Le Guin"
        assert loan.name == "Ada Lovelace"
        assert loan.email == "ada@example.com"

    def test_overdue_is_derived_at_read_time(self, library, book, member, clock):
        receipt = library.circulation.borrow(book.id, member.id)
        assert library.circulation.overdue_loans() == []

        clock.advance(days=14)
        assert library.circulation.get_loan(receipt.loan_id).is_overdue is False

        clock.advance(seconds=1)
        [overdue] = library.circulation.overdue_loans()
        assert overdue.id == receipt.loan_id
        assert overdue.is_overdue is True

        library.circulation.return_loan(receipt.loan_id)
        assert library.circulation.overdue_loans() == []
        assert library.circulation.get_loan(receipt.loan_id).is_overdue is False

    def test_borrowing_history_includes_open_and_returned(
        self, library, book, single_copy_book, member
    ):
        first = library.circulation.borrow(book.id, member.id)
        library.circulation.return_loan(first.loan_id)
        second = library.circulation.borrow(single_copy_book.id, member.id)

        history = library.circulation.borrowing_history(member.id)

        assert [loan.id for loan in history] == [first.loan_id, second.loan_id]
        assert history[0].status == LoanStatus.RETURNED
        assert history[0].title == "The Left Hand of Darkness"
        assert history[0].author == "Ursula K. Le Guin"
        assert history[1].status == LoanStatus.BORROWED
        assert history[1].title == "Dune"
        assert history[1].author == "Frank Herbert"

    def test_history_of_unknown_member_is_empty(self, library):
        assert library.circulation.borrowing_history("nobody") == []

    def test_deleted_book_resolves_to_placeholder(self, library, book, member):
        receipt = library.circulation.borrow(book.id, member.id)
        library.circulation.return_loan(receipt.loan_id)
        library.catalog.delete(book.id)

        [loan] = library.circulation.borrowing_history(member.id)

        assert loan.title == "Unknown"
        assert loan.author == "Unknown"
        assert loan.name == "Ada Lovelace"

    def test_get_unknown_loan_returns_none(self, library):
        assert library.circulation.get_loan("missing") is None


class TestAvailabilityInvariant:
    """The invariant check itself."""

    def test_reports_a_corrupted_count(self, library, store, book, member):
        library.circulation.borrow(book.id, member.id)
        with store.session_scope(write=True) as session:
            row = session.query(BookDB).filter_by(id=book.id).one()
            row.available_copies = 0

        [violation] = library.circulation.check_availability_invariant()

        assert violation.book_id == book.id
        assert violation.open_loans == 1
        assert violation.available_copies == 0
        assert violation.expected_available == 1
