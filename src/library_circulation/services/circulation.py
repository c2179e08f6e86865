"""
Circulation engine: borrow and return, and the loan views built on them.

The engine owns the availability invariant

    book.available_copies == book.total_copies - open loans of the book

and keeps it under concurrent requests:

1. Per-book lock - borrow, return and catalog edits of one book run one at
   a time, so the availability check and the decrement cannot interleave
2. One transaction - the count change, the loan write and the member
   notification commit together or not at all
3. Fail fast - every precondition is checked before the first write
4. Guarded transition - a loan moves ``borrowed -> returned`` once; a second
   return is rejected instead of incrementing the count again

Events are published after commit while the book lock is still held, so
subscribers see one book's events in the order the operations ran.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..config import get_config
from ..database.book_repository import BookRepository
from ..database.errors import (
    AlreadyReturnedError,
    BookNotFoundError,
    BookUnavailableError,
    LoanNotFoundError,
    MemberNotFoundError,
    RecordValidationError,
    RepositoryException,
)
from ..database.loan_repository import LoanRepository
from ..database.member_repository import MemberRepository
from ..database.schema import Loan as LoanDB
from ..database.schema import LoanStatusEnum
from ..database.session import RecordStore
from ..events import EventNotifier, EventType
from ..models.loan import EnrichedLoan, InvariantViolation, LoanReceipt, ReturnReceipt
from ..models.notification import NotificationType
from ..observability.context import trace_repository_operation
from ..observability.metrics import record_circulation_event, record_circulation_failure
from .base import Clock, Service
from .notifications import NotificationLog

logger = logging.getLogger(__name__)


class CirculationEngine(Service):
    """Orchestrates borrow/return against the catalog, members and loans."""

    def __init__(
        self,
        store: RecordStore,
        notifications: NotificationLog | None = None,
        notifier: EventNotifier | None = None,
        *,
        loan_period_days: int | None = None,
        unknown_placeholder: str | None = None,
        clock: Clock = datetime.now,
    ):
        super().__init__(store, notifier, clock)
        settings = get_config()
        self.notifications = notifications or NotificationLog(store, clock=clock)
        if loan_period_days is None:
            loan_period_days = settings.loan_period_days
        if loan_period_days < 1:
            raise ValueError(f"loan_period_days must be at least 1, got {loan_period_days}")
        self.loan_period = timedelta(days=loan_period_days)
        self.unknown_placeholder = (
            settings.unknown_placeholder if unknown_placeholder is None else unknown_placeholder
        )

    # ------------------------------------------------------------------
    # Borrow / return
    # ------------------------------------------------------------------

    def borrow(self, book_id: str, member_id: str) -> LoanReceipt:
        """
        Lend one copy of a book to a member.

        Raises:
            BookNotFoundError: If the book does not exist
            MemberNotFoundError: If the member does not exist
            BookUnavailableError: If no copies are available
        """
        try:
            with trace_repository_operation(
                "circulation", "borrow", book_id=book_id, member_id=member_id
            ):
                with self.store.book_lock(book_id):
                    now = self.clock()
                    with self.store.session_scope(write=True) as session:
                        books = BookRepository(session)
                        book = books.get_for_update(book_id)
                        if book is None:
                            raise BookNotFoundError(book_id)
                        member = MemberRepository(session).get_row(member_id)
                        if member is None:
                            raise MemberNotFoundError(member_id)
                        if book.available_copies <= 0:
                            raise BookUnavailableError(book_id, book.title)

                        books.adjust_available(book, -1)
                        loans = LoanRepository(session)
                        loan = loans.to_model(
                            loans.create(book_id, member_id, now, now + self.loan_period)
                        )
                        self.notifications.append(
                            member_id,
                            f'You borrowed "{book.title}" by {book.author}',
                            NotificationType.BORROW,
                            session=session,
                        )
                        title, category, member_name = book.title, book.category, member.name

                    self._publish(
                        EventType.BOOK_BORROWED,
                        {
                            **loan.model_dump(by_alias=True, mode="json"),
                            "memberName": member_name,
                            "bookTitle": title,
                        },
                    )
        except RepositoryException as e:
            record_circulation_failure("borrow", e.kind)
            logger.info("Borrow of book %s by member %s rejected: %s", book_id, member_id, e)
            raise

        record_circulation_event("borrow", category)
        logger.info("Loan %s: book %s lent to member %s", loan.id, book_id, member_id)
        return LoanReceipt(
            loan_id=loan.id, book_id=book_id, member_id=member_id, due_date=loan.due_date
        )

    def return_loan(self, loan_id: str, member_id: str | None = None) -> ReturnReceipt:
        """
        Close an open loan and put its copy back on the shelf.

        Args:
            loan_id: The loan to close
            member_id: Optional owner check; must match the loan's member

        Raises:
            LoanNotFoundError: If the loan does not exist
            AlreadyReturnedError: If the loan is not ``borrowed``
            RecordValidationError: If ``member_id`` does not own the loan
        """
        try:
            with trace_repository_operation("circulation", "return", loan_id=loan_id):
                book_id = self._book_of_loan(loan_id)
                with self.store.book_lock(book_id):
                    now = self.clock()
                    with self.store.session_scope(write=True) as session:
                        loans = LoanRepository(session)
                        row = loans.get_row(loan_id)
                        if row is None:
                            raise LoanNotFoundError(loan_id)
                        if member_id is not None and row.member_id != member_id:
                            raise RecordValidationError(
                                f"Loan {loan_id} does not belong to member {member_id}"
                            )
                        if row.status != LoanStatusEnum.BORROWED:
                            raise AlreadyReturnedError(loan_id)

                        loans.mark_returned(row, now)
                        books = BookRepository(session)
                        book = books.get_for_update(book_id)
                        if book is None:
                            logger.warning(
                                "Loan %s references missing book %s; no copy count to restore",
                                loan_id,
                                book_id,
                            )
                            message, category = "Book returned successfully", None
                        else:
                            books.adjust_available(book, 1)
                            message = f'You returned "{book.title}" by {book.author}'
                            category = book.category
                        self.notifications.append(
                            row.member_id, message, NotificationType.RETURN, session=session
                        )
                        loan = loans.to_model(row)

                    receipt = ReturnReceipt(
                        loan_id=loan.id, book_id=loan.book_id, return_date=now
                    )
                    self._publish(
                        EventType.BOOK_RETURNED,
                        {
                            **receipt.model_dump(by_alias=True, mode="json"),
                            "memberId": loan.member_id,
                        },
                    )
        except RepositoryException as e:
            record_circulation_failure("return", e.kind)
            logger.info("Return of loan %s rejected: %s", loan_id, e)
            raise

        record_circulation_event("return", category)
        logger.info("Loan %s returned", loan_id)
        return receipt

    def _book_of_loan(self, loan_id: str) -> str:
        with self.store.session_scope() as session:
            row = LoanRepository(session).get_row(loan_id)
            if row is None:
                raise LoanNotFoundError(loan_id)
            return row.book_id

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_loan(self, loan_id: str) -> EnrichedLoan | None:
        with self.store.session_scope() as session:
            row = LoanRepository(session).get_row(loan_id)
            if row is None:
                return None
            return self._enrich(session, [row])[0]

    def active_loans(self) -> list[EnrichedLoan]:
        """Open loans, enriched, soonest due first."""
        with self.store.session_scope() as session:
            return self._enrich(session, LoanRepository(session).open_loans())

    def overdue_loans(self) -> list[EnrichedLoan]:
        """Open loans past their due date right now, soonest due first."""
        return [loan for loan in self.active_loans() if loan.is_overdue]

    def borrowing_history(self, member_id: str) -> list[EnrichedLoan]:
        """All loans of a member in store order, not sorted by date."""
        with self.store.session_scope() as session:
            return self._enrich(session, LoanRepository(session).for_member(member_id))

    def check_availability_invariant(self) -> list[InvariantViolation]:
        """Return every book whose available count disagrees with its open loans."""
        with self.store.session_scope() as session:
            open_counts = LoanRepository(session).open_counts_by_book()
            violations = []
            for book in BookRepository(session).get_all():
                open_loans = open_counts.get(book.id, 0)
                if book.available_copies != book.total_copies - open_loans:
                    violations.append(
                        InvariantViolation(
                            book_id=book.id,
                            total_copies=book.total_copies,
                            available_copies=book.available_copies,
                            open_loans=open_loans,
                        )
                    )
        for violation in violations:
            logger.error(
                "Availability invariant broken for book %s: available=%d expected=%d",
                violation.book_id,
                violation.available_copies,
                violation.expected_available,
            )
        return violations

    def _enrich(self, session: Session, rows: list[LoanDB]) -> list[EnrichedLoan]:
        """Join loans with book title/author and member name/email."""
        now = self.clock()
        loans = LoanRepository(session)
        books = BookRepository(session).get_rows_by_ids({r.book_id for r in rows})
        members = MemberRepository(session).get_rows_by_ids({r.member_id for r in rows})
        unknown = self.unknown_placeholder

        enriched = []
        for row in rows:
            loan = loans.to_model(row)
            book = books.get(loan.book_id)
            member = members.get(loan.member_id)
            enriched.append(
                EnrichedLoan(
                    **loan.model_dump(),
                    title=book.title if book else unknown,
                    author=book.author if book else unknown,
                    name=member.name if member else unknown,
                    email=member.email if member else "",
                    is_overdue=loan.overdue_at(now),
                )
            )
        return enriched
