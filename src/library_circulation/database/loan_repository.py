"""
Loan repository: raw access to loan rows.

Business rules (availability, the single ``borrowed -> returned``
transition) live in the circulation engine; this module only reads and
writes rows inside the engine's transaction.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import func, select

from ..database.schema import Loan as LoanDB
from ..database.schema import LoanStatusEnum
from ..database.session import safe_flush, safe_query
from ..models.loan import Loan as LoanModel
from ..models.loan import LoanStatus
from .repository import BaseRepository


class LoanRepository(BaseRepository[LoanDB, LoanModel]):
    """Repository for loan rows."""

    @property
    def model_class(self):
        return LoanDB

    def to_model(self, db_obj: LoanDB) -> LoanModel:
        return LoanModel(
            id=db_obj.id,
            book_id=db_obj.book_id,
            member_id=db_obj.member_id,
            borrow_date=db_obj.borrow_date,
            due_date=db_obj.due_date,
            status=LoanStatus(db_obj.status.value),
            return_date=db_obj.return_date,
        )

    def create(
        self, book_id: str, member_id: str, borrow_date: datetime, due_date: datetime
    ) -> LoanDB:
        db_obj = LoanDB(
            id=str(uuid4()),
            book_id=book_id,
            member_id=member_id,
            borrow_date=borrow_date,
            due_date=due_date,
            status=LoanStatusEnum.BORROWED,
        )
        return self.add(db_obj)

    def mark_returned(self, loan: LoanDB, return_date: datetime) -> None:
        loan.status = LoanStatusEnum.RETURNED
        loan.return_date = return_date
        safe_flush(self.session, "mark loan returned")

    def open_loans(self) -> list[LoanDB]:
        """Open loans ordered by due date, ties in store order."""
        query = (
            select(LoanDB)
            .where(LoanDB.status == LoanStatusEnum.BORROWED)
            .order_by(LoanDB.due_date, LoanDB.seq)
        )
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to get open loans",
            )
        )

    def for_member(self, member_id: str) -> list[LoanDB]:
        """Every loan of a member, in store order."""
        query = select(LoanDB).where(LoanDB.member_id == member_id).order_by(LoanDB.seq)
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to get member loans",
            )
        )

    def count_open_for_book(self, book_id: str) -> int:
        query = (
            select(func.count())
            .select_from(LoanDB)
            .where(LoanDB.book_id == book_id, LoanDB.status == LoanStatusEnum.BORROWED)
        )
        return (
            safe_query(
                self.session, lambda s: s.execute(query).scalar(), "Failed to count open loans"
            )
            or 0
        )

    def open_counts_by_book(self) -> dict[str, int]:
        query = (
            select(LoanDB.book_id, func.count())
            .where(LoanDB.status == LoanStatusEnum.BORROWED)
            .group_by(LoanDB.book_id)
        )
        rows = safe_query(
            self.session, lambda s: s.execute(query).all(), "Failed to count open loans by book"
        )
        return {book_id: count for book_id, count in rows}
