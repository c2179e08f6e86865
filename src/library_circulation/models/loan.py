"""
Loan models for the circulation engine.

A loan moves ``borrowed -> returned`` exactly once. "Overdue" is never stored:
``is_overdue`` derives it from ``(status, due_date, now)`` each time a loan
is read, so a loan read tomorrow reports tomorrow's answer without any write.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class LoanStatus(str, Enum):
    BORROWED = "borrowed"
    RETURNED = "returned"


def is_overdue(status: str, due_date: datetime, now: datetime) -> bool:
    """Return True when an open loan is past its due date at ``now``."""
    return status == LoanStatus.BORROWED.value and now > due_date


class Loan(BaseModel):
    """A borrowing transaction between one member and one book."""

    id: str
    book_id: str
    member_id: str
    borrow_date: datetime
    due_date: datetime
    status: LoanStatus = LoanStatus.BORROWED
    return_date: datetime | None = None

    @model_validator(mode="after")
    def validate_return_date(self) -> "Loan":
        """``return_date`` is present iff the loan is returned."""
        returned = self.status == LoanStatus.RETURNED.value
        if returned and self.return_date is None:
            raise ValueError("Returned loans must have a return date")
        if not returned and self.return_date is not None:
            raise ValueError("Only returned loans may have a return date")
        if self.due_date <= self.borrow_date:
            raise ValueError("Due date must be after borrow date")
        return self

    @property
    def is_open(self) -> bool:
        return self.status == LoanStatus.BORROWED.value

    def overdue_at(self, now: datetime) -> bool:
        return is_overdue(self.status, self.due_date, now)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "id": "5f1d8f3e-6a0e-4b1c-9a43-8d0c2e7b9f10",
                "bookId": "0b0e4f1c-8b0f-4a53-9d43-2c1f0b5d8a11",
                "memberId": "c7a2b9d4-3e11-4f0a-8a77-1b2c3d4e5f60",
                "borrowDate": "2024-03-01T10:00:00",
                "dueDate": "2024-03-15T10:00:00",
                "status": "borrowed",
            }
        },
    )


class EnrichedLoan(Loan):
    """
    A loan joined with its book title/author and member name/email for display.

    Missing references resolve to a placeholder rather than failing the read.
    """

    title: str
    author: str
    name: str
    email: str = ""
    is_overdue: bool = Field(False, description="Derived when the loan was read")


class LoanReceipt(BaseModel):
    """Result of a successful borrow."""

    loan_id: str
    book_id: str
    member_id: str
    due_date: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReturnReceipt(BaseModel):
    """Result of a successful return."""

    success: bool = True
    loan_id: str
    book_id: str
    return_date: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InvariantViolation(BaseModel):
    """A book whose available count disagrees with its open loans."""

    book_id: str
    total_copies: int
    available_copies: int
    open_loans: int

    @property
    def expected_available(self) -> int:
        return self.total_copies - self.open_loans

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
