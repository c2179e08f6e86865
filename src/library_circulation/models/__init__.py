"""Pydantic models for the library circulation service.

All models serialise with camelCase aliases; dump them with
``model_dump(by_alias=True, mode="json")`` when building responses.
"""

from .book import Book, BookCreate, BookUpdate
from .loan import (
    EnrichedLoan,
    InvariantViolation,
    Loan,
    LoanReceipt,
    LoanStatus,
    ReturnReceipt,
    is_overdue,
)
from .member import Member, MemberCreate, MemberStatus
from .notification import Notification, NotificationType

__all__ = [
    "Book",
    "BookCreate",
    "BookUpdate",
    "EnrichedLoan",
    "InvariantViolation",
    "Loan",
    "LoanReceipt",
    "LoanStatus",
    "Member",
    "MemberCreate",
    "MemberStatus",
    "Notification",
    "NotificationType",
    "ReturnReceipt",
    "is_overdue",
]
