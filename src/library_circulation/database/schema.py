"""
SQLAlchemy schema for the library record store.

Four collections back the service: books, members, loans and notifications.
Each table carries an integer ``seq`` primary key that records insertion
order ("store order") and a string ``id`` that is the public, immutable
identifier handed to clients.

The constraints mirror the availability bounds the circulation engine
maintains: ``0 <= available_copies <= total_copies`` and ``total_copies >= 1``.
A violated constraint aborts the whole transaction, so a bug in the engine
can never persist an out-of-range count.
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class MemberStatusEnum(str, enum.Enum):
    """Database enum for member status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class LoanStatusEnum(str, enum.Enum):
    """Database enum for loan status. Overdue is derived, never stored."""

    BORROWED = "borrowed"
    RETURNED = "returned"


class NotificationTypeEnum(str, enum.Enum):
    """Database enum for notification type."""

    INFO = "info"
    BORROW = "borrow"
    RETURN = "return"


class Book(Base):
    """Books table - the catalog and its copy counts."""

    __tablename__ = "books"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)
    title = Column(String(500), nullable=False)
    author = Column(String(200), nullable=False)
    category = Column(String(100), nullable=True)
    publish_year = Column(Integer, nullable=True)
    isbn = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_book_id", "id"),
        Index("idx_book_category", "category"),
        CheckConstraint("available_copies >= 0", name="check_available_copies_non_negative"),
        CheckConstraint(
            "available_copies <= total_copies", name="check_available_not_exceed_total"
        ),
        CheckConstraint("total_copies > 0", name="check_total_copies_positive"),
    )


class Member(Base):
    """Members table."""

    __tablename__ = "members"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(40), nullable=True)
    address = Column(String(500), nullable=True)
    membership_date = Column(DateTime, nullable=False)
    status = Column(Enum(MemberStatusEnum), nullable=False, default=MemberStatusEnum.ACTIVE)

    __table_args__ = (Index("idx_member_id", "id"),)


class Loan(Base):
    """
    Loans table - the join between books and members.

    ``book_id`` and ``member_id`` are plain columns rather than foreign keys:
    returned loans outlive the book they reference, and reads resolve a
    missing book or member to a placeholder.
    """

    __tablename__ = "loans"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)
    book_id = Column(String(36), nullable=False)
    member_id = Column(String(36), nullable=False)
    borrow_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False)
    status = Column(Enum(LoanStatusEnum), nullable=False, default=LoanStatusEnum.BORROWED)
    return_date = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_loan_id", "id"),
        Index("idx_loan_book_status", "book_id", "status"),
        Index("idx_loan_member", "member_id"),
        Index("idx_loan_due_date", "due_date"),
        CheckConstraint(
            "(status = 'RETURNED' AND return_date IS NOT NULL) "
            "OR (status = 'BORROWED' AND return_date IS NULL)",
            name="check_return_date_matches_status",
        ),
    )


class Notification(Base):
    """Notifications table - append-only per-member feed."""

    __tablename__ = "notifications"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)
    member_id = Column(String(36), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationTypeEnum), nullable=False, default=NotificationTypeEnum.INFO)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (Index("idx_notification_member", "member_id", "created_at"),)
