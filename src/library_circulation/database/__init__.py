"""
Record store package for the library circulation service.

- schema.py: SQLAlchemy tables for books, members, loans and notifications
- session.py: the ``RecordStore`` (engine, transactional scopes, book locks)
- errors.py: the error kinds surfaced to callers
- *_repository.py: session-bound data access per collection
"""

from .book_repository import BookRepository
from .errors import (
    AlreadyReturnedError,
    BookInUseError,
    BookNotFoundError,
    BookUnavailableError,
    LoanNotFoundError,
    MemberNotFoundError,
    NotFoundError,
    RecordValidationError,
    RepositoryException,
    StorageError,
)
from .loan_repository import LoanRepository
from .member_repository import MemberRepository
from .notification_repository import NotificationRepository
from .repository import BaseRepository
from .schema import (
    Base,
    Book,
    Loan,
    LoanStatusEnum,
    Member,
    MemberStatusEnum,
    Notification,
    NotificationTypeEnum,
)
from .session import (
    MEMORY_URL,
    RecordStore,
    safe_flush,
    safe_query,
)

__all__ = [
    "MEMORY_URL",
    "AlreadyReturnedError",
    "Base",
    "BaseRepository",
    "Book",
    "BookInUseError",
    "BookNotFoundError",
    "BookRepository",
    "BookUnavailableError",
    "Loan",
    "LoanNotFoundError",
    "LoanRepository",
    "LoanStatusEnum",
    "Member",
    "MemberNotFoundError",
    "MemberRepository",
    "MemberStatusEnum",
    "Notification",
    "NotificationRepository",
    "NotificationTypeEnum",
    "NotFoundError",
    "RecordStore",
    "RecordValidationError",
    "RepositoryException",
    "StorageError",
    "safe_flush",
    "safe_query",
]
