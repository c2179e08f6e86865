"""
Repository pattern implementation for the library record store.

Repositories are bound to one SQLAlchemy session and provide data access
only: they flush but never commit. The transaction boundary belongs to the
caller's ``RecordStore.session_scope``, so a manager or the circulation
engine can combine writes to books, loans and notifications into a single
all-or-nothing unit.

Methods return Pydantic models that serialise cleanly to JSON, except the
``*_row`` accessors which hand back the ORM object for in-place mutation
inside the current transaction.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

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
from .schema import Base
from .session import safe_flush, safe_query

ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

__all__ = [
    "AlreadyReturnedError",
    "BaseRepository",
    "BookInUseError",
    "BookNotFoundError",
    "BookUnavailableError",
    "LoanNotFoundError",
    "MemberNotFoundError",
    "NotFoundError",
    "RecordValidationError",
    "RepositoryException",
    "StorageError",
]


class BaseRepository(ABC, Generic[ModelType, ResponseSchemaType]):
    """
    Abstract base repository providing common lookups and writes.

    Every collection is keyed by its public ``id`` and ordered by ``seq``,
    the insertion sequence that defines "store order".
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @abstractmethod
    def to_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert a row to its Pydantic model."""

    def get_row(self, id: str) -> ModelType | None:
        """Get the ORM row by public id, or None."""
        query = select(self.model_class).where(self.model_class.id == str(id))
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def get_by_id(self, id: str) -> ResponseSchemaType | None:
        db_obj = self.get_row(id)
        if db_obj is None:
            return None
        return self.to_model(db_obj)

    def get_all(self) -> list[ResponseSchemaType]:
        """Get every record in store order."""
        query = select(self.model_class).order_by(self.model_class.seq)
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list {self.model_class.__name__}",
        )
        return [self.to_model(item) for item in results]

    def get_rows_by_ids(self, ids: set[str]) -> dict[str, ModelType]:
        """Fetch rows for a set of ids, keyed by id. Missing ids are absent."""
        if not ids:
            return {}
        query = select(self.model_class).where(self.model_class.id.in_(ids))
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to get {self.model_class.__name__} batch",
        )
        return {row.id: row for row in results}

    def add(self, db_obj: ModelType) -> ModelType:
        self.session.add(db_obj)
        safe_flush(self.session, f"create {self.model_class.__name__}")
        return db_obj

    def delete_row(self, db_obj: ModelType) -> None:
        self.session.delete(db_obj)
        safe_flush(self.session, f"delete {self.model_class.__name__}")

    def count(self) -> int:
        query = select(func.count()).select_from(self.model_class)
        return (
            safe_query(self.session, lambda s: s.execute(query).scalar(), "Failed to count")
            or 0
        )
