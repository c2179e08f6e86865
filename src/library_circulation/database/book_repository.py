"""
Book repository: catalog data access.

Search and category filters keep store order (insertion order) rather than
sorting, matching what clients of the catalog have always received.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import String, func, or_, select

from ..database.schema import Book as BookDB
from ..database.session import safe_flush, safe_query
from ..models.book import Book as BookModel
from ..models.book import BookCreate
from .repository import BaseRepository


class BookRepository(BaseRepository[BookDB, BookModel]):
    """Repository for book rows."""

    @property
    def model_class(self):
        return BookDB

    def to_model(self, db_obj: BookDB) -> BookModel:
        return BookModel(
            id=db_obj.id,
            title=db_obj.title,
            author=db_obj.author,
            category=db_obj.category,
            publish_year=db_obj.publish_year,
            isbn=db_obj.isbn,
            description=db_obj.description,
            total_copies=db_obj.total_copies,
            available_copies=db_obj.available_copies,
            created_at=db_obj.created_at,
        )

    def create(self, data: BookCreate, created_at: datetime) -> BookModel:
        """Insert a book with every copy available."""
        db_obj = BookDB(
            id=str(uuid4()),
            title=data.title,
            author=data.author,
            category=data.category,
            publish_year=data.publish_year,
            isbn=data.isbn,
            description=data.description,
            total_copies=data.total_copies,
            available_copies=data.total_copies,
            created_at=created_at,
        )
        self.add(db_obj)
        return self.to_model(db_obj)

    def get_for_update(self, book_id: str) -> BookDB | None:
        """Get the row for mutation, taking a row lock where the backend has one."""
        query = select(BookDB).where(BookDB.id == book_id).with_for_update()
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get book for update",
        )

    def adjust_available(self, book: BookDB, delta: int) -> None:
        book.available_copies += delta
        safe_flush(self.session, "adjust book availability")

    def search(self, query: str) -> list[BookModel]:
        """
        Case-insensitive substring match on title, author or category.

        Both sides are Unicode case folded (``casefold`` is registered on every
        connection by the record store); ``%`` and ``_`` in the query are literal.
        """
        term = query.casefold()
        stmt = (
            select(BookDB)
            .where(
                or_(
                    func.casefold(BookDB.title, type_=String).contains(term, autoescape=True),
                    func.casefold(BookDB.author, type_=String).contains(term, autoescape=True),
                    func.casefold(BookDB.category, type_=String).contains(term, autoescape=True),
                )
            )
            .order_by(BookDB.seq)
        )
        results = safe_query(
            self.session, lambda s: s.execute(stmt).scalars().all(), "Failed to search books"
        )
        return [self.to_model(b) for b in results]

    def by_category(self, category: str) -> list[BookModel]:
        """Exact, case-sensitive category match."""
        stmt = select(BookDB).where(BookDB.category == category).order_by(BookDB.seq)
        results = safe_query(
            self.session,
            lambda s: s.execute(stmt).scalars().all(),
            "Failed to filter books by category",
        )
        return [self.to_model(b) for b in results]
