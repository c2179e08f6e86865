"""
Book models for the library catalog.

Books are serialised with camelCase keys (``totalCopies``,
``availableCopies``), the shape the catalog API has always returned.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class BookCreate(BaseModel):
    """Input for adding a book to the catalog."""

    title: str = Field(..., description="The title of the book", min_length=1, max_length=500)
    author: str = Field(..., description="Author display name", min_length=1, max_length=200)
    category: str | None = Field(None, description="Catalog category", max_length=100)
    publish_year: int | None = Field(None, description="Year of publication", ge=0, le=9999)
    isbn: str | None = Field(None, description="ISBN-10 or ISBN-13", max_length=20)
    description: str | None = Field(None, description="Short summary", max_length=5000)
    total_copies: int = Field(default=1, description="Copies owned by the library", ge=1)

    @field_validator("title", "author")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("isbn")
    @classmethod
    def normalize_isbn(cls, v: str | None) -> str | None:
        """Store ISBNs without hyphens or spaces."""
        if v is None:
            return None
        return v.replace("-", "").replace(" ", "") or None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class BookUpdate(BaseModel):
    """Partial update for a book - every field optional.

    ``available_copies`` is accepted only so it can be rejected with a clear
    message: the count moves through borrow and return alone.
    """

    title: str | None = Field(None, min_length=1, max_length=500)
    author: str | None = Field(None, min_length=1, max_length=200)
    category: str | None = Field(None, max_length=100)
    publish_year: int | None = Field(None, ge=0, le=9999)
    isbn: str | None = Field(None, max_length=20)
    description: str | None = Field(None, max_length=5000)
    total_copies: int | None = Field(None, ge=1)
    available_copies: int | None = None

    @field_validator("title", "author")
    @classmethod
    def strip_required_text(cls, v: str | None) -> str | None:
        """Same rule as on create; ``None`` is left for the manager to reject."""
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("isbn")
    @classmethod
    def normalize_isbn(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.replace("-", "").replace(" ", "") or None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class Book(BaseModel):
    """A book in the catalog, with its copy counts."""

    id: str = Field(..., description="Unique, immutable identifier")
    title: str
    author: str
    category: str | None = None
    publish_year: int | None = None
    isbn: str | None = None
    description: str | None = None
    total_copies: int = Field(..., ge=1)
    available_copies: int = Field(..., ge=0)
    created_at: datetime

    @model_validator(mode="after")
    def validate_copies(self) -> "Book":
        """Ensure available copies doesn't exceed total copies."""
        if self.available_copies > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    @property
    def on_loan(self) -> int:
        return self.total_copies - self.available_copies

    @property
    def is_available(self) -> bool:
        return self.available_copies > 0

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "0b0e4f1c-8b0f-4a53-9d43-2c1f0b5d8a11",
                "title": "The Left Hand of Darkness",
                "author": "Ursula K. Le Guin",
                "category": "Science Fiction",
                "publishYear": 1969,
                "isbn": "9780441478125",
                "totalCopies": 3,
                "availableCopies": 2,
                "createdAt": "2024-03-01T09:30:00",
            }
        },
    )
