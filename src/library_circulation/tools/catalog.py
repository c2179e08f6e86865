"""
Catalog tools: browse, search and edit the book collection.

Edits go through the catalog manager, which rejects direct changes to a
book's available count and refuses to delete a book that is still on loan.
"""

import asyncio
import logging
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from ..database.errors import BookNotFoundError, RepositoryException
from ..services import get_library, parse_input
from .results import ToolResult, dump, error_result, ok, unexpected_error

logger = logging.getLogger(__name__)


class BookIdInput(BaseModel):
    book_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("bookId", "id", "book_id"),
    )


class SearchBooksInput(BaseModel):
    query: str = Field(
        "",
        description="Substring matched case-insensitively against title, author and category",
        validation_alias=AliasChoices("query", "q"),
    )


class CategoryInput(BaseModel):
    category: str = Field(..., min_length=1)


class UpdateBookInput(BookIdInput):
    fields: dict[str, Any] = Field(
        ...,
        description="camelCase book fields to change",
        validation_alias=AliasChoices("fields", "updates"),
    )


async def list_books_handler(arguments: dict[str, Any] | None = None) -> ToolResult:
    """Every book in the catalog."""
    try:
        books = await asyncio.to_thread(get_library().catalog.list)
        return ok(dump(books))
    except RepositoryException as e:
        return error_result(e)
    except Exception as e:
        return unexpected_error("list_books", e)


async def get_book_handler(arguments: dict[str, Any]) -> ToolResult:
    try:
        params = parse_input(BookIdInput, arguments)
        book = await asyncio.to_thread(get_library().catalog.read, params.book_id)
        if book is None:
            raise BookNotFoundError(params.book_id)
        return ok(dump(book))
    except RepositoryException as e:
        logger.info("Book lookup failed: %s", e)
        return error_result(e)
    except Exception as e:
        return unexpected_error("get_book", e)


async def search_books_handler(arguments: dict[str, Any]) -> ToolResult:
    try:
        params = parse_input(SearchBooksInput, arguments)
        books = await asyncio.to_thread(get_library().catalog.search, params.query)
        return ok(dump(books))
    except RepositoryException as e:
        return error_result(e)
    except Exception as e:
        return unexpected_error("search_books", e)


async def books_by_category_handler(arguments: dict[str, Any]) -> ToolResult:
    try:
        params = parse_input(CategoryInput, arguments)
        books = await asyncio.to_thread(get_library().catalog.list_by_category, params.category)
        return ok(dump(books))
    except RepositoryException as e:
        return error_result(e)
    except Exception as e:
        return unexpected_error("books_by_category", e)


async def add_book_handler(arguments: dict[str, Any]) -> ToolResult:
    """Add a book. Every copy starts on the shelf. Answers 201 with the new book."""
    try:
        book = await asyncio.to_thread(get_library().catalog.create, arguments)
        return ok(dump(book), status=201)
    except RepositoryException as e:
        logger.info("Add book rejected: %s", e)
        return error_result(e)
    except Exception as e:
        return unexpected_error("add_book", e)


async def update_book_handler(arguments: dict[str, Any]) -> ToolResult:
    try:
        params = parse_input(UpdateBookInput, arguments)
        book = await asyncio.to_thread(
            get_library().catalog.update, params.book_id, params.fields
        )
        return ok(dump(book))
    except RepositoryException as e:
        logger.info("Update book rejected: %s", e)
        return error_result(e)
    except Exception as e:
        return unexpected_error("update_book", e)


async def delete_book_handler(arguments: dict[str, Any]) -> ToolResult:
    try:
        params = parse_input(BookIdInput, arguments)
        await asyncio.to_thread(get_library().catalog.delete, params.book_id)
        return ok({"success": True})
    except RepositoryException as e:
        logger.info("Delete book rejected: %s", e)
        return error_result(e)
    except Exception as e:
        return unexpected_error("delete_book", e)


async def refresh_books_handler(arguments: dict[str, Any] | None = None) -> ToolResult:
    """Re-send the whole catalog to subscribers as a ``books_updated`` event."""
    try:
        books = await asyncio.to_thread(get_library().catalog.broadcast_catalog)
        return ok(dump(books))
    except RepositoryException as e:
        return error_result(e)
    except Exception as e:
        return unexpected_error("refresh_books", e)
