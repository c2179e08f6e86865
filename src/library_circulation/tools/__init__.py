"""
Tool handlers: the request/response boundary of the library service.

Each handler takes the raw request arguments (camelCase keys, as clients
send them) and answers with a ``ToolResult``. Handlers are transport
agnostic; ``server.py`` exposes them as MCP tools.
"""

from .catalog import (
    add_book_handler,
    books_by_category_handler,
    delete_book_handler,
    get_book_handler,
    list_books_handler,
    refresh_books_handler,
    search_books_handler,
    update_book_handler,
)
from .circulation import (
    active_loans_handler,
    borrow_book_handler,
    borrowing_history_handler,
    notifications_handler,
    overdue_loans_handler,
    return_book_handler,
)
from .members import add_member_handler, get_member_handler, list_members_handler
from .results import ToolResult

__all__ = [
    "ToolResult",
    "active_loans_handler",
    "add_book_handler",
    "add_member_handler",
    "books_by_category_handler",
    "borrow_book_handler",
    "borrowing_history_handler",
    "delete_book_handler",
    "get_book_handler",
    "get_member_handler",
    "list_books_handler",
    "list_members_handler",
    "notifications_handler",
    "overdue_loans_handler",
    "refresh_books_handler",
    "return_book_handler",
    "search_books_handler",
    "update_book_handler",
]
