"""Library circulation server.

Exposes the catalog, membership and circulation services over MCP:

1. Tools - borrow and return books, edit the catalog, register members
2. Resources - read-only loan views, member feeds and health
3. Events - every state change is published to in-process subscribers;
   the server logs them so a transport-level push can hook in later

Every tool answers ``{"status": <code>, "body": <json>}``. Failures use the
body ``{"error": <message>, "kind": <error kind>}``.
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from . import tools
from .config import get_config
from .events import Event
from .observability import initialize_observability
from .resources import library_resources
from .services import close_library, get_library

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],  # stdout carries the stdio transport
)

logger = logging.getLogger(__name__)

config = get_config()

mcp = FastMCP(
    name=config.server_name,
    version=config.server_version,
    instructions=(
        "Library circulation service. Use tools to borrow and return books, "
        "manage the catalog and register members. Use resources to read active "
        "and overdue loans, a member's borrowing history and notifications."
    ),
)


# =============================================================================
# CIRCULATION TOOLS
# =============================================================================


@mcp.tool(name="borrow_book", description="Lend one copy of a book to a member")
async def borrow_book(book_id: str, member_id: str) -> dict[str, Any]:
    result = await tools.borrow_book_handler({"bookId": book_id, "memberId": member_id})
    return result.model_dump()


@mcp.tool(name="return_book", description="Close an open loan and put the copy back")
async def return_book(loan_id: str, member_id: str | None = None) -> dict[str, Any]:
    result = await tools.return_book_handler({"loanId": loan_id, "memberId": member_id})
    return result.model_dump()


@mcp.tool(name="active_loans", description="List open loans with book and member details")
async def active_loans() -> dict[str, Any]:
    return (await tools.active_loans_handler()).model_dump()


@mcp.tool(name="overdue_loans", description="List open loans past their due date")
async def overdue_loans() -> dict[str, Any]:
    return (await tools.overdue_loans_handler()).model_dump()


@mcp.tool(name="borrowing_history", description="List every loan of a member")
async def borrowing_history(member_id: str) -> dict[str, Any]:
    return (await tools.borrowing_history_handler({"memberId": member_id})).model_dump()


@mcp.tool(name="notifications", description="List a member's notifications, newest first")
async def notifications(member_id: str) -> dict[str, Any]:
    return (await tools.notifications_handler({"memberId": member_id})).model_dump()


# =============================================================================
# CATALOG TOOLS
# =============================================================================


@mcp.tool(name="list_books", description="List every book in the catalog")
async def list_books() -> dict[str, Any]:
    return (await tools.list_books_handler()).model_dump()


@mcp.tool(name="get_book", description="Get one book by id")
async def get_book(book_id: str) -> dict[str, Any]:
    return (await tools.get_book_handler({"bookId": book_id})).model_dump()


@mcp.tool(
    name="search_books",
    description="Case-insensitive substring search over title, author and category",
)
async def search_books(query: str) -> dict[str, Any]:
    return (await tools.search_books_handler({"query": query})).model_dump()


@mcp.tool(name="books_by_category", description="List the books of one exact category")
async def books_by_category(category: str) -> dict[str, Any]:
    return (await tools.books_by_category_handler({"category": category})).model_dump()


@mcp.tool(name="add_book", description="Add a book; all copies start available")
async def add_book(
    title: str,
    author: str,
    total_copies: int = 1,
    category: str | None = None,
    publish_year: int | None = None,
    isbn: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    result = await tools.add_book_handler(
        {
            "title": title,
            "author": author,
            "totalCopies": total_copies,
            "category": category,
            "publishYear": publish_year,
            "isbn": isbn,
            "description": description,
        }
    )
    return result.model_dump()


@mcp.tool(
    name="update_book",
    description="Change book fields (camelCase keys); availableCopies cannot be set",
)
async def update_book(book_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    result = await tools.update_book_handler({"bookId": book_id, "fields": fields})
    return result.model_dump()


@mcp.tool(name="delete_book", description="Remove a book that has no open loans")
async def delete_book(book_id: str) -> dict[str, Any]:
    return (await tools.delete_book_handler({"bookId": book_id})).model_dump()


@mcp.tool(name="refresh_books", description="Re-broadcast the full catalog to subscribers")
async def refresh_books() -> dict[str, Any]:
    return (await tools.refresh_books_handler()).model_dump()


# =============================================================================
# MEMBER TOOLS
# =============================================================================


@mcp.tool(name="list_members", description="List every member")
async def list_members() -> dict[str, Any]:
    return (await tools.list_members_handler()).model_dump()


@mcp.tool(name="get_member", description="Get one member by id")
async def get_member(member_id: str) -> dict[str, Any]:
    return (await tools.get_member_handler({"memberId": member_id})).model_dump()


@mcp.tool(name="add_member", description="Register an active member")
async def add_member(
    name: str,
    email: str,
    phone: str | None = None,
    address: str | None = None,
) -> dict[str, Any]:
    result = await tools.add_member_handler(
        {"name": name, "email": email, "phone": phone, "address": address}
    )
    return result.model_dump()


# =============================================================================
# RESOURCES
# =============================================================================

for resource in library_resources:
    mcp.resource(
        resource["uri"],
        name=resource["name"],
        description=resource["description"],
        mime_type=resource["mime_type"],
    )(resource["handler"])

logger.info("Registered %d library resources", len(library_resources))


# =============================================================================
# LIFECYCLE
# =============================================================================


def log_event(event: Event) -> None:
    logger.debug("Event %s: %s", event.type, event.payload)


def shutdown() -> None:
    logger.info("Library server shutting down...")
    close_library()
    logger.info("Shutdown complete")


def main() -> None:
    """Entry point for the ``library-circulation`` command."""
    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(config.log_level)
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    logger.info("=" * 60)
    logger.info("Library Circulation Server")
    logger.info("Version: %s", config.server_version)
    logger.info("Transport: %s", config.transport)
    logger.info("Database: %s", config.database_path)
    logger.info("=" * 60)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        initialize_observability()
        library = get_library()
        if library.notifier is not None:
            library.notifier.subscribe(log_event)

        if config.transport == "stdio":
            mcp.run(transport="stdio")
        else:
            mcp.run(transport="streamable-http", host=config.http_host, port=config.http_port)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Fatal error in library server")
        sys.exit(1)
    finally:
        close_library()


if __name__ == "__main__":
    main()
