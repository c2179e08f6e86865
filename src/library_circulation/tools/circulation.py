"""
Circulation tools: borrow and return books, and read the loan views.

Borrow and return are the only operations that move a book's available
count. Both run the engine on a worker thread, since the engine blocks on
the per-book lock while another request for the same book is in flight.
"""

import asyncio
import logging
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..database.errors import RepositoryException
from ..services import get_library, parse_input
from .results import ToolResult, dump, error_result, ok, unexpected_error

logger = logging.getLogger(__name__)


class BorrowBookInput(BaseModel):
    """Input schema for the borrow_book tool."""

    book_id: str = Field(
        ...,
        description="ID of the book to borrow",
        min_length=1,
        validation_alias=AliasChoices("bookId", "book_id"),
    )
    member_id: str = Field(
        ...,
        description="ID of the borrowing member",
        min_length=1,
        validation_alias=AliasChoices("memberId", "member_id"),
    )

    model_config = ConfigDict(extra="ignore")


class ReturnBookInput(BaseModel):
    """
    Input schema for the return_book tool.

    ``recordId`` is accepted as a synonym for ``loanId``; older clients name
    loans "borrowing records".
    """

    loan_id: str = Field(
        ...,
        description="ID of the loan to close",
        min_length=1,
        validation_alias=AliasChoices("loanId", "recordId", "loan_id"),
    )
    member_id: str | None = Field(
        None,
        description="Optional member check; must own the loan",
        validation_alias=AliasChoices("memberId", "member_id"),
    )

    model_config = ConfigDict(extra="ignore")


class MemberQueryInput(BaseModel):
    member_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("memberId", "member_id"),
    )


async def borrow_book_handler(arguments: dict[str, Any]) -> ToolResult:
    """
    Lend one copy of a book to a member.

    Answers 201 with ``{loanId, bookId, memberId, dueDate}``. A missing book
    or member answers 404; a book with no copies left answers 409.
    """
    try:
        params = parse_input(BorrowBookInput, arguments)
        library = get_library()
        receipt = await asyncio.to_thread(
            library.circulation.borrow, params.book_id, params.member_id
        )
        return ok(dump(receipt), status=201)
    except RepositoryException as e:
        logger.info("Borrow failed: %s", e)
        return error_result(e)
    except Exception as e:
        return unexpected_error("borrow_book", e)


async def return_book_handler(arguments: dict[str, Any]) -> ToolResult:
    """
    Close an open loan.

    Answers 200 with ``{success, loanId}``. An unknown loan answers 404; a
    loan that is already returned answers 409.
    """
    try:
        params = parse_input(ReturnBookInput, arguments)
        library = get_library()
        receipt = await asyncio.to_thread(
            library.circulation.return_loan, params.loan_id, params.member_id
        )
        return ok({"success": receipt.success, "loanId": receipt.loan_id})
    except RepositoryException as e:
        logger.info("Return failed: %s", e)
        return error_result(e)
    except Exception as e:
        return unexpected_error("return_book", e)


async def active_loans_handler(arguments: dict[str, Any] | None = None) -> ToolResult:
    """Every open loan, enriched with book and member details."""
    try:
        loans = await asyncio.to_thread(get_library().circulation.active_loans)
        return ok(dump(loans))
    except RepositoryException as e:
        return error_result(e)
    except Exception as e:
        return unexpected_error("active_loans", e)


async def overdue_loans_handler(arguments: dict[str, Any] | None = None) -> ToolResult:
    try:
        loans = await asyncio.to_thread(get_library().circulation.overdue_loans)
        return ok(dump(loans))
    except RepositoryException as e:
        return error_result(e)
    except Exception as e:
        return unexpected_error("overdue_loans", e)


async def borrowing_history_handler(arguments: dict[str, Any]) -> ToolResult:
    """All loans of one member, open and returned, in the order they were made."""
    try:
        params = parse_input(MemberQueryInput, arguments)
        loans = await asyncio.to_thread(
            get_library().circulation.borrowing_history, params.member_id
        )
        return ok(dump(loans))
    except RepositoryException as e:
        return error_result(e)
    except Exception as e:
        return unexpected_error("borrowing_history", e)


async def notifications_handler(arguments: dict[str, Any]) -> ToolResult:
    """A member's notifications, newest first."""
    try:
        params = parse_input(MemberQueryInput, arguments)
        notifications = await asyncio.to_thread(
            get_library().notifications.list, params.member_id
        )
        return ok(dump(notifications))
    except RepositoryException as e:
        return error_result(e)
    except Exception as e:
        return unexpected_error("notifications", e)
