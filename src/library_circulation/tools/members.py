"""Member tools: register and look up library members."""

import asyncio
import logging
from typing import Any

from ..database.errors import MemberNotFoundError, RepositoryException
from ..services import get_library, parse_input
from .circulation import MemberQueryInput
from .results import ToolResult, dump, error_result, ok, unexpected_error

logger = logging.getLogger(__name__)


async def list_members_handler(arguments: dict[str, Any] | None = None) -> ToolResult:
    try:
        members = await asyncio.to_thread(get_library().members.list)
        return ok(dump(members))
    except RepositoryException as e:
        return error_result(e)
    except Exception as e:
        return unexpected_error("list_members", e)


async def get_member_handler(arguments: dict[str, Any]) -> ToolResult:
    try:
        params = parse_input(MemberQueryInput, arguments)
        member = await asyncio.to_thread(get_library().members.read, params.member_id)
        if member is None:
            raise MemberNotFoundError(params.member_id)
        return ok(dump(member))
    except RepositoryException as e:
        logger.info("Member lookup failed: %s", e)
        return error_result(e)
    except Exception as e:
        return unexpected_error("get_member", e)


async def add_member_handler(arguments: dict[str, Any]) -> ToolResult:
    """Register an active member. Answers 201 with the new member."""
    try:
        member = await asyncio.to_thread(get_library().members.create, arguments)
        return ok(dump(member), status=201)
    except RepositoryException as e:
        logger.info("Add member rejected: %s", e)
        return error_result(e)
    except Exception as e:
        return unexpected_error("add_member", e)
