"""
Read-only resources: loan views, member feeds and service health.

Resources return JSON-ready data or raise ``ResourceError``; they never
change state. Mutations live in ``tools``.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.errors import RepositoryException
from ..services import get_library
from ..tools.results import dump

logger = logging.getLogger(__name__)


async def active_loans_resource() -> list[dict[str, Any]]:
    """Open loans with book title/author and member name/email, soonest due first."""
    try:
        return dump(await asyncio.to_thread(get_library().circulation.active_loans))
    except RepositoryException as e:
        logger.exception("Error in loans/active resource")
        raise ResourceError(f"Failed to retrieve active loans: {e!s}") from e


async def overdue_loans_resource() -> list[dict[str, Any]]:
    try:
        return dump(await asyncio.to_thread(get_library().circulation.overdue_loans))
    except RepositoryException as e:
        logger.exception("Error in loans/overdue resource")
        raise ResourceError(f"Failed to retrieve overdue loans: {e!s}") from e


async def borrowing_history_resource(member_id: str) -> list[dict[str, Any]]:
    try:
        return dump(
            await asyncio.to_thread(get_library().circulation.borrowing_history, member_id)
        )
    except RepositoryException as e:
        logger.exception("Error in members/{member_id}/history resource")
        raise ResourceError(f"Failed to retrieve borrowing history: {e!s}") from e


async def notifications_resource(member_id: str) -> list[dict[str, Any]]:
    try:
        return dump(await asyncio.to_thread(get_library().notifications.list, member_id))
    except RepositoryException as e:
        logger.exception("Error in members/{member_id}/notifications resource")
        raise ResourceError(f"Failed to retrieve notifications: {e!s}") from e


async def health_resource() -> dict[str, Any]:
    """Liveness, store connectivity and the availability invariant check."""
    library = get_library()
    connected = await asyncio.to_thread(library.store.verify_connection)
    violations = []
    if connected:
        try:
            violations = await asyncio.to_thread(
                library.circulation.check_availability_invariant
            )
        except RepositoryException:
            logger.exception("Invariant check failed during health check")
            connected = False
    return {
        "status": "running",
        "timestamp": datetime.now().isoformat(),
        "database": "connected" if connected else "unavailable",
        "invariantViolations": dump(violations),
    }


library_resources: list[dict[str, Any]] = [
    {
        "uri": "library://loans/active",
        "name": "Active Loans",
        "description": "Every open loan with book and member details and a live overdue flag",
        "mime_type": "application/json",
        "handler": active_loans_resource,
    },
    {
        "uri": "library://loans/overdue",
        "name": "Overdue Loans",
        "description": "Open loans past their due date",
        "mime_type": "application/json",
        "handler": overdue_loans_resource,
    },
    {
        "uri": "library://members/{member_id}/history",
        "name": "Borrowing History",
        "description": "All loans of one member, open and returned",
        "mime_type": "application/json",
        "handler": borrowing_history_resource,
    },
    {
        "uri": "library://members/{member_id}/notifications",
        "name": "Member Notifications",
        "description": "Borrow and return messages for one member, newest first",
        "mime_type": "application/json",
        "handler": notifications_resource,
    },
    {
        "uri": "library://health",
        "name": "Health",
        "description": "Service liveness and record store status",
        "mime_type": "application/json",
        "handler": health_resource,
    },
]

__all__ = [
    "active_loans_resource",
    "borrowing_history_resource",
    "health_resource",
    "library_resources",
    "notifications_resource",
    "overdue_loans_resource",
]
