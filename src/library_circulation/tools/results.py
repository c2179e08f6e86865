"""
Result envelope shared by every tool handler.

Handlers never raise to the transport. A handler answers with a
``ToolResult``: an HTTP-style status plus a JSON-ready body. Failures carry
the body ``{"error": <message>, "kind": <error kind>}``.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from ..database.errors import RepositoryException

logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    """Status and body returned by a tool handler."""

    status: int = Field(..., description="HTTP-style status code", ge=100, le=599)
    body: Any = Field(None, description="JSON-serialisable response body")

    @property
    def is_error(self) -> bool:
        return self.status >= 400


def ok(body: Any, status: int = 200) -> ToolResult:
    return ToolResult(status=status, body=body)


def dump(value: Any) -> Any:
    """Serialise a model, or a list of models, with camelCase keys."""
    if isinstance(value, list):
        return [dump(item) for item in value]
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    return value


def error_result(error: RepositoryException) -> ToolResult:
    return ToolResult(status=error.status_code, body=error.to_body())


def unexpected_error(operation: str, error: Exception) -> ToolResult:
    """Log an unanticipated failure and answer 500."""
    logger.exception("Unexpected error in %s tool", operation)
    return ToolResult(
        status=500,
        body={"error": f"An unexpected error occurred: {error!s}", "kind": "InternalError"},
    )
