"""Notification models for the per-member message feed."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NotificationType(str, Enum):
    INFO = "info"
    BORROW = "borrow"
    RETURN = "return"


class Notification(BaseModel):
    """
    A message addressed to one member.

    Notifications are append-only. ``is_read`` is always false at creation and
    nothing in the service flips it.
    """

    id: str
    member_id: str
    message: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.INFO
    is_read: bool = False
    created_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )
