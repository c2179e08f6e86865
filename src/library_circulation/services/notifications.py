"""Notification log: the append-only message feed of each member."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from ..database.notification_repository import NotificationRepository
from ..database.session import RecordStore
from ..models.notification import Notification, NotificationType
from .base import Clock


class NotificationLog:
    """Appends and lists per-member notifications."""

    def __init__(self, store: RecordStore, clock: Clock = datetime.now):
        self.store = store
        self.clock = clock

    def append(
        self,
        member_id: str,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        session: Session | None = None,
    ) -> Notification:
        """
        Append a notification for ``member_id``.

        Pass ``session`` to write inside a caller's transaction, so the
        notification commits or rolls back together with the caller's change.
        """
        kind = NotificationType(type)
        if session is not None:
            return NotificationRepository(session).append(member_id, message, kind, self.clock())
        with self.store.session_scope(write=True) as own_session:
            return NotificationRepository(own_session).append(
                member_id, message, kind, self.clock()
            )

    def list(self, member_id: str) -> list[Notification]:
        """Notifications for the member, newest first."""
        with self.store.session_scope() as session:
            return NotificationRepository(session).for_member(member_id)
