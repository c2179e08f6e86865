"""Notification repository: append-only per-member feed."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import select

from ..database.schema import Notification as NotificationDB
from ..database.schema import NotificationTypeEnum
from ..database.session import safe_query
from ..models.notification import Notification as NotificationModel
from ..models.notification import NotificationType
from .repository import BaseRepository


class NotificationRepository(BaseRepository[NotificationDB, NotificationModel]):
    """Repository for notification rows. There is no update or delete."""

    @property
    def model_class(self):
        return NotificationDB

    def to_model(self, db_obj: NotificationDB) -> NotificationModel:
        return NotificationModel(
            id=db_obj.id,
            member_id=db_obj.member_id,
            message=db_obj.message,
            type=NotificationType(db_obj.type.value),
            is_read=db_obj.is_read,
            created_at=db_obj.created_at,
        )

    def append(
        self,
        member_id: str,
        message: str,
        type: NotificationType,
        created_at: datetime,
    ) -> NotificationModel:
        db_obj = NotificationDB(
            id=str(uuid4()),
            member_id=member_id,
            message=message,
            type=NotificationTypeEnum(NotificationType(type).value),
            is_read=False,
            created_at=created_at,
        )
        self.add(db_obj)
        return self.to_model(db_obj)

    def for_member(self, member_id: str) -> list[NotificationModel]:
        """Newest first; notifications created in the same instant keep reverse store order."""
        query = (
            select(NotificationDB)
            .where(NotificationDB.member_id == member_id)
            .order_by(NotificationDB.created_at.desc(), NotificationDB.seq.desc())
        )
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get notifications",
        )
        return [self.to_model(n) for n in results]
