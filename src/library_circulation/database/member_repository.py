"""Member repository."""

from datetime import datetime
from uuid import uuid4

from ..database.schema import Member as MemberDB
from ..database.schema import MemberStatusEnum
from ..models.member import Member as MemberModel
from ..models.member import MemberCreate, MemberStatus
from .repository import BaseRepository


class MemberRepository(BaseRepository[MemberDB, MemberModel]):
    """Repository for member rows."""

    @property
    def model_class(self):
        return MemberDB

    def to_model(self, db_obj: MemberDB) -> MemberModel:
        return MemberModel(
            id=db_obj.id,
            name=db_obj.name,
            email=db_obj.email,
            phone=db_obj.phone,
            address=db_obj.address,
            membership_date=db_obj.membership_date,
            status=MemberStatus(db_obj.status.value),
        )

    def create(self, data: MemberCreate, membership_date: datetime) -> MemberModel:
        """Insert an active member joined at ``membership_date``."""
        db_obj = MemberDB(
            id=str(uuid4()),
            name=data.name,
            email=data.email,
            phone=data.phone,
            address=data.address,
            membership_date=membership_date,
            status=MemberStatusEnum.ACTIVE,
        )
        self.add(db_obj)
        return self.to_model(db_obj)
