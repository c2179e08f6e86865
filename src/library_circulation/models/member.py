"""Member models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class MemberStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class MemberCreate(BaseModel):
    """Input for registering a member. Status and membership date are server-set."""

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str | None = Field(None, max_length=40)
    address: str | None = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Member(BaseModel):
    """A registered library member."""

    id: str
    name: str
    email: str
    phone: str | None = None
    address: str | None = None
    membership_date: datetime
    status: MemberStatus = MemberStatus.ACTIVE

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )
