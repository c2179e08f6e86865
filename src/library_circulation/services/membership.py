"""Membership manager: register and look up members."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..database.member_repository import MemberRepository
from ..events import EventType
from ..models.member import Member, MemberCreate
from ..observability.context import trace_repository_operation
from .base import Service, parse_input

logger = logging.getLogger(__name__)


class MembershipManager(Service):
    """CRUD over member records. Members are never mutated after creation."""

    def create(self, member_data: MemberCreate | Mapping[str, Any]) -> Member:
        """Register an ``active`` member whose membership starts now."""
        data = parse_input(MemberCreate, member_data)
        with trace_repository_operation("membership", "create"):
            with self.store.session_scope(write=True) as session:
                member = MemberRepository(session).create(data, membership_date=self.clock())
        logger.info("Registered member %s", member.id)
        self._publish(EventType.MEMBER_ADDED, member.model_dump(by_alias=True, mode="json"))
        return member

    def read(self, member_id: str) -> Member | None:
        with self.store.session_scope() as session:
            return MemberRepository(session).get_by_id(member_id)

    def list(self) -> list[Member]:
        """Every member in store order."""
        with self.store.session_scope() as session:
            return MemberRepository(session).get_all()
