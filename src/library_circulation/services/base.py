"""Shared plumbing for the catalog, membership and circulation services."""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..database.errors import RecordValidationError
from ..database.session import RecordStore
from ..events import EventNotifier, EventType

logger = logging.getLogger(__name__)

InputModel = TypeVar("InputModel", bound=BaseModel)

Clock = Callable[[], datetime]


def parse_input(model: type[InputModel], data: InputModel | Mapping[str, Any]) -> InputModel:
    """
    Validate caller input into ``model``.

    Raises:
        RecordValidationError: Listing every field that failed
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise RecordValidationError(f"Invalid {model.__name__}: {problems}") from e


class Service:
    """Base for components that own a record store and publish events."""

    def __init__(
        self,
        store: RecordStore,
        notifier: EventNotifier | None = None,
        clock: Clock = datetime.now,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock

    def _publish(self, event_type: EventType, payload: Any) -> None:
        if self.notifier is None:
            return
        self.notifier.publish(event_type, payload, published_at=self.clock())
