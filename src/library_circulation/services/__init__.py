"""Catalog, membership, notification and circulation services."""

from .base import parse_input
from .catalog import CatalogManager
from .circulation import CirculationEngine
from .library import Library, close_library, get_library, set_library
from .membership import MembershipManager
from .notifications import NotificationLog

__all__ = [
    "CatalogManager",
    "CirculationEngine",
    "Library",
    "MembershipManager",
    "NotificationLog",
    "close_library",
    "get_library",
    "parse_input",
    "set_library",
]
