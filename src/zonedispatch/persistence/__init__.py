"""Persistence adapters."""

from .base import ZoneStore
from .factory import get_store
from .filesystem import FileStorage
from .http import BackendClient, HttpZoneStore
from .memory import InMemoryZoneStore

__all__ = [
    "BackendClient",
    "FileStorage",
    "HttpZoneStore",
    "InMemoryZoneStore",
    "ZoneStore",
    "get_store",
]
