"""Select the persistence backend."""

from __future__ import annotations

from ..config import settings
from .base import ZoneStore
from .http import HttpZoneStore
from .memory import InMemoryZoneStore


def get_store(backend: str | None = None) -> ZoneStore:
    backend = backend or settings.persistence_backend
    match backend:
        case "memory":
            return InMemoryZoneStore()
        case "http":
            return HttpZoneStore()
        case "supabase":
            from .supabase import SupabaseZoneStore

            return SupabaseZoneStore()
        case _:
            raise ValueError(f"Unsupported persistence backend: {backend}")
