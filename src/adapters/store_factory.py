"""Event store factory: creates the right store based on config."""

from __future__ import annotations

from src.config import settings
from src.ports.event_store import EventStorePort


def create_event_store() -> EventStorePort:
    """Return the event store matching the STORAGE_BACKEND setting."""
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "sqlite":
        from src.data.db import EventDB

        return EventDB(db_path=settings.DATABASE_PATH)

    if backend == "json":
        from src.adapters.json_store import JsonEventStore

        return JsonEventStore(path=settings.JSON_STORAGE_PATH)

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")
