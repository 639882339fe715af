"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like temp stores and a fixed clock.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("STORAGE_BACKEND", "sqlite")
os.environ.setdefault("TEST_CHAT_ID", "999")

from datetime import datetime

import pytest

from src.core.dates import EVENT_TZ

FALLBACK_CHAT_ID = 999

# "Now" for every clock-dependent test: Monday 2025-09-01 10:00 Moscow time
FIXED_NOW = datetime(2025, 9, 1, 10, 0, tzinfo=EVENT_TZ)


@pytest.fixture
def event_db(tmp_path):
    """Return an EventDB instance backed by a temp file."""
    from src.data.db import EventDB
    return EventDB(db_path=str(tmp_path / "test_events.db"))


@pytest.fixture
def json_store(tmp_path):
    """Return a JsonEventStore backed by a temp file."""
    from src.adapters.json_store import JsonEventStore
    return JsonEventStore(path=str(tmp_path / "events.json"))


@pytest.fixture
def clock():
    """A mutable clock: set clock.now to move time."""

    class _Clock:
        now = FIXED_NOW

        def __call__(self):
            return self.now

    return _Clock()


@pytest.fixture
def event_service(event_db, clock):
    from src.core.event_service import EventService
    return EventService(event_db, fallback_chat_id=FALLBACK_CHAT_ID, clock=clock)


@pytest.fixture
def tracker():
    from src.core.conversation import ConversationStateTracker
    return ConversationStateTracker()


@pytest.fixture
def controller(tracker, event_service):
    from src.core.conversation_controller import ConversationController
    return ConversationController(tracker, event_service)
