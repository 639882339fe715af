"""
Timer Bot: Data Models.

Events persist across restarts in the configured store (SQLite or JSON).
An event is identified by its (chat_id, name) pair; the name doubles as the
command that reports the time left until it (/name).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EventStatus(str, Enum):
    """Lifecycle of an event. The only transition is ACTIVE -> OUTDATED."""

    ACTIVE = "active"
    OUTDATED = "outdated"


@dataclass
class Event:
    """A named, dated event scoped to a chat."""

    id: int
    chat_id: int
    name: str                      # e.g. "meeting", invoked as /meeting
    date: str                      # "YYYY-MM-DD HH:MM" in the bot's timezone
    description: str = ""
    status: EventStatus = field(default=EventStatus.ACTIVE)
    created_at: str = ""
