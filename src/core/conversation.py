"""In-memory conversation state for the interactive /set_date flow.

Per (chat_id, user_id) pair the tracker holds at most one of:
  - a PendingEvent (name chosen, date/time being picked), or
  - an "awaiting name" flag (/set_date was sent without arguments).

Nothing is persisted: a restart drops every in-flight conversation.
All access goes through one lock, so concurrent handlers never observe a
half-written entry. Concurrent set_pending calls for the same key are
last-write-wins.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable

logger = logging.getLogger(__name__)

ConversationKey = tuple[int, int]


@dataclass(frozen=True)
class PendingEvent:
    """An event under interactive construction."""

    name: str
    description: str = ""
    date: date | None = None
    hour: int | None = None


@dataclass
class _Entry:
    pending: PendingEvent | None
    awaiting_name: bool
    touched_at: float


class ConversationStateTracker:
    """Thread-safe map of (chat_id, user_id) -> conversation state."""

    def __init__(
        self,
        ttl_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.Lock()
        self._entries: dict[ConversationKey, _Entry] = {}
        self._ttl_seconds = max(0.0, float(ttl_seconds))
        self._clock = clock

    def _live(self, key: ConversationKey) -> _Entry | None:
        """Return the entry for *key*, dropping it if expired. Caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._ttl_seconds and self._clock() - entry.touched_at > self._ttl_seconds:
            logger.info("Conversation %s expired", key)
            del self._entries[key]
            return None
        return entry

    # -- pending events ----------------------------------------------------

    def set_pending(self, chat_id: int, user_id: int, pending: PendingEvent) -> None:
        """Store *pending*, replacing any previous state for the pair."""
        with self._lock:
            self._entries[(chat_id, user_id)] = _Entry(
                pending=pending, awaiting_name=False, touched_at=self._clock(),
            )

    def get_pending(self, chat_id: int, user_id: int) -> PendingEvent | None:
        with self._lock:
            entry = self._live((chat_id, user_id))
            return entry.pending if entry else None

    def update_pending(self, chat_id: int, user_id: int, **changes) -> PendingEvent | None:
        """Atomically apply *changes* to the pending event. None if there is none."""
        with self._lock:
            entry = self._live((chat_id, user_id))
            if entry is None or entry.pending is None:
                return None
            entry.pending = replace(entry.pending, **changes)
            entry.touched_at = self._clock()
            return entry.pending

    def delete_pending(self, chat_id: int, user_id: int) -> PendingEvent | None:
        with self._lock:
            entry = self._entries.get((chat_id, user_id))
            if entry is None or entry.pending is None:
                return None
            del self._entries[(chat_id, user_id)]
            return entry.pending

    # -- awaiting name -----------------------------------------------------

    def set_awaiting_name(self, chat_id: int, user_id: int) -> None:
        """Flag the pair as awaiting a free-text name; drops any pending event."""
        with self._lock:
            self._entries[(chat_id, user_id)] = _Entry(
                pending=None, awaiting_name=True, touched_at=self._clock(),
            )

    def is_awaiting_name(self, chat_id: int, user_id: int) -> bool:
        with self._lock:
            entry = self._live((chat_id, user_id))
            return bool(entry and entry.awaiting_name)

    def clear_awaiting_name(self, chat_id: int, user_id: int) -> bool:
        """Remove the flag. Returns whether it was set."""
        with self._lock:
            entry = self._entries.get((chat_id, user_id))
            if entry is None or not entry.awaiting_name:
                return False
            del self._entries[(chat_id, user_id)]
            return True

    def clear(self, chat_id: int, user_id: int) -> bool:
        """Drop all state for the pair. Returns whether anything was there."""
        with self._lock:
            return self._entries.pop((chat_id, user_id), None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
