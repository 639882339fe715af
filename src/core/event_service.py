"""
Timer Bot: Event Service.

Business rules on top of the event store: name validation, date
normalization, the fallback chat merge for listings, cross-chat lookup and
the lazy ACTIVE -> OUTDATED transition.

Each UI adapter (currently only Telegram) calls this service and renders
the results in its own way.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from src.core.dates import format_event_date, now_in_event_tz, parse_event_date
from src.data.models import Event, EventStatus
from src.ports.event_store import EventNotFoundError, EventStoreError

if TYPE_CHECKING:
    from src.ports.event_store import EventStorePort

logger = logging.getLogger(__name__)

_EVENT_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


class InvalidEventName(ValueError):
    """Raised when an event name cannot be used as a command token."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Invalid event name {name!r}: use only Latin letters, digits and '_'."
        )
        self.name = name


def is_valid_event_name(name: str) -> bool:
    return bool(name) and _EVENT_NAME_RE.fullmatch(name) is not None


@dataclass
class LookupResult:
    event: Event
    found_chat_id: int
    requested_chat_id: int

    @property
    def found_elsewhere(self) -> bool:
        return self.found_chat_id != self.requested_chat_id


class EventService:
    """Stateless facade over an EventStorePort."""

    def __init__(
        self,
        store: EventStorePort,
        fallback_chat_id: int = 0,
        clock: Callable[[], datetime] = now_in_event_tz,
    ) -> None:
        self._store = store
        self._fallback_chat_id = fallback_chat_id
        self._clock = clock

    @property
    def fallback_chat_id(self) -> int:
        return self._fallback_chat_id

    def now(self) -> datetime:
        return self._clock()

    def create_event(
        self, chat_id: int, name: str, date: str, description: str = ""
    ) -> Event:
        """Validate and persist a new event.

        Raises InvalidEventName, InvalidDateFormat, DuplicateEventError or
        EventStoreError.
        """
        if not is_valid_event_name(name):
            logger.warning("Invalid event name %r (chat_id=%d)", name, chat_id)
            raise InvalidEventName(name)
        canonical = format_event_date(parse_event_date(date))
        return self._store.create_event(chat_id, name, canonical, description.strip())

    def link_to_user(self, chat_id: int, user_id: int, event: Event) -> None:
        """Associate an event with its creator. Failures are logged, never raised."""
        try:
            self._store.link_event_to_user(chat_id, user_id, event.id)
        except EventStoreError as exc:
            logger.warning(
                "Could not link event #%d to user %d (chat_id=%d): %s",
                event.id, user_id, chat_id, exc,
            )

    def list_events(self, chat_id: int, status: EventStatus | None = None) -> list[Event]:
        """Events of *chat_id* followed by those of the fallback chat."""
        events = self._store.list_events(chat_id)
        if self._fallback_chat_id and chat_id != self._fallback_chat_id:
            events = events + self._store.list_events(self._fallback_chat_id)
        if status is not None:
            events = [ev for ev in events if ev.status == status]
        return events

    def lookup_event(self, chat_id: int, name: str) -> LookupResult:
        """Find *name* in this chat, then the fallback chat, then anywhere else.

        Marks the event OUTDATED in its own chat when its time has passed.
        Raises EventNotFoundError when nothing matches.
        """
        event, found_chat_id = self._find(chat_id, name)
        if event.status == EventStatus.ACTIVE and self._has_passed(event):
            self._store.update_event_status(found_chat_id, event.name, EventStatus.OUTDATED)
            event.status = EventStatus.OUTDATED
        return LookupResult(event=event, found_chat_id=found_chat_id, requested_chat_id=chat_id)

    def _find(self, chat_id: int, name: str) -> tuple[Event, int]:
        try:
            return self._store.get_event(chat_id, name), chat_id
        except EventNotFoundError:
            logger.info("Event '%s' not in chat %d, searching other chats", name, chat_id)

        if self._fallback_chat_id and chat_id != self._fallback_chat_id:
            try:
                return self._store.get_event(self._fallback_chat_id, name), self._fallback_chat_id
            except EventNotFoundError:
                pass

        event, found_chat_id = self._store.find_event_across_chats(name, chat_id)
        logger.info("Event '%s' found in chat %d", name, found_chat_id)
        return event, found_chat_id

    def _has_passed(self, event: Event) -> bool:
        try:
            return parse_event_date(event.date) <= self.now()
        except ValueError:
            logger.error("Stored event '%s' has unparseable date %r", event.name, event.date)
            return False
