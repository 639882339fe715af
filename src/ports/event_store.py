"""Event store port: abstract interface for event persistence.

Core modules depend on this protocol, never on a specific backend.
"""

from __future__ import annotations

from typing import Protocol

from src.data.models import Event, EventStatus


class EventStoreError(Exception):
    """Raised when the backing store cannot be reached or read/written."""


class DuplicateEventError(EventStoreError):
    """Raised when an event with the same name already exists in the chat."""

    def __init__(self, chat_id: int, name: str) -> None:
        super().__init__(f"An event named '{name}' already exists in this chat.")
        self.chat_id = chat_id
        self.name = name


class EventNotFoundError(EventStoreError):
    """Raised when no event matches the lookup."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Event '{name}' not found.")
        self.name = name


class EventStorePort(Protocol):
    """Abstract event store used by core modules."""

    def create_event(
        self, chat_id: int, name: str, date: str, description: str = ""
    ) -> Event: ...

    def get_event(self, chat_id: int, name: str) -> Event: ...

    def list_events(self, chat_id: int) -> list[Event]: ...

    def find_event_across_chats(
        self, name: str, exclude_chat_id: int
    ) -> tuple[Event, int]: ...

    def update_event_status(
        self, chat_id: int, name: str, status: EventStatus
    ) -> None: ...

    def link_event_to_user(self, chat_id: int, user_id: int, event_id: int) -> None: ...

    def list_user_event_ids(self, chat_id: int, user_id: int) -> list[int]: ...

    def ping(self) -> None: ...
