"""JSON file event store: implements EventStorePort.

Keeps every chat's events and user links in a single JSON document:

    [
      {"chat_id": 1,
       "events": [{"id": 1, "name": "meeting", "date": "2025-09-07 14:30", ...}],
       "users": [{"user_id": 7, "event_ids": [1]}]}
    ]

Intended for small single-process deployments. Writes go through a temp file
and os.replace so a crash never leaves a truncated document.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from src.data.models import Event, EventStatus
from src.ports.event_store import DuplicateEventError, EventNotFoundError, EventStoreError

logger = logging.getLogger(__name__)


class JsonEventStore:
    """File-backed storage for events and user links."""

    def __init__(self, path: str | None = None) -> None:
        if path is None:
            from src.config import settings
            path = settings.JSON_STORAGE_PATH

        self._path = Path(path)
        self._lock = threading.RLock()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise EventStoreError(f"Cannot create storage directory for {path}: {exc}") from exc

    # -- file I/O ----------------------------------------------------------

    def _load(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise EventStoreError(f"Cannot read {self._path}: {exc}") from exc
        if not isinstance(data, list):
            raise EventStoreError(f"Unexpected document in {self._path}")
        return data

    def _save(self, data: list[dict[str, Any]]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise EventStoreError(f"Cannot write {self._path}: {exc}") from exc

    @staticmethod
    def _chat(data: list[dict[str, Any]], chat_id: int, create: bool = False) -> dict[str, Any] | None:
        for chat in data:
            if chat.get("chat_id") == chat_id:
                return chat
        if not create:
            return None
        chat = {"chat_id": chat_id, "events": [], "users": []}
        data.append(chat)
        return chat

    @staticmethod
    def _to_event(raw: dict[str, Any], chat_id: int) -> Event:
        return Event(
            id=raw["id"],
            chat_id=chat_id,
            name=raw["name"],
            date=raw["date"],
            description=raw.get("description", ""),
            status=EventStatus(raw.get("status", EventStatus.ACTIVE.value)),
            created_at=raw.get("created_at", ""),
        )

    @staticmethod
    def _next_id(data: list[dict[str, Any]]) -> int:
        ids = [ev["id"] for chat in data for ev in chat.get("events", [])]
        return max(ids, default=0) + 1

    # -- EventStorePort ----------------------------------------------------

    def ping(self) -> None:
        with self._lock:
            self._load()

    def create_event(
        self, chat_id: int, name: str, date: str, description: str = ""
    ) -> Event:
        with self._lock:
            data = self._load()
            chat = self._chat(data, chat_id, create=True)
            if any(ev["name"] == name for ev in chat["events"]):
                raise DuplicateEventError(chat_id, name)
            event = Event(
                id=self._next_id(data),
                chat_id=chat_id,
                name=name,
                date=date,
                description=description,
                status=EventStatus.ACTIVE,
                created_at=datetime.now().isoformat(),
            )
            raw = asdict(event)
            raw.pop("chat_id")
            raw["status"] = event.status.value
            chat["events"].append(raw)
            self._save(data)

        logger.info("Event added: #%d '%s' at %s (chat_id=%d)", event.id, name, date, chat_id)
        return event

    def get_event(self, chat_id: int, name: str) -> Event:
        with self._lock:
            chat = self._chat(self._load(), chat_id)
        if chat is not None:
            for raw in chat["events"]:
                if raw["name"] == name:
                    return self._to_event(raw, chat_id)
        raise EventNotFoundError(name)

    def list_events(self, chat_id: int) -> list[Event]:
        with self._lock:
            chat = self._chat(self._load(), chat_id)
        if chat is None:
            return []
        return [self._to_event(raw, chat_id) for raw in chat["events"]]

    def find_event_across_chats(self, name: str, exclude_chat_id: int) -> tuple[Event, int]:
        """Find the oldest event called *name* in any chat except *exclude_chat_id*."""
        with self._lock:
            data = self._load()
        matches = [
            (raw, chat["chat_id"])
            for chat in data
            if chat["chat_id"] != exclude_chat_id
            for raw in chat["events"]
            if raw["name"] == name
        ]
        if not matches:
            raise EventNotFoundError(name)
        raw, chat_id = min(matches, key=lambda match: match[0]["id"])
        return self._to_event(raw, chat_id), chat_id

    def update_event_status(self, chat_id: int, name: str, status: EventStatus) -> None:
        with self._lock:
            data = self._load()
            chat = self._chat(data, chat_id)
            if chat is None:
                return
            for raw in chat["events"]:
                if raw["name"] == name:
                    raw["status"] = EventStatus(status).value
                    self._save(data)
                    logger.info(
                        "Event '%s' (chat_id=%d) status -> %s",
                        name, chat_id, EventStatus(status).value,
                    )
                    return

    def link_event_to_user(self, chat_id: int, user_id: int, event_id: int) -> None:
        with self._lock:
            data = self._load()
            chat = self._chat(data, chat_id, create=True)
            for user in chat["users"]:
                if user["user_id"] == user_id:
                    if event_id in user["event_ids"]:
                        return
                    user["event_ids"].append(event_id)
                    break
            else:
                chat["users"].append({"user_id": user_id, "event_ids": [event_id]})
            self._save(data)

    def list_user_event_ids(self, chat_id: int, user_id: int) -> list[int]:
        with self._lock:
            chat = self._chat(self._load(), chat_id)
        if chat is None:
            return []
        for user in chat["users"]:
            if user["user_id"] == user_id:
                return list(user["event_ids"])
        return []
