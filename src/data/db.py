"""
Timer Bot: Event Database.

SQLite implementation of EventStorePort. Events survive bot restarts;
each (chat_id, name) pair is unique, and user_events records which user
created which event.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from src.data.models import Event, EventStatus
from src.ports.event_store import DuplicateEventError, EventNotFoundError, EventStoreError

logger = logging.getLogger(__name__)

_EVENT_COLUMNS = "id, chat_id, name, date, description, status, created_at"


class EventDB:
    """SQLite-backed storage for events and user links."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        try:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._init_db()
        except (OSError, sqlite3.Error) as exc:
            raise EventStoreError(f"Cannot open event database at {db_path}: {exc}") from exc

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Create tables and indexes if they don't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    chat_id     INTEGER NOT NULL,
                    name        TEXT    NOT NULL,
                    date        TEXT    NOT NULL,
                    description TEXT    NOT NULL DEFAULT '',
                    status      TEXT    NOT NULL DEFAULT 'active',
                    created_at  TEXT    NOT NULL,
                    UNIQUE (chat_id, name)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_chat_id ON events (chat_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_name ON events (name)")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS user_events (
                    id       INTEGER PRIMARY KEY AUTOINCREMENT,
                    chat_id  INTEGER NOT NULL,
                    user_id  INTEGER NOT NULL,
                    event_id INTEGER NOT NULL REFERENCES events (id) ON DELETE CASCADE,
                    UNIQUE (chat_id, user_id, event_id)
                )
            """)
        logger.debug("Events tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> Event:
        return Event(
            id=row["id"],
            chat_id=row["chat_id"],
            name=row["name"],
            date=row["date"],
            description=row["description"],
            status=EventStatus(row["status"]),
            created_at=row["created_at"],
        )

    def ping(self) -> None:
        """Verify the database is reachable."""
        try:
            with self._connect() as conn:
                conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as exc:
            raise EventStoreError(f"Event database unreachable: {exc}") from exc

    def create_event(
        self, chat_id: int, name: str, date: str, description: str = ""
    ) -> Event:
        """Insert a new active event. Raises DuplicateEventError on name clash."""
        now = datetime.now().isoformat()
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO events (chat_id, name, date, description, status, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (chat_id, name, date, description, EventStatus.ACTIVE.value, now),
                )
                event_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise DuplicateEventError(chat_id, name) from exc
        except sqlite3.Error as exc:
            raise EventStoreError(f"Failed to create event '{name}': {exc}") from exc

        logger.info("Event added: #%d '%s' at %s (chat_id=%d)", event_id, name, date, chat_id)
        return Event(
            id=event_id,
            chat_id=chat_id,
            name=name,
            date=date,
            description=description,
            status=EventStatus.ACTIVE,
            created_at=now,
        )

    def get_event(self, chat_id: int, name: str) -> Event:
        """Fetch a single event by chat and name."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    f"SELECT {_EVENT_COLUMNS} FROM events WHERE chat_id = ? AND name = ?",
                    (chat_id, name),
                ).fetchone()
        except sqlite3.Error as exc:
            raise EventStoreError(f"Failed to read event '{name}': {exc}") from exc
        if row is None:
            raise EventNotFoundError(name)
        return self._row_to_event(row)

    def list_events(self, chat_id: int) -> list[Event]:
        """Return all events of a chat in creation order."""
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    f"SELECT {_EVENT_COLUMNS} FROM events WHERE chat_id = ? ORDER BY id",
                    (chat_id,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise EventStoreError(f"Failed to list events: {exc}") from exc
        return [self._row_to_event(r) for r in rows]

    def find_event_across_chats(self, name: str, exclude_chat_id: int) -> tuple[Event, int]:
        """Find the oldest event called *name* in any chat except *exclude_chat_id*."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    f"""
                    SELECT {_EVENT_COLUMNS} FROM events
                    WHERE name = ? AND chat_id <> ?
                    ORDER BY id LIMIT 1
                    """,
                    (name, exclude_chat_id),
                ).fetchone()
        except sqlite3.Error as exc:
            raise EventStoreError(f"Failed to search event '{name}': {exc}") from exc
        if row is None:
            raise EventNotFoundError(name)
        event = self._row_to_event(row)
        return event, event.chat_id

    def update_event_status(self, chat_id: int, name: str, status: EventStatus) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    "UPDATE events SET status = ? WHERE chat_id = ? AND name = ?",
                    (EventStatus(status).value, chat_id, name),
                )
        except sqlite3.Error as exc:
            raise EventStoreError(f"Failed to update event '{name}': {exc}") from exc
        logger.info("Event '%s' (chat_id=%d) status -> %s", name, chat_id, EventStatus(status).value)

    def link_event_to_user(self, chat_id: int, user_id: int, event_id: int) -> None:
        """Record that *user_id* created *event_id*. A repeated link is a no-op."""
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO user_events (chat_id, user_id, event_id)
                    VALUES (?, ?, ?)
                    """,
                    (chat_id, user_id, event_id),
                )
        except sqlite3.Error as exc:
            raise EventStoreError(f"Failed to link event #{event_id} to user: {exc}") from exc

    def list_user_event_ids(self, chat_id: int, user_id: int) -> list[int]:
        """Return ids of the events linked to a user in a chat."""
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT event_id FROM user_events WHERE chat_id = ? AND user_id = ? ORDER BY id",
                    (chat_id, user_id),
                ).fetchall()
        except sqlite3.Error as exc:
            raise EventStoreError(f"Failed to list user events: {exc}") from exc
        return [r["event_id"] for r in rows]
