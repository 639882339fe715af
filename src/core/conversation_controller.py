"""
Timer Bot: Conversation Controller.

State machine behind the interactive /set_date flow:

    NoSession -> AwaitingName -> CalendarShown -> HourShown -> MinuteShown
                                                   -> Committed | Cancelled

Inputs are typed callback payloads (see src.core.callback_data) and free
text; outputs are UI-agnostic ControllerReply objects that the bot renders
by editing or sending a message. Conversation state lives in the injected
ConversationStateTracker; events are committed through the EventService.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from src.core.callback_data import (
    BackToCalendar,
    BackToHours,
    CalendarCallback,
    Cancel,
    DaySelected,
    HourSelected,
    Ignore,
    MinuteSelected,
    NextMonth,
    PrevMonth,
)
from src.core.commands import normalize_command
from src.core.conversation import PendingEvent
from src.core.dates import InvalidDateFormat
from src.core.event_service import InvalidEventName, is_valid_event_name
from src.core.picker import (
    Keyboard,
    build_calendar,
    build_hour_picker,
    build_minute_picker,
    clamp_to_floor,
    shift_month,
)
from src.ports.event_store import DuplicateEventError, EventStoreError

if TYPE_CHECKING:
    from src.core.conversation import ConversationStateTracker
    from src.core.event_service import EventService

logger = logging.getLogger(__name__)

HTML = "HTML"

EXPIRED_MESSAGE = "⚠️ Session expired. Please run /set_date again."
CANCELLED_MESSAGE = "❌ Event creation cancelled."
STORAGE_ERROR_MESSAGE = "Storage is unavailable right now. Please try again later."
NAME_PROMPT = (
    "✏️ Send the event name, optionally followed by a description.\n"
    "Example: <code>meeting Q1 review</code>\n"
    "Send /cancel to stop."
)


class ReplyKind(Enum):
    PROMPT = "prompt"            # a picker or question; the flow continues
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    ERROR = "error"
    EXPIRED = "expired"
    PASSTHROUGH = "passthrough"  # nothing to say; let other handlers run


@dataclass
class ControllerReply:
    kind: ReplyKind
    text: str
    keyboard: Keyboard | None = None
    parse_mode: str | None = None


def invalid_name_message(name: str) -> str:
    return f"❌ {InvalidEventName(name)}"


class ConversationController:
    """Drives a PendingEvent through the picker steps and commits it."""

    def __init__(self, tracker: ConversationStateTracker, events: EventService) -> None:
        self._tracker = tracker
        self._events = events

    @property
    def tracker(self) -> ConversationStateTracker:
        return self._tracker

    def _today(self) -> date:
        return self._events.now().date()

    # -- rendering ---------------------------------------------------------

    def _calendar_reply(self, name: str, year: int, month: int) -> ControllerReply:
        title = f"📅 Choose a date for <b>{name}</b>:" if name else "📅 Choose a date:"
        return ControllerReply(
            kind=ReplyKind.PROMPT,
            text=title,
            keyboard=build_calendar(year, month, today=self._today()),
            parse_mode=HTML,
        )

    def _hour_reply(self, pending: PendingEvent, day: date) -> ControllerReply:
        return ControllerReply(
            kind=ReplyKind.PROMPT,
            text=f"🕐 Choose the hour for <b>{pending.name}</b> on {day.isoformat()}:",
            keyboard=build_hour_picker(day),
            parse_mode=HTML,
        )

    def _minute_reply(self, pending: PendingEvent, day: date, hour: int) -> ControllerReply:
        return ControllerReply(
            kind=ReplyKind.PROMPT,
            text=f"🕐 Choose the minutes for <b>{pending.name}</b> on {day.isoformat()} at {hour:02d}:__",
            keyboard=build_minute_picker(day, hour),
            parse_mode=HTML,
        )

    @staticmethod
    def _expired() -> ControllerReply:
        return ControllerReply(kind=ReplyKind.EXPIRED, text=EXPIRED_MESSAGE)

    # -- entry points ------------------------------------------------------

    def start_with_name(
        self, chat_id: int, user_id: int, name: str, description: str = ""
    ) -> ControllerReply:
        """Begin the picker for *name*; replaces any earlier conversation."""
        if not is_valid_event_name(name):
            self._tracker.clear(chat_id, user_id)
            return ControllerReply(kind=ReplyKind.ERROR, text=invalid_name_message(name))

        self._tracker.set_pending(
            chat_id, user_id, PendingEvent(name=name, description=description.strip()),
        )
        logger.info("Picker started for '%s' (chat_id=%d, user_id=%d)", name, chat_id, user_id)
        today = self._today()
        return self._calendar_reply(name, today.year, today.month)

    def start_awaiting_name(self, chat_id: int, user_id: int) -> ControllerReply:
        self._tracker.set_awaiting_name(chat_id, user_id)
        return ControllerReply(kind=ReplyKind.PROMPT, text=NAME_PROMPT, parse_mode=HTML)

    def handle_name_text(self, chat_id: int, user_id: int, text: str) -> ControllerReply | None:
        """Consume a message sent while awaiting a name. None if not awaiting."""
        if not self._tracker.is_awaiting_name(chat_id, user_id):
            return None

        stripped = (text or "").strip()
        command, _ = normalize_command(stripped)
        if not stripped or command == "cancel":
            self._tracker.clear_awaiting_name(chat_id, user_id)
            return ControllerReply(kind=ReplyKind.CANCELLED, text=CANCELLED_MESSAGE)
        if stripped.startswith("/"):
            self._tracker.clear_awaiting_name(chat_id, user_id)
            return ControllerReply(kind=ReplyKind.PASSTHROUGH, text="")

        parts = stripped.split(maxsplit=1)
        name = parts[0]
        description = parts[1] if len(parts) > 1 else ""
        return self.start_with_name(chat_id, user_id, name, description)

    def cancel(self, chat_id: int, user_id: int) -> ControllerReply:
        """The /cancel command: drop any pending event or awaiting flag."""
        if self._tracker.clear(chat_id, user_id):
            return ControllerReply(kind=ReplyKind.CANCELLED, text=CANCELLED_MESSAGE)
        return ControllerReply(kind=ReplyKind.CANCELLED, text="Nothing to cancel.")

    # -- button presses ----------------------------------------------------

    def handle_callback(
        self, chat_id: int, user_id: int, callback: CalendarCallback
    ) -> ControllerReply | None:
        """Apply one button press. Returns None when nothing should change."""
        if isinstance(callback, Ignore):
            return None

        if isinstance(callback, Cancel):
            self._tracker.clear(chat_id, user_id)
            logger.info("Picker cancelled (chat_id=%d, user_id=%d)", chat_id, user_id)
            return ControllerReply(kind=ReplyKind.CANCELLED, text=CANCELLED_MESSAGE)

        if isinstance(callback, (PrevMonth, NextMonth)):
            delta = -1 if isinstance(callback, PrevMonth) else 1
            year, month = shift_month(callback.year, callback.month, delta)
            year, month = clamp_to_floor(year, month, self._today())
            pending = self._tracker.get_pending(chat_id, user_id)
            return self._calendar_reply(pending.name if pending else "", year, month)

        if isinstance(callback, DaySelected):
            pending = self._tracker.update_pending(chat_id, user_id, date=callback.day, hour=None)
            if pending is None:
                return self._expired()
            return self._hour_reply(pending, callback.day)

        if isinstance(callback, HourSelected):
            pending = self._tracker.update_pending(
                chat_id, user_id, date=callback.day, hour=callback.hour,
            )
            if pending is None:
                return self._expired()
            return self._minute_reply(pending, callback.day, callback.hour)

        if isinstance(callback, MinuteSelected):
            return self._commit(chat_id, user_id, callback)

        if isinstance(callback, BackToCalendar):
            pending = self._tracker.update_pending(chat_id, user_id, date=None, hour=None)
            if pending is None:
                return self._expired()
            today = self._today()
            return self._calendar_reply(pending.name, today.year, today.month)

        if isinstance(callback, BackToHours):
            pending = self._tracker.update_pending(chat_id, user_id, date=callback.day, hour=None)
            if pending is None:
                return self._expired()
            return self._hour_reply(pending, callback.day)

        raise TypeError(f"Unhandled callback: {callback!r}")

    def _commit(self, chat_id: int, user_id: int, callback: MinuteSelected) -> ControllerReply:
        pending = self._tracker.get_pending(chat_id, user_id)
        if pending is None:
            return self._expired()

        date_text = f"{callback.day.isoformat()} {callback.hour:02d}:{callback.minute:02d}"
        try:
            event = self._events.create_event(chat_id, pending.name, date_text, pending.description)
        except (InvalidEventName, InvalidDateFormat, DuplicateEventError) as exc:
            self._tracker.delete_pending(chat_id, user_id)
            logger.warning("Picker commit of '%s' rejected: %s", pending.name, exc)
            return ControllerReply(kind=ReplyKind.ERROR, text=f"❌ Could not create the event: {exc}")
        except EventStoreError as exc:
            self._tracker.delete_pending(chat_id, user_id)
            logger.error("Picker commit of '%s' failed: %s", pending.name, exc)
            return ControllerReply(kind=ReplyKind.ERROR, text=STORAGE_ERROR_MESSAGE)

        self._events.link_to_user(chat_id, user_id, event)
        self._tracker.delete_pending(chat_id, user_id)
        logger.info("Event created via picker: %s -> %s (chat_id=%d)", event.name, event.date, chat_id)
        return ControllerReply(
            kind=ReplyKind.CONFIRMED,
            text=(
                f"✅ Event <b>{event.name}</b> created for {event.date}!\n"
                f"Use /{event.name} to see the time left."
            ),
            parse_mode=HTML,
        )
