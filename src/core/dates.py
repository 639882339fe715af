"""Event date parsing and formatting: pure business logic.

All event timestamps live in one fixed timezone regardless of where the bot
is deployed. Three input grammars are accepted, tried in order:

    YYYY-M-D H:MM   e.g. "2025-9-7 9:05"
    YYYY-M-D        e.g. "2025-09-07"     (midnight)
    D.M.YYYY        e.g. "7.9.2025"       (legacy, midnight)

The canonical stored form is always "YYYY-MM-DD HH:MM".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

EVENT_TZ = ZoneInfo("Europe/Moscow")

CANONICAL_FORMAT = "%Y-%m-%d %H:%M"

_DATE_TIME_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2}) (\d{1,2}):(\d{2})$")
_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_LEGACY_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")

TIME_TOKEN_RE = re.compile(r"^\d{1,2}:\d{2}$")


class InvalidDateFormat(ValueError):
    """Raised when a date string matches none of the accepted grammars."""

    def __init__(self, raw: str) -> None:
        super().__init__(f"Invalid date format: {raw!r}")
        self.raw = raw


@dataclass(frozen=True)
class TimeLeft:
    days: int
    hours: int
    minutes: int

    def __str__(self) -> str:
        return f"{self.days} days, {self.hours} hours, {self.minutes} minutes"


def _build(raw: str, year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    try:
        return datetime(year, month, day, hour, minute, tzinfo=EVENT_TZ)
    except ValueError:
        raise InvalidDateFormat(raw) from None


def parse_event_date(text: str) -> datetime:
    """Parse an event date string into an aware datetime in EVENT_TZ.

    Raises InvalidDateFormat if no grammar matches or the values are out of
    range (e.g. "2025-02-30", "2025-01-01 24:00").
    """
    raw = text
    text = (text or "").strip()

    m = _DATE_TIME_RE.match(text)
    if m:
        year, month, day, hour, minute = map(int, m.groups())
        return _build(raw, year, month, day, hour, minute)

    m = _DATE_RE.match(text)
    if m:
        year, month, day = map(int, m.groups())
        return _build(raw, year, month, day)

    m = _LEGACY_RE.match(text)
    if m:
        day, month, year = map(int, m.groups())
        return _build(raw, year, month, day)

    raise InvalidDateFormat(raw)


def format_event_date(dt: datetime) -> str:
    """Format a datetime as "YYYY-MM-DD HH:MM" in EVENT_TZ.

    Naive datetimes are assumed to already be EVENT_TZ wall-clock time.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(EVENT_TZ)
    return dt.strftime(CANONICAL_FORMAT)


def is_valid_date(text: str) -> bool:
    try:
        parse_event_date(text)
    except InvalidDateFormat:
        return False
    return True


def now_in_event_tz() -> datetime:
    return datetime.now(EVENT_TZ)


def today_in_event_tz() -> date:
    return now_in_event_tz().date()


def time_left(target: datetime, now: datetime) -> TimeLeft | None:
    """Break the time until *target* into days/hours/minutes.

    Returns None when the event is now or in the past.
    """
    seconds = (target - now).total_seconds()
    if seconds <= 0:
        return None
    total_minutes = int(seconds // 60)
    return TimeLeft(
        days=total_minutes // (24 * 60),
        hours=(total_minutes // 60) % 24,
        minutes=total_minutes % 60,
    )
