"""Inline-keyboard callback payloads for the /set_date picker.

Every button of the calendar/hour/minute pickers carries one of the payloads
below, encoded as a colon-delimited string with the "cal:" prefix:

    cal:ignore
    cal:cancel
    cal:prev:<year>:<month>
    cal:next:<year>:<month>
    cal:day:<YYYY-MM-DD>
    cal:hour:<YYYY-MM-DD>:<hour>
    cal:min:<YYYY-MM-DD>:<hour>:<minute>
    cal:back_to_cal
    cal:back_to_hours:<YYYY-MM-DD>

Telegram limits callback_data to 64 bytes; the longest payload is 25.
The string is parsed once at the transport boundary into a typed value.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Union

PREFIX = "cal"
CALLBACK_PATTERN = r"^cal:"

MINUTE_STEP = 5


@dataclass(frozen=True)
class Ignore:
    def encode(self) -> str:
        return f"{PREFIX}:ignore"


@dataclass(frozen=True)
class Cancel:
    def encode(self) -> str:
        return f"{PREFIX}:cancel"


@dataclass(frozen=True)
class PrevMonth:
    year: int
    month: int

    def encode(self) -> str:
        return f"{PREFIX}:prev:{self.year}:{self.month}"


@dataclass(frozen=True)
class NextMonth:
    year: int
    month: int

    def encode(self) -> str:
        return f"{PREFIX}:next:{self.year}:{self.month}"


@dataclass(frozen=True)
class DaySelected:
    day: date

    def encode(self) -> str:
        return f"{PREFIX}:day:{self.day.isoformat()}"


@dataclass(frozen=True)
class HourSelected:
    day: date
    hour: int

    def encode(self) -> str:
        return f"{PREFIX}:hour:{self.day.isoformat()}:{self.hour}"


@dataclass(frozen=True)
class MinuteSelected:
    day: date
    hour: int
    minute: int

    def encode(self) -> str:
        return f"{PREFIX}:min:{self.day.isoformat()}:{self.hour}:{self.minute}"


@dataclass(frozen=True)
class BackToCalendar:
    def encode(self) -> str:
        return f"{PREFIX}:back_to_cal"


@dataclass(frozen=True)
class BackToHours:
    day: date

    def encode(self) -> str:
        return f"{PREFIX}:back_to_hours:{self.day.isoformat()}"


CalendarCallback = Union[
    Ignore,
    Cancel,
    PrevMonth,
    NextMonth,
    DaySelected,
    HourSelected,
    MinuteSelected,
    BackToCalendar,
    BackToHours,
]


def _int(raw: str, low: int, high: int, what: str) -> int:
    if not raw.isdigit():
        raise ValueError(f"Bad {what}: {raw!r}")
    value = int(raw)
    if not low <= value <= high:
        raise ValueError(f"{what} out of range: {value}")
    return value


def _day(raw: str) -> date:
    if len(raw) != 10:
        raise ValueError(f"Bad date: {raw!r}")
    return date.fromisoformat(raw)


def _month_args(args: list[str]) -> tuple[int, int]:
    if len(args) != 2:
        raise ValueError("Expected <year>:<month>")
    return _int(args[0], 1, 9999, "year"), _int(args[1], 1, 12, "month")


def parse_callback_data(data: str) -> CalendarCallback:
    """Parse a "cal:..." payload. Raises ValueError on anything malformed."""
    parts = (data or "").split(":")
    if len(parts) < 2 or parts[0] != PREFIX:
        raise ValueError(f"Not a calendar payload: {data!r}")

    tag, args = parts[1], parts[2:]

    if tag == "ignore" and not args:
        return Ignore()
    if tag == "cancel" and not args:
        return Cancel()
    if tag == "back_to_cal" and not args:
        return BackToCalendar()
    if tag == "prev":
        return PrevMonth(*_month_args(args))
    if tag == "next":
        return NextMonth(*_month_args(args))
    if tag == "day" and len(args) == 1:
        return DaySelected(_day(args[0]))
    if tag == "back_to_hours" and len(args) == 1:
        return BackToHours(_day(args[0]))
    if tag == "hour" and len(args) == 2:
        return HourSelected(_day(args[0]), _int(args[1], 0, 23, "hour"))
    if tag == "min" and len(args) == 3:
        minute = _int(args[2], 0, 59, "minute")
        if minute % MINUTE_STEP:
            raise ValueError(f"Minute must be a multiple of {MINUTE_STEP}: {minute}")
        return MinuteSelected(_day(args[0]), _int(args[1], 0, 23, "hour"), minute)

    raise ValueError(f"Unknown calendar payload: {data!r}")
