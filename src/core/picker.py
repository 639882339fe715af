"""Calendar, hour and minute pickers for /set_date: pure functions.

Each builder returns a Keyboard (rows of Buttons) whose payloads are the
callback values from src.core.callback_data. No I/O and no Telegram types:
the bot layer turns a Keyboard into an InlineKeyboardMarkup.

Month navigation never goes before the current month, and days before today
are shown but inert.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date

from src.core.callback_data import (
    MINUTE_STEP,
    BackToCalendar,
    BackToHours,
    Cancel,
    DaySelected,
    HourSelected,
    Ignore,
    MinuteSelected,
    NextMonth,
    PrevMonth,
)
from src.core.dates import today_in_event_tz

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
WEEKDAY_LABELS = ("Mo", "Tu", "We", "Th", "Fr", "Sa", "Su")

HOURS_PER_ROW = 6
MINUTES_PER_ROW = 6

_IGNORE = Ignore().encode()


@dataclass(frozen=True)
class Button:
    text: str
    data: str


Keyboard = list[list[Button]]


def _inert(text: str = " ") -> Button:
    return Button(text, _IGNORE)


def _cancel() -> Button:
    return Button("❌ Cancel", Cancel().encode())


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by *delta* months, staying within date's year range."""
    index = year * 12 + (month - 1) + delta
    index = max(MINYEAR * 12, min(index, MAXYEAR * 12 + 11))
    return index // 12, index % 12 + 1


def clamp_to_floor(year: int, month: int, today: date) -> tuple[int, int]:
    """Never return a month before today's month."""
    if (year, month) < (today.year, today.month):
        return today.year, today.month
    return year, month


def month_offset(year: int, month: int) -> int:
    """Number of padding cells before day 1 in a Monday-first week."""
    return date(year, month, 1).weekday()


def build_calendar(year: int, month: int, today: date | None = None) -> Keyboard:
    """Month grid: navigation header, weekday labels, weeks, cancel row."""
    if today is None:
        today = today_in_event_tz()

    if (year, month) <= (today.year, today.month):
        prev_button = _inert()
    else:
        prev_button = Button("◀", PrevMonth(year, month).encode())

    rows: Keyboard = [
        [
            prev_button,
            _inert(f"{MONTH_NAMES[month - 1]} {year}"),
            Button("▶", NextMonth(year, month).encode()),
        ],
        [_inert(label) for label in WEEKDAY_LABELS],
    ]

    offset = month_offset(year, month)
    days_in_month = calendar.monthrange(year, month)[1]
    cells: list[Button] = [_inert() for _ in range(offset)]
    for day_number in range(1, days_in_month + 1):
        day = date(year, month, day_number)
        if day < today:
            cells.append(_inert(f"·{day_number}·"))
        else:
            cells.append(Button(str(day_number), DaySelected(day).encode()))
    while len(cells) % 7:
        cells.append(_inert())

    rows.extend(cells[i:i + 7] for i in range(0, len(cells), 7))
    rows.append([_cancel()])
    return rows


def build_hour_picker(day: date) -> Keyboard:
    """Label row, 24 hour buttons in rows of 6, back/cancel row."""
    rows: Keyboard = [[_inert(f"🕐 {day.isoformat()}: choose the hour")]]
    for start in range(0, 24, HOURS_PER_ROW):
        rows.append([
            Button(f"{hour:02d}", HourSelected(day, hour).encode())
            for hour in range(start, start + HOURS_PER_ROW)
        ])
    rows.append([Button("⬅ Back", BackToCalendar().encode()), _cancel()])
    return rows


def build_minute_picker(day: date, hour: int) -> Keyboard:
    """Label row, minutes 00..55 in rows of 6, back/cancel row."""
    minutes = list(range(0, 60, MINUTE_STEP))
    rows: Keyboard = [[_inert(f"🕐 {day.isoformat()} {hour:02d}:__: choose the minutes")]]
    for start in range(0, len(minutes), MINUTES_PER_ROW):
        rows.append([
            Button(f"{hour:02d}:{minute:02d}", MinuteSelected(day, hour, minute).encode())
            for minute in minutes[start:start + MINUTES_PER_ROW]
        ])
    rows.append([Button("⬅ Back", BackToHours(day).encode()), _cancel()])
    return rows
