"""Tests for src.core.picker: calendar, hour and minute keyboards."""

import calendar
import math
from datetime import date

import pytest

from src.core.callback_data import DaySelected, parse_callback_data
from src.core.picker import (
    WEEKDAY_LABELS,
    build_calendar,
    build_hour_picker,
    build_minute_picker,
    clamp_to_floor,
    month_offset,
    shift_month,
)

TODAY = date(2025, 9, 10)


def _day_rows(rows):
    """Strip header, weekday and cancel rows."""
    return rows[2:-1]


class TestMonthArithmetic:
    def test_shift_forward_over_year(self):
        assert shift_month(2025, 12, 1) == (2026, 1)

    def test_shift_back_over_year(self):
        assert shift_month(2026, 1, -1) == (2025, 12)

    def test_shift_stops_at_last_representable_month(self):
        assert shift_month(9999, 12, 1) == (9999, 12)
        assert shift_month(9999, 11, 5) == (9999, 12)

    def test_shift_stops_at_first_representable_month(self):
        assert shift_month(1, 1, -1) == (1, 1)

    def test_shift_zero(self):
        assert shift_month(2025, 5, 0) == (2025, 5)

    def test_clamp_before_floor(self):
        assert clamp_to_floor(2025, 8, TODAY) == (2025, 9)
        assert clamp_to_floor(2024, 12, TODAY) == (2025, 9)

    def test_clamp_keeps_current_and_future(self):
        assert clamp_to_floor(2025, 9, TODAY) == (2025, 9)
        assert clamp_to_floor(2026, 2, TODAY) == (2026, 2)

    def test_month_offset_monday_first(self):
        # 2025-09-01 is a Monday, 2025-06-01 a Sunday
        assert month_offset(2025, 9) == 0
        assert month_offset(2025, 6) == 6


class TestBuildCalendar:
    @pytest.mark.parametrize("year,month", [
        (2025, 9), (2025, 6), (2026, 2), (2027, 2), (2024, 2), (2025, 12),
    ])
    def test_week_row_count(self, year, month):
        rows = build_calendar(year, month, today=date(2024, 1, 1))
        days = calendar.monthrange(year, month)[1]
        expected_weeks = math.ceil((days + month_offset(year, month)) / 7)
        assert len(_day_rows(rows)) == expected_weeks
        assert len(rows) == expected_weeks + 3

    def test_every_week_row_has_seven_cells(self):
        for row in _day_rows(build_calendar(2025, 6, today=TODAY)):
            assert len(row) == 7

    def test_day_cells_cover_month_exactly_once(self):
        rows = build_calendar(2026, 3, today=TODAY)
        numbered = [b.text for row in _day_rows(rows) for b in row if b.text.strip()]
        assert [int(t.strip("·")) for t in numbered] == list(range(1, 32))

    def test_padding_cells_are_inert(self):
        rows = build_calendar(2025, 6, today=date(2025, 6, 1))
        first_week = _day_rows(rows)[0]
        assert [b.data for b in first_week[:6]] == ["cal:ignore"] * 6
        assert first_week[6].data == "cal:day:2025-06-01"
        last_week = _day_rows(rows)[-1]
        assert last_week[-1].text == " "
        assert last_week[-1].data == "cal:ignore"

    def test_actionable_cells_encode_iso_date(self):
        rows = build_calendar(2025, 10, today=TODAY)
        payloads = [b.data for row in _day_rows(rows) for b in row if b.data != "cal:ignore"]
        assert len(payloads) == 31
        assert payloads[0] == "cal:day:2025-10-01"
        assert parse_callback_data(payloads[-1]) == DaySelected(date(2025, 10, 31))

    def test_past_days_are_inert(self):
        rows = build_calendar(2025, 9, today=TODAY)
        cells = {b.text.strip("·"): b for row in _day_rows(rows) for b in row if b.text.strip()}
        for day_number in range(1, 10):
            assert cells[str(day_number)].data == "cal:ignore"
            assert cells[str(day_number)].text == f"·{day_number}·"
        assert cells["10"].data == "cal:day:2025-09-10"
        assert cells["30"].data == "cal:day:2025-09-30"

    def test_past_month_entirely_inert(self):
        rows = build_calendar(2025, 8, today=TODAY)
        assert all(b.data == "cal:ignore" for row in _day_rows(rows) for b in row)

    def test_header(self):
        header = build_calendar(2025, 10, today=TODAY)[0]
        assert [b.text for b in header] == ["◀", "October 2025", "▶"]
        assert header[0].data == "cal:prev:2025:10"
        assert header[1].data == "cal:ignore"
        assert header[2].data == "cal:next:2025:10"

    def test_no_prev_on_current_month(self):
        prev_button = build_calendar(2025, 9, today=TODAY)[0][0]
        assert prev_button.data == "cal:ignore"
        assert prev_button.text == " "

    def test_no_prev_before_current_month(self):
        assert build_calendar(2025, 1, today=TODAY)[0][0].data == "cal:ignore"
        assert build_calendar(2024, 12, today=TODAY)[0][0].data == "cal:ignore"

    def test_weekday_row(self):
        row = build_calendar(2025, 9, today=TODAY)[1]
        assert tuple(b.text for b in row) == WEEKDAY_LABELS
        assert all(b.data == "cal:ignore" for b in row)
        assert row[0].text == "Mo"

    def test_cancel_row(self):
        last = build_calendar(2025, 9, today=TODAY)[-1]
        assert len(last) == 1
        assert last[0].data == "cal:cancel"

    def test_pure(self):
        assert build_calendar(2025, 11, today=TODAY) == build_calendar(2025, 11, today=TODAY)


class TestBuildHourPicker:
    DAY = date(2025, 9, 7)

    def test_layout(self):
        rows = build_hour_picker(self.DAY)
        assert len(rows) == 6
        assert rows[0][0].data == "cal:ignore"
        assert all(len(row) == 6 for row in rows[1:5])

    def test_covers_all_hours(self):
        rows = build_hour_picker(self.DAY)
        payloads = [b.data for row in rows[1:5] for b in row]
        assert payloads == [f"cal:hour:2025-09-07:{h}" for h in range(24)]
        assert rows[1][0].text == "00"
        assert rows[4][5].text == "23"

    def test_back_and_cancel(self):
        last = build_hour_picker(self.DAY)[-1]
        assert [b.data for b in last] == ["cal:back_to_cal", "cal:cancel"]


class TestBuildMinutePicker:
    DAY = date(2025, 9, 7)

    def test_layout(self):
        rows = build_minute_picker(self.DAY, 14)
        assert len(rows) == 4
        assert rows[0][0].data == "cal:ignore"
        assert all(len(row) == 6 for row in rows[1:3])

    def test_five_minute_steps(self):
        rows = build_minute_picker(self.DAY, 14)
        payloads = [b.data for row in rows[1:3] for b in row]
        assert payloads == [f"cal:min:2025-09-07:14:{m}" for m in range(0, 60, 5)]
        assert rows[1][0].text == "14:00"
        assert rows[2][5].text == "14:55"

    def test_back_and_cancel(self):
        last = build_minute_picker(self.DAY, 14)[-1]
        assert [b.data for b in last] == ["cal:back_to_hours:2025-09-07", "cal:cancel"]
