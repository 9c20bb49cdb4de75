"""Month grid range math and per-day display reduction."""
from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import List, Sequence

from .types import CalendarEvent, DateRange, GridCell


SUNDAY = calendar.SUNDAY
MONDAY = calendar.MONDAY

DEFAULT_MAX_VISIBLE = 3


def start_of_week(day: date, week_start: int = SUNDAY) -> date:
    return day - timedelta(days=(day.weekday() - week_start) % 7)


def end_of_week(day: date, week_start: int = SUNDAY) -> date:
    last_weekday = (week_start + 6) % 7
    return day + timedelta(days=(last_weekday - day.weekday()) % 7)


def month_range(anchor: date, week_start: int = SUNDAY) -> DateRange:
    """Expand the anchor's month to whole weeks.

    The first day is the start of the week containing the 1st; the last day
    is the end of the week containing the month's last day.
    """
    first = anchor.replace(day=1)
    last = anchor.replace(day=calendar.monthrange(anchor.year, anchor.month)[1])
    return DateRange(start_of_week(first, week_start), end_of_week(last, week_start))


def weeks(date_range: DateRange) -> List[List[date]]:
    """Split a whole-week range into rows of seven days."""
    days = list(date_range)
    return [days[i:i + 7] for i in range(0, len(days), 7)]


def reduce_for_grid(
    day_events: Sequence[CalendarEvent],
    max_visible: int = DEFAULT_MAX_VISIBLE,
) -> GridCell:
    """Keep the first ``max_visible`` events for display; count the rest.

    Raises:
        ValueError: if max_visible is negative.
    """
    if max_visible < 0:
        raise ValueError("max_visible must be >= 0")
    events = list(day_events)
    visible = events[:max_visible]
    return GridCell(
        visible=visible,
        overflow_count=len(events) - len(visible),
        events=events,
    )
