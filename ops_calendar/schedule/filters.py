"""Facet filtering for day buckets."""
from __future__ import annotations

from typing import Iterable, List, Optional

from .types import CalendarEvent, FilterSet


def apply_filters(
    events: Iterable[CalendarEvent],
    filters: Optional[FilterSet] = None,
) -> List[CalendarEvent]:
    """Return the events that pass the type facet.

    The member facet is not handled here: it changes which records the
    adapters return (see ScheduleEngine), since post-filtering a wider read
    could surface records the member view should never include.
    """
    events = list(events)
    if filters is None or not filters.type_facet_active:
        return events
    return [e for e in events if e.type == filters.event_type]
