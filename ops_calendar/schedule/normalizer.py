"""Map source records onto CalendarEvent."""
from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Optional

from .errors import LeadLookupError
from .types import (
    DEFAULT_TIME,
    CalendarEvent,
    FollowUp,
    ManualScheduleEntry,
    RawRecord,
    SourceKind,
    Task,
    day_of,
)


LeadNameLookup = Callable[[str], Optional[str]]

LEAD_PLACEHOLDER = "Lead"

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})")


def format_hhmm(value) -> str:
    """Return the HH:mm of a timestamp; date-only values map to midnight."""
    if isinstance(value, datetime):
        return value.strftime("%H:%M")
    return DEFAULT_TIME


def coerce_hhmm(value: Optional[str]) -> str:
    """Zero-pad an entry's time string so string order equals time order.

    "9:05" becomes "09:05"; missing or unparsable values become "00:00".
    """
    if not value:
        return DEFAULT_TIME
    match = _HHMM.match(value.strip())
    if not match:
        return DEFAULT_TIME
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return DEFAULT_TIME
    return f"{hour:02d}:{minute:02d}"


def normalize(
    record: RawRecord,
    source_kind: SourceKind,
    lead_names: Optional[LeadNameLookup] = None,
    *,
    strict_lead_names: bool = False,
) -> Optional[CalendarEvent]:
    """Convert one source record into a CalendarEvent.

    Args:
        record: Task, ManualScheduleEntry or FollowUp
        source_kind: Which source the record came from
        lead_names: Lookup for follow-up lead names
        strict_lead_names: Raise instead of using the placeholder name

    Returns:
        The event, or None when the record has no usable timestamp.

    Raises:
        LeadLookupError: in strict mode, when a lead name cannot be resolved.
    """
    if source_kind is SourceKind.TASK:
        return _normalize_task(record)
    if source_kind is SourceKind.MANUAL:
        return _normalize_entry(record)
    if source_kind is SourceKind.CRM:
        return _normalize_followup(record, lead_names, strict_lead_names)
    raise ValueError(f"Unknown source kind: {source_kind!r}")


def _normalize_task(task: Task) -> Optional[CalendarEvent]:
    day = day_of(task.deadline)
    if day is None:
        return None
    return CalendarEvent(
        id=task.id,
        title=task.title,
        description=task.description,
        type="task",
        date=day,
        time=format_hhmm(task.deadline),
        source_kind=SourceKind.TASK,
        raw=task,
    )


def _normalize_entry(entry: ManualScheduleEntry) -> Optional[CalendarEvent]:
    day = day_of(entry.date)
    if day is None:
        return None
    return CalendarEvent(
        id=entry.id,
        title=entry.title,
        description=entry.description,
        type=entry.type or "other",
        date=day,
        time=coerce_hhmm(entry.time),
        source_kind=SourceKind.MANUAL,
        raw=entry,
    )


def _normalize_followup(
    followup: FollowUp,
    lead_names: Optional[LeadNameLookup],
    strict: bool,
) -> Optional[CalendarEvent]:
    day = day_of(followup.scheduled_at)
    if day is None:
        return None

    event_type = "meeting" if (followup.type or "").lower() == "meeting" else "call"
    lead_name = lead_names(followup.lead_id) if lead_names else None
    if not lead_name:
        if strict:
            raise LeadLookupError(followup.lead_id)
        lead_name = LEAD_PLACEHOLDER

    return CalendarEvent(
        id=followup.id,
        title=f"{event_type.capitalize()} with {lead_name}",
        description=followup.notes,
        type=event_type,
        date=day,
        time=format_hhmm(followup.scheduled_at),
        source_kind=SourceKind.CRM,
        raw=followup,
    )
