"""Schedule data types.

Source records (Task, ManualScheduleEntry, FollowUp, Lead) are owned by
external stores; the engine only reads them. CalendarEvent is the engine's
normalized, provenance-tagged view of any of them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Literal, Optional, Set, Union


Role = Literal["admin", "manager", "sales", "employee"]
ManualEventType = Literal["meeting", "reminder", "deadline", "call", "other"]
EventType = Literal["task", "meeting", "reminder", "deadline", "call", "other"]

ROLES = ("admin", "manager", "sales", "employee")
MANUAL_EVENT_TYPES = ("meeting", "reminder", "deadline", "call", "other")
EVENT_TYPES = ("task",) + MANUAL_EVENT_TYPES

DEFAULT_TIME = "00:00"


class SourceKind(str, Enum):
    """Which store a calendar event came from."""

    TASK = "task"
    MANUAL = "manual"
    CRM = "crm"


# Tie-break order for events sharing a time slot.
SOURCE_PRIORITY: Dict[SourceKind, int] = {
    SourceKind.TASK: 0,
    SourceKind.MANUAL: 1,
    SourceKind.CRM: 2,
}


def _now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[Union[datetime, date]]:
    """Parse a stored timestamp into a datetime (or date for date-only values).

    Accepts datetime/date objects and ISO-8601 strings (a trailing ``Z`` is
    understood). Returns None for empty or unparsable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (datetime, date)):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip().replace("Z", "+00:00")
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def day_of(value: Optional[Union[datetime, date]]) -> Optional[date]:
    """Truncate a timestamp to its calendar day."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def _ts_to_str(value: Optional[Union[datetime, date]]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# Scope, filters and ranges
# =============================================================================


@dataclass(frozen=True, slots=True)
class ActorScope:
    """The acting user and role a read is performed for."""

    actor_id: str
    role: Role = "employee"


@dataclass(frozen=True, slots=True)
class FilterSet:
    """User-selected facets applied to a schedule view."""

    event_type: Optional[str] = None  # None or "all" keeps every type
    member_id: Optional[str] = None  # team-member drill-down

    @property
    def type_facet_active(self) -> bool:
        return bool(self.event_type) and self.event_type != "all"


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive range of calendar days."""

    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"DateRange end {self.end} is before start {self.start}")

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    @classmethod
    def single(cls, day: date) -> "DateRange":
        return cls(day, day)


# =============================================================================
# Source records
# =============================================================================


@dataclass(slots=True)
class Task:
    """Task as exposed by the external Task store."""

    id: str
    title: str
    deadline: Optional[Union[datetime, date]] = None
    priority: str = "medium"  # low, medium, high, urgent
    assigned_to: Set[str] = field(default_factory=set)
    delegated_by: Optional[str] = None
    assigned_to_manager: Optional[str] = None
    status: str = "pending"
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from a stored/JSON record (camelCase or snake_case keys)."""
        assigned = data.get("assigned_to", data.get("assignedTo")) or []
        if isinstance(assigned, str):
            assigned = [assigned]
        return cls(
            id=str(data.get("id") or data.get("_id")),
            title=data.get("title", ""),
            deadline=parse_timestamp(data.get("deadline")),
            priority=data.get("priority", "medium"),
            assigned_to=set(assigned),
            delegated_by=data.get("delegated_by", data.get("delegatedBy")),
            assigned_to_manager=data.get("assigned_to_manager", data.get("assignedToManager")),
            status=data.get("status", "pending"),
            description=data.get("description"),
        )


@dataclass(slots=True)
class ManualScheduleEntry:
    """Manually created calendar entry held by the Schedule store."""

    id: str
    title: str
    date: Optional[Union[datetime, date]]
    time: Optional[str] = None  # HH:mm, independent of date's time part
    type: str = "meeting"
    owner_id: Optional[str] = None
    description: Optional[str] = None
    participants: List[str] = field(default_factory=list)
    assigned_to: Optional[str] = None  # free-text label
    location: str = "Remote"
    end_time: Optional[str] = None
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "title": self.title,
            "date": _ts_to_str(self.date),
            "time": self.time,
            "type": self.type,
            "owner_id": self.owner_id,
            "description": self.description,
            "participants": list(self.participants),
            "assigned_to": self.assigned_to,
            "location": self.location,
            "end_time": self.end_time,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ManualScheduleEntry":
        """Create from dictionary.

        The creator is stored as ``owner_id``; records written by the older
        views carry it as ``managerId`` or ``createdBy``.
        """
        owner = data.get("owner_id") or data.get("managerId") or data.get("createdBy")
        participants = data.get("participants") or []
        created = parse_timestamp(data.get("created_at"))
        return cls(
            id=str(data.get("id") or data.get("_id")),
            title=data.get("title", ""),
            date=parse_timestamp(data.get("date")),
            time=data.get("time"),
            type=data.get("type") or "meeting",
            owner_id=owner,
            description=data.get("description"),
            participants=[
                p.get("userId") if isinstance(p, dict) else p for p in participants
            ],
            assigned_to=data.get("assigned_to", data.get("assignedTo")),
            location=data.get("location") or "Remote",
            end_time=data.get("end_time", data.get("endTime")),
            created_at=created if isinstance(created, datetime) else _now(),
        )


@dataclass(slots=True)
class FollowUp:
    """CRM follow-up appointment."""

    id: str
    lead_id: str
    sales_rep_id: str
    scheduled_at: Optional[Union[datetime, date]] = None
    type: str = "call"
    notes: Optional[str] = None
    outcome: Optional[str] = None
    status: str = "scheduled"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FollowUp":
        return cls(
            id=str(data.get("id") or data.get("_id")),
            lead_id=str(data.get("lead_id", data.get("leadId"))),
            sales_rep_id=str(data.get("sales_rep_id", data.get("salesRepId"))),
            scheduled_at=parse_timestamp(data.get("scheduled_at", data.get("scheduledAt"))),
            type=(data.get("type") or "call").lower(),
            notes=data.get("notes"),
            outcome=data.get("outcome"),
            status=(data.get("status") or "scheduled").lower(),
        )


@dataclass(slots=True)
class Lead:
    """CRM lead, used for follow-up titles."""

    id: str
    name: str
    owner_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lead":
        return cls(
            id=str(data.get("id") or data.get("_id")),
            name=data.get("name", ""),
            owner_id=data.get("owner_id", data.get("owner")),
        )


RawRecord = Union[Task, ManualScheduleEntry, FollowUp]


# =============================================================================
# Engine-owned types
# =============================================================================


@dataclass(frozen=True)
class CalendarEvent:
    """A schedulable item in a day bucket, tagged with where it came from."""

    id: str
    title: str
    type: str
    date: date
    source_kind: SourceKind
    time: str = DEFAULT_TIME
    description: Optional[str] = None
    raw: Optional[RawRecord] = field(default=None, compare=False, repr=False)

    @property
    def deletable(self) -> bool:
        """Only manually created entries may be removed from the schedule."""
        return self.source_kind is SourceKind.MANUAL

    @property
    def sort_key(self) -> tuple:
        return (self.time, SOURCE_PRIORITY[self.source_kind])

    def to_api_dict(self) -> Dict[str, Any]:
        """Convert to API response format (camelCase)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "date": self.date.isoformat(),
            "time": self.time,
            "sourceKind": self.source_kind.value,
            "deletable": self.deletable,
        }


@dataclass(slots=True)
class ManualEventInput:
    """Fields accepted when creating a manual schedule entry."""

    title: Optional[str]
    date: Optional[Union[datetime, date, str]]  # ISO strings are parsed on create
    time: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    participants: List[str] = field(default_factory=list)
    assigned_to: Optional[str] = None
    location: Optional[str] = None
    end_time: Optional[str] = None


@dataclass(slots=True)
class GridCell:
    """Display slice of one day bucket."""

    visible: List[CalendarEvent]
    overflow_count: int
    events: List[CalendarEvent]  # full, unreduced list

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "visible": [e.to_api_dict() for e in self.visible],
            "overflowCount": self.overflow_count,
            "total": len(self.events),
        }
