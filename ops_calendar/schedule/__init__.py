"""Schedule aggregation for the ops calendar.

Merges three sources into one role-scoped, per-day feed:
- task deadlines (Task store, read-only)
- manual schedule entries (Schedule store, create/delete via the gateway)
- CRM follow-ups (CRM store, read-only)
"""
from __future__ import annotations

from .types import (
    ActorScope,
    CalendarEvent,
    DateRange,
    FilterSet,
    FollowUp,
    GridCell,
    Lead,
    ManualEventInput,
    ManualScheduleEntry,
    SourceKind,
    Task,
)

from .errors import (
    EventNotFound,
    LeadLookupError,
    PolicyError,
    ScheduleError,
    ScopeError,
    SourceUnavailable,
    ValidationError,
)

from .stores import (
    CrmStore,
    InMemoryCrmStore,
    InMemoryScheduleStore,
    InMemoryTaskStore,
    ScheduleStore,
    TaskStore,
)

from .schedule_store import PersistentScheduleStore
from .scoping import ScopingProfile, SourceScoping, scoping_for_role
from .normalizer import normalize
from .filters import apply_filters
from .grid import month_range, reduce_for_grid
from .engine import MonthGrid, RangeBuild, ScheduleEngine
from .gateway import MutationGateway


__all__ = [
    # Types
    "ActorScope",
    "CalendarEvent",
    "DateRange",
    "FilterSet",
    "FollowUp",
    "GridCell",
    "Lead",
    "ManualEventInput",
    "ManualScheduleEntry",
    "SourceKind",
    "Task",
    # Errors
    "EventNotFound",
    "LeadLookupError",
    "PolicyError",
    "ScheduleError",
    "ScopeError",
    "SourceUnavailable",
    "ValidationError",
    # Stores
    "CrmStore",
    "InMemoryCrmStore",
    "InMemoryScheduleStore",
    "InMemoryTaskStore",
    "PersistentScheduleStore",
    "ScheduleStore",
    "TaskStore",
    # Engine
    "ScopingProfile",
    "SourceScoping",
    "scoping_for_role",
    "normalize",
    "apply_filters",
    "month_range",
    "reduce_for_grid",
    "MonthGrid",
    "RangeBuild",
    "ScheduleEngine",
    "MutationGateway",
]
