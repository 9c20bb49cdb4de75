"""Store interfaces consumed by the schedule engine, plus in-memory stores.

The engine never reaches for a global store: callers hand it objects that
satisfy these protocols. The in-memory implementations back the tests, the
demo dataset and the CLI.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Protocol, TypeVar

from .types import DateRange, FollowUp, Lead, ManualScheduleEntry, Task, day_of


R = TypeVar("R")
Predicate = Callable[[R], bool]


class TaskStore(Protocol):
    def list_tasks_by_deadline_range(
        self, date_range: DateRange, predicate: Predicate[Task]
    ) -> List[Task]:
        """Tasks whose deadline falls on a day in range and match predicate."""


class ScheduleStore(Protocol):
    def list_entries_by_date_range(
        self, date_range: DateRange, predicate: Predicate[ManualScheduleEntry]
    ) -> List[ManualScheduleEntry]:
        """Entries whose date falls on a day in range and match predicate."""

    def get_entry(self, entry_id: str) -> Optional[ManualScheduleEntry]:
        """Return one entry by id, or None."""

    def insert_entry(self, entry: ManualScheduleEntry) -> str:
        """Persist a new entry and return its id."""

    def delete_entry(self, entry_id: str) -> bool:
        """Remove an entry. Returns False if it did not exist."""


class CrmStore(Protocol):
    def list_followups_by_date_range(
        self, date_range: DateRange, predicate: Predicate[FollowUp]
    ) -> List[FollowUp]:
        """Follow-ups scheduled on a day in range that match predicate."""

    def resolve_lead_name(self, lead_id: str) -> Optional[str]:
        """Return the lead's display name, or None if unknown."""


def select_in_range(
    records: Iterable[R],
    date_range: DateRange,
    timestamp: Callable[[R], object],
    predicate: Predicate[R],
) -> List[R]:
    """Keep records whose timestamp truncates into range and pass predicate.

    Records without a timestamp are skipped.
    """
    selected = []
    for record in records:
        day = day_of(timestamp(record))
        if day is None or day not in date_range:
            continue
        if predicate(record):
            selected.append(record)
    return selected


# =============================================================================
# In-memory stores
# =============================================================================


class InMemoryTaskStore:
    """Task store over a fixed list of tasks."""

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self.tasks: List[Task] = list(tasks)

    def list_tasks_by_deadline_range(self, date_range, predicate):
        return select_in_range(self.tasks, date_range, lambda t: t.deadline, predicate)


class InMemoryScheduleStore:
    """Schedule store held in a dict keyed by entry id."""

    def __init__(self, entries: Iterable[ManualScheduleEntry] = ()) -> None:
        self.entries: Dict[str, ManualScheduleEntry] = {e.id: e for e in entries}

    def list_entries_by_date_range(self, date_range, predicate):
        return select_in_range(
            self.entries.values(), date_range, lambda e: e.date, predicate
        )

    def get_entry(self, entry_id):
        return self.entries.get(entry_id)

    def insert_entry(self, entry):
        self.entries[entry.id] = entry
        return entry.id

    def delete_entry(self, entry_id):
        return self.entries.pop(entry_id, None) is not None


class InMemoryCrmStore:
    """CRM store over fixed follow-ups and leads."""

    def __init__(
        self,
        followups: Iterable[FollowUp] = (),
        leads: Iterable[Lead] = (),
    ) -> None:
        self.followups: List[FollowUp] = list(followups)
        self.leads: Dict[str, Lead] = {lead.id: lead for lead in leads}

    def list_followups_by_date_range(self, date_range, predicate):
        return select_in_range(
            self.followups, date_range, lambda f: f.scheduled_at, predicate
        )

    def resolve_lead_name(self, lead_id):
        lead = self.leads.get(lead_id)
        if lead is None or not lead.name:
            return None
        return lead.name
