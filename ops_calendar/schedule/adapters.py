"""Event source adapters.

Each adapter binds a scoped predicate to an actor and reads matching records
from its store. Adapters never write.
"""
from __future__ import annotations

from datetime import date
from typing import Callable, List, Optional

from .errors import SourceUnavailable
from .scoping import ScopedPredicate, SourceScoping
from .stores import CrmStore, ScheduleStore, TaskStore
from .types import ActorScope, DateRange, SourceKind


class SourceAdapter:
    """Scoped, read-only view over one store."""

    source_kind: SourceKind

    def __init__(
        self,
        store,
        predicate: ScopedPredicate,
        member_predicate: Optional[ScopedPredicate] = None,
    ) -> None:
        self.store = store
        self.predicate = predicate
        self.member_predicate = member_predicate

    @classmethod
    def from_scoping(cls, store, scoping: SourceScoping) -> "SourceAdapter":
        return cls(store, scoping.predicate, scoping.member_predicate)

    def fetch_range(
        self,
        date_range: DateRange,
        scope: ActorScope,
        member_id: Optional[str] = None,
    ) -> List:
        """Return records on any day in range that are visible to scope.

        With ``member_id`` set, only records that also belong to that member
        are returned.

        Raises:
            SourceUnavailable: if the store cannot be reached.
        """
        predicate = self._bind(scope, member_id)
        try:
            return list(self._query(date_range, predicate))
        except SourceUnavailable:
            raise
        except OSError as exc:
            raise SourceUnavailable(self.source_kind.value, str(exc)) from exc

    def fetch_day_events(
        self,
        day: date,
        scope: ActorScope,
        member_id: Optional[str] = None,
    ) -> List:
        return self.fetch_range(DateRange.single(day), scope, member_id)

    def _bind(self, scope: ActorScope, member_id: Optional[str]) -> Callable[[object], bool]:
        if member_id is None:
            return lambda record: self.predicate(record, scope)
        if self.member_predicate is None:
            return lambda record: False
        member_scope = ActorScope(actor_id=member_id, role=scope.role)
        return lambda record: (
            self.predicate(record, scope) and self.member_predicate(record, member_scope)
        )

    def _query(self, date_range: DateRange, predicate):
        raise NotImplementedError


class TaskAdapter(SourceAdapter):
    source_kind = SourceKind.TASK
    store: TaskStore

    def _query(self, date_range, predicate):
        return self.store.list_tasks_by_deadline_range(date_range, predicate)


class ManualAdapter(SourceAdapter):
    source_kind = SourceKind.MANUAL
    store: ScheduleStore

    def _query(self, date_range, predicate):
        return self.store.list_entries_by_date_range(date_range, predicate)


class CrmAdapter(SourceAdapter):
    source_kind = SourceKind.CRM
    store: CrmStore

    def _query(self, date_range, predicate):
        return self.store.list_followups_by_date_range(date_range, predicate)
