"""Schedule engine - merges tasks, manual entries and CRM follow-ups per day.

Read path for every view:

1. each source adapter is queried once for the whole range (concurrently),
2. records are normalized to CalendarEvent and dropped into day buckets,
3. facet filters narrow each bucket,
4. each bucket is sorted by time, ties broken task -> manual -> crm.

A source that fails contributes nothing to the build; the other sources still
render and the failure is reported once in ``warnings``.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from ..config import Settings
from .adapters import CrmAdapter, ManualAdapter, SourceAdapter, TaskAdapter
from .errors import ScopeError, SourceUnavailable
from .filters import apply_filters
from .grid import month_range, reduce_for_grid, weeks
from .normalizer import normalize
from .scoping import ScopingProfile, scoping_for_role
from .stores import CrmStore, ScheduleStore, TaskStore
from .types import (
    ActorScope,
    CalendarEvent,
    DateRange,
    FilterSet,
    GridCell,
    SourceKind,
)


logger = logging.getLogger(__name__)

TeamLookup = Callable[[str], Iterable[str]]


@dataclass(slots=True)
class RangeBuild:
    """Sorted day buckets for every day of a range."""

    date_range: DateRange
    days: Dict[date, List[CalendarEvent]]
    warnings: List[str] = field(default_factory=list)

    def first(self, limit: int) -> List[CalendarEvent]:
        """The first ``limit`` events across the range, in schedule order."""
        events: List[CalendarEvent] = []
        for bucket in self.days.values():
            events.extend(bucket)
            if len(events) >= limit:
                break
        return events[:limit]


@dataclass(slots=True)
class MonthGrid:
    """Whole-week month grid, reduced for display."""

    month: date  # first day of the anchor month
    date_range: DateRange
    cells: Dict[date, GridCell]
    warnings: List[str] = field(default_factory=list)

    def weeks(self) -> List[List[date]]:
        return weeks(self.date_range)

    def to_api_dict(self) -> dict:
        return {
            "month": self.month.isoformat(),
            "start": self.date_range.start.isoformat(),
            "end": self.date_range.end.isoformat(),
            "days": [
                {
                    "date": day.isoformat(),
                    "inMonth": (day.year, day.month) == (self.month.year, self.month.month),
                    **cell.to_api_dict(),
                }
                for day, cell in self.cells.items()
            ],
            "warnings": self.warnings,
        }


class ScheduleEngine:
    """Role-scoped calendar over the task, schedule and CRM stores."""

    def __init__(
        self,
        task_store: TaskStore,
        schedule_store: ScheduleStore,
        crm_store: CrmStore,
        *,
        settings: Optional[Settings] = None,
        scoping: Optional[Callable[[str], ScopingProfile]] = None,
        team_lookup: Optional[TeamLookup] = None,
    ) -> None:
        self.task_store = task_store
        self.schedule_store = schedule_store
        self.crm_store = crm_store
        self.settings = settings or Settings()
        self.scoping = scoping or (
            lambda role: scoping_for_role(
                role, sales_manual_scope=self.settings.sales_manual_scope
            )
        )
        self.team_lookup = team_lookup

    # =========================================================================
    # Read API
    # =========================================================================

    def get_month_grid(
        self,
        anchor: date,
        scope: ActorScope,
        filters: Optional[FilterSet] = None,
        max_visible: Optional[int] = None,
    ) -> MonthGrid:
        """Build the whole-week grid for the anchor's month."""
        limit = self.settings.max_visible if max_visible is None else max_visible
        build = self.build_range(
            month_range(anchor, self.settings.week_start), scope, filters
        )
        return MonthGrid(
            month=anchor.replace(day=1),
            date_range=build.date_range,
            cells={day: reduce_for_grid(events, limit) for day, events in build.days.items()},
            warnings=build.warnings,
        )

    def get_day_detail(
        self,
        day: date,
        scope: ActorScope,
        filters: Optional[FilterSet] = None,
    ) -> List[CalendarEvent]:
        """Full, unreduced event list for one day."""
        return self.build_range(DateRange.single(day), scope, filters).days[day]

    def upcoming_events(
        self,
        scope: ActorScope,
        filters: Optional[FilterSet] = None,
        *,
        today: Optional[date] = None,
        limit: int = 5,
        horizon_days: int = 30,
    ) -> List[CalendarEvent]:
        """Next ``limit`` events from the start of today, in schedule order."""
        return self.upcoming_range(
            scope, filters, today=today, horizon_days=horizon_days
        ).first(limit)

    def upcoming_range(
        self,
        scope: ActorScope,
        filters: Optional[FilterSet] = None,
        *,
        today: Optional[date] = None,
        horizon_days: int = 30,
    ) -> RangeBuild:
        """Build from the start of today through the horizon, warnings included."""
        start = today or date.today()
        return self.build_range(
            DateRange(start, start + timedelta(days=horizon_days)), scope, filters
        )

    def build_range(
        self,
        date_range: DateRange,
        scope: ActorScope,
        filters: Optional[FilterSet] = None,
    ) -> RangeBuild:
        """Bucket, filter and sort every source's events for each day in range.

        Raises:
            ScopeError: if the member facet names someone outside the viewer's team.
        """
        member_id = filters.member_id if filters else None
        if member_id:
            self._check_member(scope, member_id)

        adapters = self._adapters(scope.role)
        days: Dict[date, List[CalendarEvent]] = {day: [] for day in date_range}
        warnings: List[str] = []

        with ThreadPoolExecutor(max_workers=len(adapters)) as pool:
            futures = [
                pool.submit(self._fetch_events, adapter, date_range, scope, member_id)
                for adapter in adapters
            ]
            # Consume in fixed source order; completion order never matters.
            for adapter, future in zip(adapters, futures):
                try:
                    events = future.result()
                except SourceUnavailable as exc:
                    logger.warning(
                        f"[ScheduleEngine] {adapter.source_kind.value} source skipped "
                        f"for {date_range.start}..{date_range.end}: {exc}"
                    )
                    warnings.append(str(exc))
                    continue
                for event in events:
                    if event.date in days:
                        days[event.date].append(event)

        for day, bucket in days.items():
            days[day] = sorted(apply_filters(bucket, filters), key=lambda e: e.sort_key)

        return RangeBuild(date_range=date_range, days=days, warnings=warnings)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _adapters(self, role: str) -> List[SourceAdapter]:
        profile = self.scoping(role)
        return [
            TaskAdapter.from_scoping(self.task_store, profile.tasks),
            ManualAdapter.from_scoping(self.schedule_store, profile.manual),
            CrmAdapter.from_scoping(self.crm_store, profile.crm),
        ]

    def _fetch_events(
        self,
        adapter: SourceAdapter,
        date_range: DateRange,
        scope: ActorScope,
        member_id: Optional[str],
    ) -> List[CalendarEvent]:
        records = adapter.fetch_range(date_range, scope, member_id)
        lead_names = (
            self.crm_store.resolve_lead_name
            if adapter.source_kind is SourceKind.CRM
            else None
        )
        events = []
        try:
            for record in records:
                event = normalize(
                    record,
                    adapter.source_kind,
                    lead_names,
                    strict_lead_names=self.settings.strict_lead_names,
                )
                if event is not None:
                    events.append(event)
        except OSError as exc:
            raise SourceUnavailable(adapter.source_kind.value, str(exc)) from exc
        return events

    def _check_member(self, scope: ActorScope, member_id: str) -> None:
        if member_id == scope.actor_id or self.team_lookup is None:
            return
        if member_id not in set(self.team_lookup(scope.actor_id)):
            raise ScopeError(f"{member_id} is not on {scope.actor_id}'s team")
