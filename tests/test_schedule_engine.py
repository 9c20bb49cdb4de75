"""Tests for the schedule engine read path."""
from __future__ import annotations

from datetime import date, datetime

import pytest

from ops_calendar.config import Settings
from ops_calendar.schedule import (
    ActorScope,
    FilterSet,
    FollowUp,
    InMemoryCrmStore,
    InMemoryScheduleStore,
    InMemoryTaskStore,
    Lead,
    ManualScheduleEntry,
    ScheduleEngine,
    ScopeError,
    SourceKind,
    SourceUnavailable,
    Task,
    month_range,
)


DAY = date(2024, 3, 15)
MANAGER = ActorScope("mgr-1", "manager")


def _task(id, when, **kwargs) -> Task:
    kwargs.setdefault("delegated_by", "mgr-1")
    kwargs.setdefault("assigned_to", {"emp-1"})
    return Task(id=id, title=f"Task {id}", deadline=when, **kwargs)


def _entry(id, day, time, **kwargs) -> ManualScheduleEntry:
    kwargs.setdefault("owner_id", "mgr-1")
    return ManualScheduleEntry(id=id, title=f"Entry {id}", date=day, time=time, **kwargs)


def _followup(id, when, **kwargs) -> FollowUp:
    kwargs.setdefault("lead_id", "lead-1")
    kwargs.setdefault("sales_rep_id", "sales-1")
    return FollowUp(id=id, scheduled_at=when, **kwargs)


def _engine(tasks=(), entries=(), followups=(), leads=(), **kwargs) -> ScheduleEngine:
    leads = leads or [Lead("lead-1", "Acme Corp")]
    return ScheduleEngine(
        InMemoryTaskStore(tasks),
        InMemoryScheduleStore(entries),
        InMemoryCrmStore(followups, leads),
        **kwargs,
    )


def _scenario_engine(**kwargs) -> ScheduleEngine:
    return _engine(
        tasks=[_task("t1", datetime(2024, 3, 15, 14, 0))],
        entries=[_entry("m1", date(2024, 3, 15), "09:00")],
        followups=[_followup("f1", datetime(2024, 3, 15, 11, 30))],
        **kwargs,
    )


class FailingCrmStore:
    """CRM store whose backend is down."""

    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    def list_followups_by_date_range(self, date_range, predicate):
        self.calls += 1
        raise self.error

    def resolve_lead_name(self, lead_id):
        raise AssertionError("lead lookup should not run when the listing fails")


class CountingTaskStore(InMemoryTaskStore):
    def __init__(self, tasks=()):
        super().__init__(tasks)
        self.calls = 0

    def list_tasks_by_deadline_range(self, date_range, predicate):
        self.calls += 1
        return super().list_tasks_by_deadline_range(date_range, predicate)


class TestDayDetail:
    def test_three_sources_merge_in_time_order(self):
        events = _scenario_engine().get_day_detail(DAY, MANAGER)

        assert [e.time for e in events] == ["09:00", "11:30", "14:00"]
        assert [e.source_kind for e in events] == [
            SourceKind.MANUAL,
            SourceKind.CRM,
            SourceKind.TASK,
        ]
        assert events[1].title == "Call with Acme Corp"

    def test_same_time_ties_break_task_manual_crm(self):
        engine = _engine(
            tasks=[_task("t1", datetime(2024, 3, 15, 10, 0))],
            entries=[_entry("m1", DAY, "10:00")],
            followups=[_followup("f1", datetime(2024, 3, 15, 10, 0))],
        )

        events = engine.get_day_detail(DAY, MANAGER)

        assert [e.id for e in events] == ["t1", "m1", "f1"]

    def test_events_at_both_ends_of_the_day_stay_on_that_day(self):
        engine = _engine(
            tasks=[
                _task("late", datetime(2024, 3, 15, 23, 55)),
                _task("early", datetime(2024, 3, 15, 0, 5)),
                _task("next", datetime(2024, 3, 16, 0, 0)),
            ]
        )

        events = engine.get_day_detail(DAY, MANAGER)

        assert [e.id for e in events] == ["early", "late"]

    def test_unpadded_entry_times_sort_numerically(self):
        engine = _engine(
            entries=[_entry("ten", DAY, "10:00"), _entry("nine", DAY, "9:30")]
        )

        events = engine.get_day_detail(DAY, MANAGER)

        assert [(e.id, e.time) for e in events] == [("nine", "09:30"), ("ten", "10:00")]

    def test_type_facet_keeps_only_matching_events(self):
        engine = _engine(
            tasks=[_task("t1", datetime(2024, 3, 15, 8, 0))],
            entries=[
                _entry("m1", DAY, "09:00", type="meeting"),
                _entry("m2", DAY, "10:00", type="reminder"),
            ],
            followups=[
                _followup("f1", datetime(2024, 3, 15, 11, 0), type="meeting"),
                _followup("f2", datetime(2024, 3, 15, 12, 0), type="email"),
            ],
        )

        events = engine.get_day_detail(DAY, MANAGER, FilterSet(event_type="meeting"))

        assert [e.id for e in events] == ["m1", "f1"]
        assert {e.type for e in events} == {"meeting"}

    def test_type_facet_all_keeps_everything(self):
        events = _scenario_engine().get_day_detail(DAY, MANAGER, FilterSet(event_type="all"))

        assert len(events) == 3


class TestMonthGrid:
    def test_grid_covers_every_day_of_whole_weeks(self):
        grid = _scenario_engine().get_month_grid(date(2024, 2, 10), MANAGER)

        assert list(grid.cells) == list(month_range(date(2024, 2, 10)))
        assert len(grid.cells) == 35
        assert grid.month == date(2024, 2, 1)
        assert all(len(week) == 7 for week in grid.weeks())

    def test_empty_days_get_empty_cells(self):
        grid = _engine().get_month_grid(DAY, MANAGER)

        assert all(cell.events == [] for cell in grid.cells.values())
        assert all(cell.overflow_count == 0 for cell in grid.cells.values())

    def test_busy_day_is_truncated_for_display(self):
        engine = _engine(
            entries=[_entry(f"m{i}", DAY, f"{9 + i:02d}:00") for i in range(5)]
        )

        cell = engine.get_month_grid(DAY, MANAGER).cells[DAY]

        assert [e.id for e in cell.visible] == ["m0", "m1", "m2"]
        assert cell.overflow_count == 2
        assert len(cell.events) == 5

    def test_max_visible_setting_and_override(self):
        engine = _engine(
            entries=[_entry(f"m{i}", DAY, f"{9 + i:02d}:00") for i in range(5)],
            settings=Settings(max_visible=4),
        )

        assert len(engine.get_month_grid(DAY, MANAGER).cells[DAY].visible) == 4
        assert len(engine.get_month_grid(DAY, MANAGER, max_visible=1).cells[DAY].visible) == 1

    def test_monday_week_start(self):
        engine = _engine(settings=Settings(week_start=0))

        grid = engine.get_month_grid(date(2024, 2, 10), MANAGER)

        assert next(iter(grid.cells)) == date(2024, 1, 29)

    def test_repeated_builds_are_identical(self):
        engine = _scenario_engine()

        first = engine.get_month_grid(DAY, MANAGER)
        second = engine.get_month_grid(DAY, MANAGER)

        assert first.cells == second.cells
        assert first.to_api_dict() == second.to_api_dict()

    def test_every_bucket_is_sorted(self):
        engine = _engine(
            tasks=[_task(f"t{d}", datetime(2024, 3, d, (d * 7) % 24, 0)) for d in range(1, 29)],
            entries=[_entry(f"m{d}", date(2024, 3, d), f"{(d * 5) % 24}:15") for d in range(1, 29)],
            followups=[
                _followup(f"f{d}", datetime(2024, 3, d, (d * 3) % 24, 15)) for d in range(1, 29)
            ],
        )

        grid = engine.get_month_grid(DAY, MANAGER, max_visible=10)

        for cell in grid.cells.values():
            keys = [e.sort_key for e in cell.events]
            assert keys == sorted(keys)

    def test_each_store_is_queried_once_per_build(self):
        tasks = CountingTaskStore([_task("t1", datetime(2024, 3, 15, 9, 0))])
        engine = ScheduleEngine(tasks, InMemoryScheduleStore(), InMemoryCrmStore())

        engine.get_month_grid(DAY, MANAGER)

        assert tasks.calls == 1

    def test_api_dict_marks_days_outside_the_month(self):
        body = _scenario_engine().get_month_grid(DAY, MANAGER).to_api_dict()

        first = body["days"][0]
        assert first["date"] == "2024-02-25"
        assert first["inMonth"] is False
        march_15 = next(d for d in body["days"] if d["date"] == "2024-03-15")
        assert march_15["inMonth"] is True
        assert march_15["total"] == 3


class TestPartialFailure:
    def test_failed_source_is_skipped_with_one_warning(self):
        crm = FailingCrmStore(SourceUnavailable("crm", "connection refused"))
        engine = ScheduleEngine(
            InMemoryTaskStore([_task("t1", datetime(2024, 3, 15, 14, 0))]),
            InMemoryScheduleStore([_entry("m1", DAY, "09:00")]),
            crm,
        )

        grid = engine.get_month_grid(DAY, MANAGER)

        assert [e.id for e in grid.cells[DAY].events] == ["m1", "t1"]
        assert len(grid.warnings) == 1
        assert "crm" in grid.warnings[0]
        assert crm.calls == 1

    def test_os_errors_count_as_unavailable(self):
        engine = ScheduleEngine(
            InMemoryTaskStore([_task("t1", datetime(2024, 3, 15, 14, 0))]),
            InMemoryScheduleStore(),
            FailingCrmStore(ConnectionError("timed out")),
        )

        events = engine.build_range(month_range(DAY), MANAGER)

        assert [e.id for e in events.days[DAY]] == ["t1"]
        assert events.warnings == ["crm source unavailable: timed out"]

    def test_strict_lead_names_skip_crm_source(self):
        engine = _engine(
            tasks=[_task("t1", datetime(2024, 3, 15, 14, 0))],
            followups=[_followup("f1", datetime(2024, 3, 15, 11, 0), lead_id="ghost")],
            settings=Settings(strict_lead_names=True),
        )

        build = engine.build_range(month_range(DAY), MANAGER)

        assert [e.id for e in build.days[DAY]] == ["t1"]
        assert len(build.warnings) == 1
        assert "ghost" in build.warnings[0]

    def test_unknown_lead_uses_placeholder_by_default(self):
        engine = _engine(
            followups=[_followup("f1", datetime(2024, 3, 15, 11, 0), lead_id="ghost")]
        )

        events = engine.get_day_detail(DAY, MANAGER)

        assert events[0].title == "Call with Lead"


class TestRoleScoping:
    def test_employee_sees_only_own_records(self):
        engine = _engine(
            tasks=[
                _task("mine", datetime(2024, 3, 15, 9, 0), assigned_to={"emp-1"}),
                _task("theirs", datetime(2024, 3, 15, 10, 0), assigned_to={"emp-2"}),
            ],
            entries=[
                _entry("invited", DAY, "11:00", participants=["emp-1"]),
                _entry("private", DAY, "12:00"),
            ],
            followups=[_followup("f1", datetime(2024, 3, 15, 13, 0))],
        )

        events = engine.get_day_detail(DAY, ActorScope("emp-1", "employee"))

        assert [e.id for e in events] == ["mine", "invited"]

    def test_sales_rep_sees_own_followups(self):
        engine = _engine(
            followups=[
                _followup("own", datetime(2024, 3, 15, 9, 0), sales_rep_id="sales-1"),
                _followup("other", datetime(2024, 3, 15, 10, 0), sales_rep_id="sales-2"),
            ]
        )

        events = engine.get_day_detail(DAY, ActorScope("sales-1", "sales"))

        assert [e.id for e in events] == ["own"]

    def test_sales_manual_scope_is_configurable(self):
        entries = [
            _entry("own", DAY, "09:00", owner_id="sales-1"),
            _entry("team", DAY, "10:00", owner_id="mgr-1"),
        ]
        sales = ActorScope("sales-1", "sales")

        involved = _engine(entries=entries).get_day_detail(DAY, sales)
        shared = _engine(
            entries=entries, settings=Settings(sales_manual_scope="all")
        ).get_day_detail(DAY, sales)

        assert [e.id for e in involved] == ["own"]
        assert [e.id for e in shared] == ["own", "team"]

    def test_admin_sees_everything(self):
        engine = _engine(
            tasks=[_task("t1", datetime(2024, 3, 15, 9, 0), delegated_by="mgr-2")],
            entries=[_entry("m1", DAY, "10:00", owner_id="emp-3")],
            followups=[_followup("f1", datetime(2024, 3, 15, 11, 0))],
        )

        events = engine.get_day_detail(DAY, ActorScope("root", "admin"))

        assert [e.id for e in events] == ["t1", "m1", "f1"]

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError):
            _engine().get_day_detail(DAY, ActorScope("x", "guest"))


class TestMemberDrillDown:
    def _engine(self, **kwargs):
        teams = {"mgr-1": ["emp-1", "emp-2"]}
        return _engine(
            tasks=[
                _task("t-emp1", datetime(2024, 3, 15, 9, 0), assigned_to={"emp-1"}),
                _task("t-emp2", datetime(2024, 3, 15, 9, 30), assigned_to={"emp-2"}),
                _task(
                    "t-other-mgr",
                    datetime(2024, 3, 15, 10, 0),
                    assigned_to={"emp-1"},
                    delegated_by="mgr-2",
                ),
            ],
            entries=[
                _entry("m-with-emp1", DAY, "11:00", participants=["emp-1"]),
                _entry("m-without", DAY, "12:00", participants=["emp-2"]),
                _entry("m-by-emp1", DAY, "13:00", owner_id="emp-1"),
            ],
            followups=[
                _followup("f-emp1", datetime(2024, 3, 15, 14, 0), sales_rep_id="emp-1"),
                _followup("f-sales", datetime(2024, 3, 15, 15, 0)),
            ],
            team_lookup=lambda manager_id: teams.get(manager_id, []),
            **kwargs,
        )

    def test_member_view_is_within_the_viewers_scope(self):
        events = self._engine().get_day_detail(DAY, MANAGER, FilterSet(member_id="emp-1"))

        assert [e.id for e in events] == ["t-emp1", "m-with-emp1", "f-emp1"]

    def test_member_outside_team_is_rejected(self):
        with pytest.raises(ScopeError):
            self._engine().get_day_detail(DAY, MANAGER, FilterSet(member_id="emp-9"))

    def test_drilling_into_self_is_allowed(self):
        events = self._engine().get_day_detail(DAY, MANAGER, FilterSet(member_id="mgr-1"))

        # mgr-1 holds no tasks, joins no entries and owns no follow-ups.
        assert events == []

    def test_member_and_type_facets_combine(self):
        events = self._engine().get_day_detail(
            DAY, MANAGER, FilterSet(event_type="task", member_id="emp-1")
        )

        assert [e.id for e in events] == ["t-emp1"]


class TestUpcoming:
    def test_next_events_from_today(self):
        engine = _engine(
            tasks=[
                _task("past", datetime(2024, 3, 14, 9, 0)),
                _task("t1", datetime(2024, 3, 15, 8, 0)),
                _task("t2", datetime(2024, 3, 16, 9, 0)),
            ],
            entries=[_entry(f"m{i}", date(2024, 3, 17 + i), "10:00") for i in range(5)],
        )

        events = engine.upcoming_events(MANAGER, today=DAY)

        assert [e.id for e in events] == ["t1", "t2", "m0", "m1", "m2"]

    def test_limit_and_horizon(self):
        engine = _engine(
            entries=[
                _entry("soon", date(2024, 3, 16), "10:00"),
                _entry("far", date(2024, 6, 1), "10:00"),
            ]
        )

        assert [e.id for e in engine.upcoming_events(MANAGER, today=DAY, limit=1)] == ["soon"]
        assert [e.id for e in engine.upcoming_events(MANAGER, today=DAY)] == ["soon"]
        assert len(engine.upcoming_events(MANAGER, today=DAY, horizon_days=90)) == 2

    def test_upcoming_range_keeps_source_warnings(self):
        engine = ScheduleEngine(
            InMemoryTaskStore([_task("t1", datetime(2024, 3, 15, 14, 0))]),
            InMemoryScheduleStore([_entry("m1", date(2024, 3, 16), "09:00")]),
            FailingCrmStore(SourceUnavailable("crm", "connection refused")),
        )

        build = engine.upcoming_range(MANAGER, today=DAY)

        assert [e.id for e in build.first(5)] == ["t1", "m1"]
        assert [e.id for e in build.first(1)] == ["t1"]
        assert build.warnings == ["crm source unavailable: connection refused"]
