#!/usr/bin/env python3
"""Ops Calendar CLI."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Iterable

from ops_calendar.config import ConfigError, Settings, load_settings
from ops_calendar.dataset import Dataset, fetch_dataset
from ops_calendar.schedule import (
    ActorScope,
    CalendarEvent,
    EventNotFound,
    FilterSet,
    ManualEventInput,
    MonthGrid,
    MutationGateway,
    PersistentScheduleStore,
    PolicyError,
    ScheduleEngine,
    ScopeError,
    SourceUnavailable,
    ValidationError,
)
from ops_calendar.schedule.types import EVENT_TYPES, MANUAL_EVENT_TYPES, ROLES, DateRange


def _add_actor_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--actor", required=True, help="Acting user id.")
    parser.add_argument(
        "--role",
        choices=ROLES,
        default="employee",
        help="Acting user's role; decides which records are visible.",
    )


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--type",
        dest="event_type",
        choices=("all",) + EVENT_TYPES,
        default="all",
        help="Only show events of this type.",
    )
    parser.add_argument("--member", help="Drill down to one team member.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ops-calendar",
        description="Merged team schedule over tasks, manual events and CRM follow-ups.",
    )
    parser.add_argument(
        "--dataset",
        type=Path,
        help="JSON export of tasks, follow-ups and leads (default: OPS_DATASET or demo data).",
    )
    parser.add_argument(
        "--store-dir",
        type=Path,
        help="Directory of the local schedule store (default: OPS_SCHEDULE_DIR).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine warnings.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    month_parser = subparsers.add_parser("month", help="Show the month grid.")
    month_parser.add_argument(
        "--anchor",
        type=date.fromisoformat,
        default=None,
        help="Any day in the month (YYYY-MM-DD, default today).",
    )
    month_parser.add_argument(
        "--max-visible",
        type=int,
        default=None,
        help="Events shown per day before '+N more'.",
    )
    _add_actor_args(month_parser)
    _add_filter_args(month_parser)

    day_parser = subparsers.add_parser("day", help="List every event on one day.")
    day_parser.add_argument("day", type=date.fromisoformat, help="YYYY-MM-DD")
    _add_actor_args(day_parser)
    _add_filter_args(day_parser)

    upcoming_parser = subparsers.add_parser("upcoming", help="Show the next events.")
    upcoming_parser.add_argument("--limit", type=int, default=5)
    _add_actor_args(upcoming_parser)

    add_parser = subparsers.add_parser("add", help="Create a manual schedule event.")
    add_parser.add_argument("title")
    add_parser.add_argument("--date", type=date.fromisoformat, required=True)
    add_parser.add_argument("--time", help="HH:mm (default 09:00)")
    add_parser.add_argument("--end-time", help="HH:mm")
    add_parser.add_argument("--type", dest="event_type", choices=MANUAL_EVENT_TYPES)
    add_parser.add_argument("--description")
    add_parser.add_argument(
        "--participant",
        action="append",
        default=[],
        help="Participant id (repeatable).",
    )
    _add_actor_args(add_parser)

    delete_parser = subparsers.add_parser("delete", help="Delete a schedule event.")
    delete_parser.add_argument("source_kind", choices=("task", "manual", "crm"))
    delete_parser.add_argument("event_id")
    _add_actor_args(delete_parser)

    return parser


def _build_services(
    settings: Settings,
    dataset: Dataset,
    store_dir: Path | None,
) -> tuple[ScheduleEngine, MutationGateway]:
    store = PersistentScheduleStore(force_file=True, store_dir=store_dir)
    engine = ScheduleEngine(
        dataset.task_store(),
        store,
        dataset.crm_store(),
        settings=settings,
        team_lookup=dataset.team_members,
    )
    return engine, MutationGateway(store, settings=settings)


def format_event_rows(events: Iterable[CalendarEvent]) -> str:
    """Return a human-friendly table of events."""

    lines = ["Time  | Type     | Source | ID | Title"]
    for event in events:
        lines.append(
            f"{event.time} | {event.type:<8} | {event.source_kind.value:<6} | "
            f"{event.id} | {event.title}"
        )
    return "\n".join(lines)


def format_month_grid(grid: MonthGrid) -> str:
    """Render the grid one day per line, grouped by week."""

    lines = [f"{grid.month:%B %Y}"]
    for week in grid.weeks():
        lines.append("-" * 40)
        for day in week:
            cell = grid.cells[day]
            marker = " " if day.month == grid.month.month else "*"
            titles = ", ".join(f"{e.time} {e.title}" for e in cell.visible)
            more = f" (+ {cell.overflow_count} more)" if cell.overflow_count else ""
            lines.append(f"{marker}{day:%a %d}: {titles}{more}")
    return "\n".join(lines)


def _print_warnings(warnings: Iterable[str]) -> None:
    for warning in warnings:
        print(f"Warning: {warning}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.ERROR)

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    try:
        dataset = fetch_dataset(args.dataset or settings.dataset_path)
    except (OSError, ValueError) as exc:
        print(f"Unable to load dataset: {exc}", file=sys.stderr)
        return 1

    engine, gateway = _build_services(settings, dataset, args.store_dir)
    actor = ActorScope(actor_id=args.actor, role=args.role)

    try:
        if args.command == "month":
            grid = engine.get_month_grid(
                args.anchor or date.today(),
                actor,
                FilterSet(args.event_type, args.member),
                max_visible=args.max_visible,
            )
            print(format_month_grid(grid))
            _print_warnings(grid.warnings)
            return 0
        if args.command == "day":
            build = engine.build_range(
                DateRange.single(args.day), actor, FilterSet(args.event_type, args.member)
            )
            events = build.days[args.day]
            print(format_event_rows(events) if events else "No events.")
            _print_warnings(build.warnings)
            return 0
        if args.command == "upcoming":
            build = engine.upcoming_range(actor)
            events = build.first(args.limit)
            print(format_event_rows(events) if events else "No upcoming events.")
            _print_warnings(build.warnings)
            return 0
        if args.command == "add":
            event = gateway.create_manual_event(
                ManualEventInput(
                    title=args.title,
                    date=args.date,
                    time=args.time,
                    type=args.event_type,
                    description=args.description,
                    participants=args.participant,
                    end_time=args.end_time,
                ),
                actor,
            )
            print(f"Created {event.id}: {event.date} {event.time} {event.title}")
            return 0
        if args.command == "delete":
            gateway.delete_by_reference(args.source_kind, args.event_id, actor)
            print(f"Deleted {args.event_id}.")
            return 0
    except ValidationError as exc:
        print("Event not created:", file=sys.stderr)
        for problem in exc.problems:
            print(f" - {problem}", file=sys.stderr)
        return 1
    except (PolicyError, ScopeError, EventNotFound, SourceUnavailable) as exc:
        print(exc, file=sys.stderr)
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
