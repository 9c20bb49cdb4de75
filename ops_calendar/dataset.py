"""Dataset helpers for the API and CLI.

Tasks, leads and follow-ups live in other services; here they are read from a
JSON export (``OPS_DATASET``) or, when none is configured, from a
deterministic demo dataset anchored on today's date.

JSON layout::

    {
      "tasks": [...],
      "schedules": [...],
      "followUps": [...],
      "leads": [...],
      "teams": {"<manager id>": ["<member id>", ...]}
    }
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Dict, List, Optional

from .schedule.stores import InMemoryCrmStore, InMemoryScheduleStore, InMemoryTaskStore
from .schedule.types import FollowUp, Lead, ManualScheduleEntry, Task


@dataclass(slots=True)
class Dataset:
    """Source records for one organization."""

    tasks: List[Task] = field(default_factory=list)
    schedules: List[ManualScheduleEntry] = field(default_factory=list)
    followups: List[FollowUp] = field(default_factory=list)
    leads: List[Lead] = field(default_factory=list)
    teams: Dict[str, List[str]] = field(default_factory=dict)

    def task_store(self) -> InMemoryTaskStore:
        return InMemoryTaskStore(self.tasks)

    def crm_store(self) -> InMemoryCrmStore:
        return InMemoryCrmStore(self.followups, self.leads)

    def schedule_store(self) -> InMemoryScheduleStore:
        return InMemoryScheduleStore(self.schedules)

    def team_members(self, manager_id: str) -> List[str]:
        return list(self.teams.get(manager_id, []))


def load_dataset(path: Path) -> Dataset:
    """Read a dataset from a JSON file.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the file is not valid JSON.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)

    return Dataset(
        tasks=[Task.from_dict(t) for t in data.get("tasks", [])],
        schedules=[ManualScheduleEntry.from_dict(s) for s in data.get("schedules", [])],
        followups=[FollowUp.from_dict(f) for f in data.get("followUps", [])],
        leads=[Lead.from_dict(lead) for lead in data.get("leads", [])],
        teams={k: list(v) for k, v in data.get("teams", {}).items()},
    )


def demo_dataset(today: Optional[date] = None) -> Dataset:
    """Return a deterministic demo dataset around ``today``."""

    today = today or date.today()

    def at(offset_days: int, hour: int, minute: int = 0) -> datetime:
        return datetime.combine(today + timedelta(days=offset_days), time(hour, minute))

    tasks = [
        Task(
            id="task-1001",
            title="Prepare Q4 client recap",
            deadline=at(0, 14),
            priority="high",
            assigned_to={"emp-1"},
            delegated_by="mgr-1",
            assigned_to_manager="mgr-1",
            status="in_progress",
        ),
        Task(
            id="task-1002",
            title="Finalize vendor onboarding checklist",
            deadline=at(2, 10, 30),
            priority="medium",
            assigned_to={"emp-2"},
            delegated_by="mgr-1",
        ),
        Task(
            id="task-1003",
            title="Send pricing proposal to Acme",
            deadline=at(1, 17),
            priority="urgent",
            assigned_to={"sales-1"},
        ),
    ]
    schedules = [
        ManualScheduleEntry(
            id="sched-1",
            title="Team sync",
            date=at(0, 0),
            time="10:00",
            type="meeting",
            owner_id="mgr-1",
            participants=["emp-1", "emp-2", "sales-1"],
        ),
        ManualScheduleEntry(
            id="sched-2",
            title="Quarterly review prep",
            date=at(3, 0),
            time="15:00",
            type="reminder",
            owner_id="mgr-1",
        ),
    ]
    leads = [
        Lead(id="lead-1", name="Acme Corp", owner_id="sales-1"),
        Lead(id="lead-2", name="Globex", owner_id="sales-1"),
    ]
    followups = [
        FollowUp(
            id="fu-1",
            lead_id="lead-1",
            sales_rep_id="sales-1",
            scheduled_at=at(0, 11, 30),
            type="call",
        ),
        FollowUp(
            id="fu-2",
            lead_id="lead-2",
            sales_rep_id="sales-1",
            scheduled_at=at(1, 9),
            type="meeting",
            notes="Walk through the rollout plan",
        ),
    ]
    return Dataset(
        tasks=tasks,
        schedules=schedules,
        followups=followups,
        leads=leads,
        teams={"mgr-1": ["emp-1", "emp-2", "sales-1"]},
    )


def fetch_dataset(path: Optional[Path] = None) -> Dataset:
    """Load the configured dataset, or the demo data when no path is given."""
    if path is None:
        return demo_dataset()
    return load_dataset(path)
