"""Visibility rules for schedule sources.

A scoped predicate decides whether a source record is visible to an actor:
``predicate(record, scope) -> bool``. Each role gets a ScopingProfile naming
one predicate per source, plus a member predicate used when a viewer drills
into a single team member.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict

from .types import ActorScope, FollowUp, ManualScheduleEntry, Task


ScopedPredicate = Callable[[Any, ActorScope], bool]


def any_of(*predicates: ScopedPredicate) -> ScopedPredicate:
    """Visible if any of the predicates accepts the record."""

    def _any(record, scope: ActorScope) -> bool:
        return any(p(record, scope) for p in predicates)

    return _any


def unscoped(record, scope: ActorScope) -> bool:
    return True


# =============================================================================
# Tasks
# =============================================================================


def task_assigned_to_actor(task: Task, scope: ActorScope) -> bool:
    return scope.actor_id in task.assigned_to


def task_delegated_by_actor(task: Task, scope: ActorScope) -> bool:
    return task.delegated_by == scope.actor_id


def task_managed_by_actor(task: Task, scope: ActorScope) -> bool:
    return task.assigned_to_manager == scope.actor_id


task_relevant_to_actor = any_of(
    task_assigned_to_actor, task_delegated_by_actor, task_managed_by_actor
)


# =============================================================================
# Manual entries
# =============================================================================


def entry_owned_by_actor(entry: ManualScheduleEntry, scope: ActorScope) -> bool:
    return entry.owner_id == scope.actor_id


def entry_has_participant(entry: ManualScheduleEntry, scope: ActorScope) -> bool:
    return scope.actor_id in entry.participants


entry_involves_actor = any_of(entry_owned_by_actor, entry_has_participant)

MANUAL_SCOPES: Dict[str, ScopedPredicate] = {
    "involved": entry_involves_actor,
    "owned": entry_owned_by_actor,
    "all": unscoped,
}


# =============================================================================
# CRM follow-ups
# =============================================================================


def followup_owned_by_actor(followup: FollowUp, scope: ActorScope) -> bool:
    return followup.sales_rep_id == scope.actor_id


# =============================================================================
# Role profiles
# =============================================================================


@dataclass(frozen=True)
class SourceScoping:
    """Predicates for one source.

    ``member_predicate`` selects a drilled-down member's records; a record is
    shown only if the viewer's ``predicate`` also accepts it.
    """

    predicate: ScopedPredicate
    member_predicate: ScopedPredicate


@dataclass(frozen=True)
class ScopingProfile:
    tasks: SourceScoping
    manual: SourceScoping
    crm: SourceScoping


def manager_scoping() -> ScopingProfile:
    """Team schedule: tasks the manager handed out, the manager's own entries,
    and every follow-up in the CRM."""
    return ScopingProfile(
        tasks=SourceScoping(
            any_of(task_delegated_by_actor, task_managed_by_actor),
            task_assigned_to_actor,
        ),
        manual=SourceScoping(entry_owned_by_actor, entry_has_participant),
        crm=SourceScoping(unscoped, followup_owned_by_actor),
    )


def sales_scoping(manual: ScopedPredicate = entry_involves_actor) -> ScopingProfile:
    """Sales schedule: own tasks and own follow-ups.

    Which manual entries a sales rep sees is passed in explicitly; ``unscoped``
    gives the shared-team-calendar behavior.
    """
    return ScopingProfile(
        tasks=SourceScoping(task_assigned_to_actor, task_assigned_to_actor),
        manual=SourceScoping(manual, entry_has_participant),
        crm=SourceScoping(followup_owned_by_actor, followup_owned_by_actor),
    )


def employee_scoping() -> ScopingProfile:
    return ScopingProfile(
        tasks=SourceScoping(task_assigned_to_actor, task_assigned_to_actor),
        manual=SourceScoping(entry_involves_actor, entry_has_participant),
        crm=SourceScoping(followup_owned_by_actor, followup_owned_by_actor),
    )


def admin_scoping() -> ScopingProfile:
    return ScopingProfile(
        tasks=SourceScoping(unscoped, task_assigned_to_actor),
        manual=SourceScoping(unscoped, entry_involves_actor),
        crm=SourceScoping(unscoped, followup_owned_by_actor),
    )


def scoping_for_role(role: str, *, sales_manual_scope: str = "involved") -> ScopingProfile:
    """Return the visibility profile for a role.

    Raises:
        ValueError: for an unknown role or manual scope name.
    """
    if role == "manager":
        return manager_scoping()
    if role == "sales":
        if sales_manual_scope not in MANUAL_SCOPES:
            raise ValueError(f"Unknown manual scope: {sales_manual_scope}")
        return sales_scoping(MANUAL_SCOPES[sales_manual_scope])
    if role == "employee":
        return employee_scoping()
    if role == "admin":
        return admin_scoping()
    raise ValueError(f"Unknown role: {role}")
