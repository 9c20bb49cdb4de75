"""Mutation gateway - the only path that writes to the Schedule store.

Rights per source:

- manual: create and delete
- task:   read-only here; tasks are edited in the Tasks module
- crm:    read-only here; follow-ups are edited in the CRM module
"""
from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from ..config import Settings
from ..logs.activity import log_schedule_event
from .errors import EventNotFound, PolicyError, ValidationError
from .normalizer import normalize
from .stores import ScheduleStore
from .types import (
    MANUAL_EVENT_TYPES,
    ActorScope,
    CalendarEvent,
    ManualEventInput,
    ManualScheduleEntry,
    SourceKind,
    parse_timestamp,
)


logger = logging.getLogger(__name__)

DEFAULT_EVENT_TIME = "09:00"
DEFAULT_EVENT_TYPE = "meeting"
DEFAULT_LOCATION = "Remote"

TASK_DELETE_MESSAGE = "Cannot delete tasks from the schedule view. Go to Tasks."
CRM_DELETE_MESSAGE = (
    "Follow-ups are managed in the CRM module. Open the lead there to change it."
)
NOT_OWNER_MESSAGE = "Only the creator of this event can delete it."

_TIME_24H = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_manual_input(data: ManualEventInput) -> List[str]:
    """Return every problem with a create request (empty when valid)."""
    problems = []
    if not data.title or not data.title.strip():
        problems.append("Title is required.")
    if not data.date:
        problems.append("Date is required.")
    elif parse_timestamp(data.date) is None:
        problems.append(f"Date must be an ISO date (YYYY-MM-DD), got {data.date!r}.")
    if data.time and not _TIME_24H.match(data.time):
        problems.append(f"Time must be HH:mm (24-hour), got {data.time!r}.")
    if data.end_time:
        if not _TIME_24H.match(data.end_time):
            problems.append(f"End time must be HH:mm (24-hour), got {data.end_time!r}.")
        elif data.end_time <= (data.time or DEFAULT_EVENT_TIME):
            problems.append("End time must be after the start time.")
    if data.type and data.type not in MANUAL_EVENT_TYPES:
        problems.append(
            f"Type must be one of {', '.join(MANUAL_EVENT_TYPES)}, got {data.type!r}."
        )
    return problems


class MutationGateway:
    """Validates and routes create/delete requests by event source."""

    def __init__(
        self,
        schedule_store: ScheduleStore,
        *,
        settings: Optional[Settings] = None,
        activity_log: Callable[..., object] = log_schedule_event,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.schedule_store = schedule_store
        self.settings = settings or Settings()
        self.activity_log = activity_log
        self.id_factory = id_factory

    def create_manual_event(self, data: ManualEventInput, actor: ActorScope) -> CalendarEvent:
        """Validate and store a new manual entry owned by ``actor``.

        Raises:
            ValidationError: if required fields are missing or malformed;
                nothing is written in that case.
            SourceUnavailable: if the Schedule store cannot take the write.
        """
        problems = validate_manual_input(data)
        if problems:
            raise ValidationError(problems)

        entry = ManualScheduleEntry(
            id=self.id_factory(),
            title=data.title.strip(),
            date=parse_timestamp(data.date),
            time=data.time or DEFAULT_EVENT_TIME,
            type=data.type or DEFAULT_EVENT_TYPE,
            owner_id=actor.actor_id,
            description=data.description,
            participants=list(data.participants),
            assigned_to=data.assigned_to,
            location=data.location or DEFAULT_LOCATION,
            end_time=data.end_time,
            created_at=datetime.now(timezone.utc),
        )
        self.schedule_store.insert_entry(entry)
        logger.info(f"[ScheduleGateway] {actor.actor_id} created entry {entry.id}")
        self._log("create", actor, SourceKind.MANUAL, entry.id, entry.title)
        return normalize(entry, SourceKind.MANUAL)

    def delete_event(self, event: CalendarEvent, actor: ActorScope) -> None:
        """Delete a schedule event if its source allows it.

        Raises:
            PolicyError: for task and CRM events; no store is touched.
            EventNotFound: if the manual entry no longer exists.
        """
        self.delete_by_reference(event.source_kind, event.id, actor, title=event.title)

    def delete_by_reference(
        self,
        source_kind: Union[SourceKind, str],
        event_id: str,
        actor: ActorScope,
        *,
        title: Optional[str] = None,
    ) -> None:
        """Delete by identifiers, for callers that do not hold the event."""
        kind = SourceKind(source_kind)
        if kind is SourceKind.TASK:
            self._reject(kind, event_id, actor, TASK_DELETE_MESSAGE)
        if kind is SourceKind.CRM:
            self._reject(kind, event_id, actor, CRM_DELETE_MESSAGE)

        if self.settings.owner_only_delete and actor.role != "admin":
            entry = self.schedule_store.get_entry(event_id)
            if entry is None:
                raise EventNotFound(f"Schedule entry {event_id} not found")
            if entry.owner_id != actor.actor_id:
                self._reject(kind, event_id, actor, NOT_OWNER_MESSAGE)

        if not self.schedule_store.delete_entry(event_id):
            raise EventNotFound(f"Schedule entry {event_id} not found")
        logger.info(f"[ScheduleGateway] {actor.actor_id} deleted entry {event_id}")
        self._log("delete", actor, kind, event_id, title)

    def _reject(self, kind: SourceKind, event_id: str, actor: ActorScope, message: str):
        logger.info(f"[ScheduleGateway] Rejected delete of {kind.value} {event_id}: {message}")
        self._log("reject_delete", actor, kind, event_id, None, detail=message)
        raise PolicyError(message, source_kind=kind.value)

    def _log(self, action, actor, kind, event_id, title, detail=None) -> None:
        self.activity_log(
            action=action,
            actor_id=actor.actor_id,
            source_kind=kind.value,
            event_id=event_id,
            title=title,
            detail=detail,
            environment=self.settings.environment,
        )
