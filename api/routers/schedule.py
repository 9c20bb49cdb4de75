"""Schedule Router - merged month grid, day detail and manual events.

Handles:
- Month grid (tasks + manual entries + CRM follow-ups, reduced per day)
- Day detail (full list) and upcoming events
- Manual event creation and deletion
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from api.dependencies import get_current_actor, get_engine, get_gateway
from ops_calendar.schedule import (
    ActorScope,
    EventNotFound,
    FilterSet,
    ManualEventInput,
    MutationGateway,
    PolicyError,
    ScheduleEngine,
    ScopeError,
    SourceUnavailable,
)
from ops_calendar.schedule import ValidationError as EventValidationError
from ops_calendar.schedule.types import DateRange

logger = logging.getLogger(__name__)

router = APIRouter()

TypeFacet = Literal["all", "task", "meeting", "reminder", "deadline", "call", "other"]


# =============================================================================
# Pydantic Models
# =============================================================================

class CreateScheduleEventRequest(BaseModel):
    """Request body for creating a manual schedule event."""
    title: Optional[str] = Field(None, description="Event title")
    date: Optional[str] = Field(None, description="Event day (ISO format)")
    time: Optional[str] = Field(None, description="Start time, HH:mm (defaults to 09:00)")
    type: Optional[str] = Field(None, description="meeting, reminder, deadline, call or other")
    description: Optional[str] = None
    participants: List[str] = Field(default_factory=list)
    assigned_to: Optional[str] = Field(None, alias="assignedTo")
    location: Optional[str] = None
    end_time: Optional[str] = Field(None, alias="endTime")

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Helpers
# =============================================================================

def _parse_day(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {value!r}")


def _filters(event_type: Optional[str], member: Optional[str]) -> FilterSet:
    return FilterSet(event_type=event_type, member_id=member or None)


# =============================================================================
# Read Endpoints
# =============================================================================

@router.get("/month")
def month_grid_endpoint(
    anchor: Optional[str] = Query(None, description="Any day in the month (ISO date)"),
    event_type: Optional[TypeFacet] = Query(None, alias="type"),
    member: Optional[str] = Query(None, description="Team member drill-down"),
    max_visible: Optional[int] = Query(None, alias="maxVisible", ge=0, le=50),
    actor: ActorScope = Depends(get_current_actor),
    engine: ScheduleEngine = Depends(get_engine),
) -> dict:
    """Whole-week month grid with up to maxVisible events per day."""
    anchor_day = _parse_day(anchor, "anchor") if anchor else date.today()
    try:
        grid = engine.get_month_grid(
            anchor_day, actor, _filters(event_type, member), max_visible=max_visible
        )
    except ScopeError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return grid.to_api_dict()


@router.get("/day/{day}")
def day_detail_endpoint(
    day: str,
    event_type: Optional[TypeFacet] = Query(None, alias="type"),
    member: Optional[str] = Query(None),
    actor: ActorScope = Depends(get_current_actor),
    engine: ScheduleEngine = Depends(get_engine),
) -> dict:
    """Every event on one day, in schedule order."""
    target = _parse_day(day, "day")
    try:
        build = engine.build_range(
            DateRange.single(target), actor, _filters(event_type, member)
        )
    except ScopeError as e:
        raise HTTPException(status_code=403, detail=str(e))
    events = build.days[target]
    return {
        "date": target.isoformat(),
        "events": [e.to_api_dict() for e in events],
        "count": len(events),
        "warnings": build.warnings,
    }


@router.get("/upcoming")
def upcoming_endpoint(
    limit: int = Query(5, ge=1, le=50),
    horizon_days: int = Query(30, alias="horizonDays", ge=0, le=365),
    actor: ActorScope = Depends(get_current_actor),
    engine: ScheduleEngine = Depends(get_engine),
) -> dict:
    """Next events from the start of today."""
    build = engine.upcoming_range(actor, horizon_days=horizon_days)
    events = build.first(limit)
    return {
        "events": [e.to_api_dict() for e in events],
        "count": len(events),
        "warnings": build.warnings,
    }


# =============================================================================
# Mutation Endpoints
# =============================================================================

@router.post("/events", status_code=201)
def create_event_endpoint(
    request: CreateScheduleEventRequest,
    actor: ActorScope = Depends(get_current_actor),
    gateway: MutationGateway = Depends(get_gateway),
) -> dict:
    """Create a manual schedule event owned by the caller."""
    data = ManualEventInput(
        title=request.title,
        date=request.date,
        time=request.time,
        type=request.type,
        description=request.description,
        participants=request.participants,
        assigned_to=request.assigned_to,
        location=request.location,
        end_time=request.end_time,
    )
    try:
        event = gateway.create_manual_event(data, actor)
    except EventValidationError as e:
        raise HTTPException(
            status_code=422, detail={"message": "Invalid event", "problems": e.problems}
        )
    except SourceUnavailable as e:
        logger.error(f"[ScheduleRouter] Create failed for {actor.actor_id}: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return {"event": event.to_api_dict(), "created": True}


@router.delete("/events/{source_kind}/{event_id}")
def delete_event_endpoint(
    source_kind: Literal["task", "manual", "crm"],
    event_id: str,
    actor: ActorScope = Depends(get_current_actor),
    gateway: MutationGateway = Depends(get_gateway),
) -> dict:
    """Delete a manual event; task and CRM events are refused."""
    try:
        gateway.delete_by_reference(source_kind, event_id, actor)
    except PolicyError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except EventNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"deleted": True, "eventId": event_id, "sourceKind": source_kind}
