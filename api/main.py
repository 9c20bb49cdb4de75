"""FastAPI service for the ops calendar."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import ALLOWED_ORIGINS, get_current_actor, get_environment_info
from api.routers import schedule_router
from ops_calendar.logs import fetch_activity_entries
from ops_calendar.schedule import ActorScope

logger = logging.getLogger(__name__)


app = FastAPI(
    title="Ops Calendar API",
    version="0.1.0",
    description="Merged team schedule over tasks, manual events and CRM follow-ups.",
)

origins = [origin for origin in ALLOWED_ORIGINS if origin]

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(schedule_router, prefix="/schedule", tags=["schedule"])


@app.get("/health")
def health_check() -> dict:
    env, is_dev = get_environment_info()
    return {"status": "ok", "environment": env, "devAuthBypass": is_dev}


@app.get("/activity")
def activity_log(
    limit: int = Query(50, ge=1, le=500),
    actor_id: Optional[str] = Query(None, alias="actorId"),
    actor: ActorScope = Depends(get_current_actor),
) -> dict:
    """Recent schedule changes and refused changes, newest first.

    Admins see every actor's trail, optionally narrowed with ``actorId``.
    Everyone else sees only their own.
    """
    if actor.role != "admin":
        if actor_id and actor_id != actor.actor_id:
            raise HTTPException(
                status_code=403, detail="Only admins can read another user's activity."
            )
        actor_id = actor.actor_id
    entries = fetch_activity_entries(limit=limit, actor_id=actor_id)
    return {"entries": entries, "count": len(entries)}
