"""API Routers Package.

Routers:
- schedule.py: month grid, day detail, upcoming events, manual event create/delete

Usage in main.py:
    from api.routers import schedule_router

    app.include_router(schedule_router, prefix="/schedule", tags=["schedule"])
"""

from .schedule import router as schedule_router

__all__ = [
    "schedule_router",
]
