"""Shared dependencies for API routers.

The schedule engine and gateway are built once per process from settings and
handed to endpoints through FastAPI dependencies, so tests can override them
with ``app.dependency_overrides``.

Usage in routers:
    from api.dependencies import get_current_actor, get_engine, get_gateway
"""
from __future__ import annotations

import os
from functools import lru_cache

from ops_calendar.api.auth import get_current_actor  # noqa: F401 - re-export
from ops_calendar.config import Settings, load_settings
from ops_calendar.dataset import Dataset, fetch_dataset
from ops_calendar.schedule import MutationGateway, PersistentScheduleStore, ScheduleEngine


# =============================================================================
# Configuration Constants
# =============================================================================

ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    os.getenv("OPS_ALLOWED_FRONTEND", "").strip(),
]


# =============================================================================
# Cached Functions
# =============================================================================

@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return load_settings()


@lru_cache
def get_dataset() -> Dataset:
    """Task/CRM records from OPS_DATASET, or the demo dataset."""
    return fetch_dataset(get_settings().dataset_path)


@lru_cache
def get_schedule_store():
    """Schedule store for manual entries.

    Demo mode (no OPS_DATASET) keeps everything in memory, seeded with the
    demo entries; otherwise entries live in Firestore or the local file store.
    """
    if get_settings().dataset_path is None:
        return get_dataset().schedule_store()
    return PersistentScheduleStore()


@lru_cache
def get_engine() -> ScheduleEngine:
    dataset = get_dataset()
    return ScheduleEngine(
        dataset.task_store(),
        get_schedule_store(),
        dataset.crm_store(),
        settings=get_settings(),
        team_lookup=dataset.team_members,
    )


@lru_cache
def get_gateway() -> MutationGateway:
    return MutationGateway(get_schedule_store(), settings=get_settings())


def get_environment_info() -> tuple[str, bool]:
    """Get environment identifier and dev-auth flag."""
    env = os.getenv("OPS_ENV", "local")
    is_dev = os.getenv("OPS_DEV_AUTH_BYPASS") == "1"
    return env, is_dev
