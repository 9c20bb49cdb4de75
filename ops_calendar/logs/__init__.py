"""Logging utilities for the ops calendar."""

from .activity import fetch_activity_entries, log_schedule_event

__all__ = ["log_schedule_event", "fetch_activity_entries"]
