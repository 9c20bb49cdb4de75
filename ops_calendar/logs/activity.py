"""Audit trail for changes to the team schedule.

Every manual event creation, deletion and refused deletion becomes one
record. Records go to the Firestore collection named by
OPS_ACTIVITY_COLLECTION, or are appended to a JSONL file when
OPS_ACTIVITY_FORCE_FILE=1 or Firestore cannot be reached.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from ..firestore import get_firestore_client


logger = logging.getLogger(__name__)

ActivityAction = Literal["create", "delete", "reject_delete"]

ActivityRecord = Dict[str, Any]

FALLBACK_LOG = Path(__file__).resolve().parents[2] / "activity_log.jsonl"


def _file_only() -> bool:
    return os.getenv("OPS_ACTIVITY_FORCE_FILE", "0") == "1"


def _collection_name() -> str:
    return os.getenv("OPS_ACTIVITY_COLLECTION", "schedule_activity")


def _log_file() -> Path:
    configured = os.getenv("OPS_ACTIVITY_LOG")
    return Path(configured) if configured else FALLBACK_LOG


def log_schedule_event(
    *,
    action: ActivityAction,
    actor_id: str,
    source_kind: str,
    event_id: Optional[str] = None,
    title: Optional[str] = None,
    detail: Optional[str] = None,
    environment: str = "local",
) -> ActivityRecord:
    """Record one schedule change (or refused change) and return the record."""
    record: ActivityRecord = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "actor_id": actor_id,
        "source_kind": source_kind,
        "event_id": event_id,
        "title": title,
        "detail": detail,
        "environment": environment,
    }

    if not _file_only():
        try:
            get_firestore_client().collection(_collection_name()).add(record)
            return record
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning(f"[ActivityLog] Firestore write failed, appending to {_log_file()}: {exc}")

    _append(record)
    return record


def fetch_activity_entries(
    limit: int = 50,
    *,
    actor_id: Optional[str] = None,
) -> List[ActivityRecord]:
    """Return the most recent records, newest first.

    Args:
        limit: Maximum number of records
        actor_id: Only records made by this actor
    """
    if not _file_only():
        try:
            return _query_firestore(limit, actor_id)
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning(f"[ActivityLog] Firestore read failed, reading {_log_file()}: {exc}")

    records = [r for r in _read_all() if actor_id is None or r.get("actor_id") == actor_id]
    return list(reversed(records))[:limit]


def _query_firestore(limit: int, actor_id: Optional[str]) -> List[ActivityRecord]:
    from firebase_admin import firestore as fb_firestore  # type: ignore

    query = get_firestore_client().collection(_collection_name())
    if actor_id is not None:
        query = query.where("actor_id", "==", actor_id)
    query = query.order_by("ts", direction=fb_firestore.Query.DESCENDING).limit(limit)
    return [doc.to_dict() for doc in query.stream()]


def _append(record: ActivityRecord) -> None:
    path = _log_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record) + "\n")


def _read_all() -> List[ActivityRecord]:
    path = _log_file()
    if not path.exists():
        return []
    records = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                logger.debug(f"[ActivityLog] Skipping malformed line in {path}")
    return records
