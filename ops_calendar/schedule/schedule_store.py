"""Schedule Store - persistent storage for manual schedule entries.

Follows the Firestore + file fallback pattern used by the other stores:

- Firestore path: {collection}/{entry_id}
- File store: {store_dir}/schedules.jsonl, used when forced or when no
  Firestore client can be created. Once Firestore is active, a failed write
  raises SourceUnavailable rather than landing in the file.

Environment Variables:
    OPS_SCHEDULE_FORCE_FILE: Set to "1" to use local file storage (dev mode)
    OPS_SCHEDULE_DIR: Directory for file-based storage (default: schedule_store/)
    OPS_SCHEDULE_COLLECTION: Firestore collection name (default: schedules)
"""
from __future__ import annotations

import json
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional

from .errors import SourceUnavailable
from .stores import select_in_range
from .types import DateRange, ManualScheduleEntry


logger = logging.getLogger(__name__)

STORE_FILENAME = "schedules.jsonl"


def _force_file_fallback() -> bool:
    """Check if file-based storage should be used (dev mode)."""
    return os.getenv("OPS_SCHEDULE_FORCE_FILE", "0").strip() == "1"


def _schedule_store_dir() -> Path:
    """Return the directory for file-based schedule storage."""
    env_dir = os.getenv("OPS_SCHEDULE_DIR", "").strip()
    if env_dir:
        return Path(env_dir)
    return Path(__file__).resolve().parents[2] / "schedule_store"


def _get_firestore_client():
    """Get Firestore client, or None if not available."""
    try:
        from ..firestore import get_firestore_client
        return get_firestore_client()
    except Exception as exc:
        logger.warning(f"[ScheduleStore] Firestore unavailable, using local file: {exc}")
        return None


class PersistentScheduleStore:
    """Schedule store backed by Firestore, or a JSONL file when forced/offline."""

    def __init__(
        self,
        *,
        force_file: Optional[bool] = None,
        store_dir: Optional[Path] = None,
        collection: Optional[str] = None,
    ) -> None:
        self.force_file = _force_file_fallback() if force_file is None else force_file
        self.store_dir = Path(store_dir) if store_dir else _schedule_store_dir()
        self.collection = collection or os.getenv("OPS_SCHEDULE_COLLECTION", "schedules")

    def _db(self):
        if self.force_file:
            return None
        return _get_firestore_client()

    @property
    def file_path(self) -> Path:
        return self.store_dir / STORE_FILENAME

    # =========================================================================
    # Store interface
    # =========================================================================

    def list_entries_by_date_range(self, date_range, predicate) -> List[ManualScheduleEntry]:
        db = self._db()
        if db is None:
            entries = self._read_file().values()
        else:
            try:
                entries = self._list_from_firestore(db, date_range)
            except Exception as exc:
                raise SourceUnavailable("manual", str(exc)) from exc
        return select_in_range(entries, date_range, lambda e: e.date, predicate)

    def get_entry(self, entry_id: str) -> Optional[ManualScheduleEntry]:
        db = self._db()
        if db is not None:
            doc = db.collection(self.collection).document(entry_id).get()
            if doc.exists:
                return ManualScheduleEntry.from_dict(doc.to_dict())
            return None
        return self._read_file().get(entry_id)

    def insert_entry(self, entry: ManualScheduleEntry) -> str:
        """Persist a new entry.

        Raises:
            SourceUnavailable: if Firestore is the active backend and the
                write fails. Nothing is written to the local file then, since
                reads against Firestore would never see it.
        """
        db = self._db()
        if db is not None:
            try:
                db.collection(self.collection).document(entry.id).set(entry.to_dict())
            except Exception as exc:
                logger.warning(f"[ScheduleStore] Firestore write of {entry.id} failed: {exc}")
                raise SourceUnavailable("manual", str(exc)) from exc
            return entry.id

        entries = self._read_file()
        entries[entry.id] = entry
        self._write_file(entries)
        return entry.id

    def delete_entry(self, entry_id: str) -> bool:
        db = self._db()
        if db is not None:
            doc_ref = db.collection(self.collection).document(entry_id)
            if doc_ref.get().exists:
                doc_ref.delete()
                return True
            return False

        entries = self._read_file()
        if entries.pop(entry_id, None) is None:
            return False
        self._write_file(entries)
        return True

    # =========================================================================
    # Firestore Storage
    # =========================================================================

    def _list_from_firestore(self, db, date_range: DateRange) -> List[ManualScheduleEntry]:
        """Query entries by ISO date prefix; exact day filtering happens after."""
        upper = (date_range.end + timedelta(days=1)).isoformat()
        query = (
            db.collection(self.collection)
            .where("date", ">=", date_range.start.isoformat())
            .where("date", "<", upper)
        )
        entries = []
        for doc in query.stream():
            try:
                entries.append(ManualScheduleEntry.from_dict(doc.to_dict()))
            except (KeyError, TypeError, ValueError):
                logger.debug(f"[ScheduleStore] Skipping malformed document {doc.id}")
        return entries

    # =========================================================================
    # File Storage (Fallback)
    # =========================================================================

    def _read_file(self) -> Dict[str, ManualScheduleEntry]:
        path = self.file_path
        if not path.exists():
            return {}

        entries: Dict[str, ManualScheduleEntry] = {}
        with path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = ManualScheduleEntry.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                    continue
                entries[entry.id] = entry
        return entries

    def _write_file(self, entries: Dict[str, ManualScheduleEntry]) -> None:
        self.store_dir.mkdir(parents=True, exist_ok=True)
        with self.file_path.open("w", encoding="utf-8") as f:
            for entry in entries.values():
                f.write(json.dumps(entry.to_dict()) + "\n")
