"""Firestore client shared by the schedule store and the activity log."""
from __future__ import annotations

import os
from functools import lru_cache


PROJECT_ENV = "OPS_FIRESTORE_PROJECT"


@lru_cache(maxsize=1)
def get_firestore_client():
    """Return the process-wide Firestore client.

    Authenticates with application default credentials. OPS_FIRESTORE_PROJECT
    overrides the project those credentials imply.

    Raises:
        RuntimeError: if firebase-admin is not installed.
    """
    try:
        import firebase_admin
        from firebase_admin import credentials, firestore
    except ModuleNotFoundError as exc:  # pragma: no cover
        raise RuntimeError(
            "firebase-admin is required for Firestore storage. Set "
            "OPS_SCHEDULE_FORCE_FILE=1 and OPS_ACTIVITY_FORCE_FILE=1 to run on local files."
        ) from exc

    if not firebase_admin._apps:
        project = os.getenv(PROJECT_ENV, "").strip()
        firebase_admin.initialize_app(
            credentials.ApplicationDefault(),
            {"projectId": project} if project else None,
        )
    return firestore.client()
