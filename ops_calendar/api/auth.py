"""Resolve the acting user and role for API requests.

Production requests carry a Google ID token; the email claim is mapped to a
role through OPS_ACTOR_ROLES ("a@x.com=manager,b@x.com=sales"). With
OPS_DEV_AUTH_BYPASS=1 the caller names itself in X-User-Id / X-User-Role.
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import Header, HTTPException, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from ..schedule.types import ROLES, ActorScope

DEV_BYPASS_ENV = "OPS_DEV_AUTH_BYPASS"
CLIENT_ID_ENV = "GOOGLE_OAUTH_CLIENT_ID"
AUDIENCE_ENV = "GOOGLE_OAUTH_AUDIENCE"
ACTOR_ROLES_ENV = "OPS_ACTOR_ROLES"


class AuthError(HTTPException):
    def __init__(self, detail: str, code: int = status.HTTP_401_UNAUTHORIZED) -> None:
        super().__init__(status_code=code, detail=detail)


@lru_cache
def _token_audiences() -> List[str]:
    raw = os.getenv(AUDIENCE_ENV) or os.getenv(CLIENT_ID_ENV) or ""
    return [part.strip() for part in raw.split(",") if part.strip()]


@lru_cache
def _actor_roles() -> Dict[str, str]:
    """Email (lower-cased) to role, from OPS_ACTOR_ROLES."""
    mapping: Dict[str, str] = {}
    for pair in os.getenv(ACTOR_ROLES_ENV, "").split(","):
        email, sep, role = pair.partition("=")
        email, role = email.strip().lower(), role.strip()
        if sep and email and role in ROLES:
            mapping[email] = role
    return mapping


def _require_known_role(role: str) -> str:
    if role not in ROLES:
        raise AuthError(
            f"Unknown role {role!r}; expected one of {', '.join(ROLES)}.",
            status.HTTP_403_FORBIDDEN,
        )
    return role


def _verified_email(bearer: Optional[str]) -> str:
    """Verify a Google ID token against any configured audience."""
    scheme, _, token = (bearer or "").partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise AuthError("Missing Bearer token.")

    audiences = _token_audiences()
    if not audiences:
        raise AuthError("Server missing GOOGLE_OAUTH_CLIENT_ID or audience config.")

    transport = google_requests.Request()
    failures = []
    for audience in audiences:
        try:
            claims = id_token.verify_oauth2_token(token.strip(), transport, audience)
        except ValueError as exc:
            failures.append(str(exc))
            continue
        email = claims.get("email")
        if not email:
            raise AuthError("Token missing email claim.")
        return email

    raise AuthError(f"Invalid token: {'; '.join(failures)}")


def get_current_actor(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    dev_user: Optional[str] = Header(default=None, alias="X-User-Id"),
    dev_role: Optional[str] = Header(default=None, alias="X-User-Role"),
) -> ActorScope:
    """FastAPI dependency returning who is acting and in which role."""
    if os.getenv(DEV_BYPASS_ENV) == "1":
        if not dev_user:
            raise AuthError("Auth bypass enabled but X-User-Id header missing (dev only).")
        return ActorScope(actor_id=dev_user, role=_require_known_role(dev_role or "employee"))

    email = _verified_email(authorization)
    role = _actor_roles().get(email.lower())
    if role is None:
        raise AuthError(f"No role configured for {email}.", status.HTTP_403_FORBIDDEN)
    return ActorScope(actor_id=email, role=role)
