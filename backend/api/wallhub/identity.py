from __future__ import annotations

import hmac

from fastapi import HTTPException

from wallhub.config import get_settings


def resolve_actor(x_actor_id: str | None) -> str | None:
    """
    Resolve the actor from the "X-Actor-Id" header set by the auth gateway.
    Empty / missing -> anonymous (None). The core never authenticates.

    IMPORTANT:
    - This function MUST receive a plain string (or None).
    - Do NOT declare FastAPI Header() here because we call this directly from endpoints.
    """
    actor = (x_actor_id or "").strip()
    return actor or None


def require_actor(x_actor_id: str | None) -> str:
    actor = resolve_actor(x_actor_id)
    if actor is None:
        raise HTTPException(status_code=401, detail="Actor identity required")
    return actor


def require_admin(x_admin_token: str | None) -> None:
    expected = get_settings().admin_token
    if not expected:
        # No token configured means admin endpoints are closed, not open.
        raise HTTPException(status_code=403, detail="Admin access is not configured")

    token = (x_admin_token or "").strip()
    if not token:
        raise HTTPException(status_code=401, detail="Admin token required")
    if not hmac.compare_digest(token, expected):
        raise HTTPException(status_code=403, detail="Access denied! Only admin can perform this action.")
