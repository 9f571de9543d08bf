"""
Public API Access Gate

FastAPI dependency that guards the `/v1` read API:

1. Extract the key from `X-API-Key`, falling back to
   `Authorization: Bearer <key>`. Missing both gives 401.
2. Verify it against the key store. Unknown, inactive or expired keys
   give 401.
3. Enforce the key's daily request quota. Over quota gives 429.
4. Schedule usage recording as a background task.

Usage recording is fire-and-forget. It runs after the response is sent in
its own session, and any failure is logged and swallowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fastapi import BackgroundTasks, Depends, Header, HTTPException, Request, status

from ..api.dependencies import get_api_key_store
from ..db import AsyncSessionLocal, ApiKeyStore
from ..db.api_keys import VerifiedApiKey
from .models import ApiKeyContext

logger = logging.getLogger("qbank.access")

UsageRecorder = Callable[[VerifiedApiKey, str, str], Awaitable[None]]

MISSING_KEY_DETAIL = (
    "API key is required. Include X-API-Key header or Authorization: Bearer <key>"
)
INVALID_KEY_DETAIL = "Invalid or inactive API key"


# ---------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------

def extract_api_key(
    x_api_key: Optional[str],
    authorization: Optional[str],
) -> Optional[str]:
    """Return the presented key, preferring `X-API-Key`."""
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()

    if authorization:
        scheme, _, credentials = authorization.strip().partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()

    return None


async def record_usage_in_background(
    key: VerifiedApiKey,
    endpoint: str,
    method: str,
) -> None:
    """
    Persist one usage row in a dedicated session.

    Never raises: the response has already been sent.
    """
    try:
        async with AsyncSessionLocal() as session:
            store = ApiKeyStore(session)
            await store.record_usage(key, endpoint=endpoint, method=method)
            await session.commit()
    except Exception:
        logger.exception(
            "Failed to record API usage for key %s on %s %s",
            key.key_id,
            method,
            endpoint,
        )


def get_usage_recorder() -> UsageRecorder:
    return record_usage_in_background


# ---------------------------------------------------------------------
# Public Dependency
# ---------------------------------------------------------------------

async def require_api_key(
    request: Request,
    background_tasks: BackgroundTasks,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    authorization: Optional[str] = Header(None),
    key_store: ApiKeyStore = Depends(get_api_key_store),
    record_usage: UsageRecorder = Depends(get_usage_recorder),
) -> ApiKeyContext:
    """
    Verify the caller's API key and quota before any engine runs.

    Raises
    ------
    HTTPException(401) for a missing or invalid key.
    HTTPException(429) once the daily quota is exhausted.
    """
    raw_key = extract_api_key(x_api_key, authorization)
    if raw_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=MISSING_KEY_DETAIL,
        )

    verified = await key_store.verify(raw_key)
    if verified is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_KEY_DETAIL,
        )

    usage = await key_store.usage_today(verified.key_id, verified.daily_limit)
    if usage.is_limited:
        logger.info("API key %s exceeded its daily limit (%d)", verified.key_id, usage.limit)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Daily request limit of {usage.limit} reached. Resets at {usage.reset_time.isoformat()}.",
            headers={"Retry-After": str(_seconds_until(usage.reset_time))},
        )

    background_tasks.add_task(
        record_usage,
        verified,
        request.url.path,
        request.method,
    )

    return ApiKeyContext(
        key_id=verified.key_id,
        owner_id=verified.owner_id,
        daily_limit=verified.daily_limit,
        requests_today=usage.requests_today,
    )


def _seconds_until(moment: datetime) -> int:
    return max(0, int((moment - datetime.now(timezone.utc)).total_seconds()))
