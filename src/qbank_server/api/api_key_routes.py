"""
API Key Management Routes

Lets an authenticated account holder issue, list, pause, revoke and inspect
the API keys that unlock the public `/v1` endpoints.

The caller is identified by a bearer JWT (`verify_identity_token`); every
operation is scoped to keys owned by the token's subject. Keys owned by
someone else behave exactly like missing keys (404).
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status

from .dependencies import get_api_key_store
from .models import ApiKeyView, CreateApiKeyRequest, CreatedApiKey, OperationResult, ToggleResult, UsageView
from ..auth.models import UserContext
from ..auth.security import verify_identity_token
from ..db import ApiKeyStore

router = APIRouter(prefix="/api-keys", tags=["api-keys"])


def _not_found(key_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"API key {key_id} not found",
    )


@router.post(
    "",
    response_model=CreatedApiKey,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a new API key",
)
async def create_api_key(
    req: CreateApiKeyRequest,
    user: Annotated[UserContext, Depends(verify_identity_token)],
    key_store: Annotated[ApiKeyStore, Depends(get_api_key_store)],
) -> CreatedApiKey:
    """
    Create a key for the caller. The raw key appears only in this response;
    only its hash is stored.
    """
    issued = await key_store.create_key(user.owner_id, req.name, req.rate_limit)
    return CreatedApiKey(
        id=issued.key_id,
        key=issued.key,
        name=issued.name,
        key_prefix=issued.key_prefix,
    )


@router.get("", response_model=List[ApiKeyView], summary="List the caller's API keys")
async def list_api_keys(
    user: Annotated[UserContext, Depends(verify_identity_token)],
    key_store: Annotated[ApiKeyStore, Depends(get_api_key_store)],
) -> List[ApiKeyView]:
    keys = await key_store.list_keys(user.owner_id)
    return [ApiKeyView.model_validate(k) for k in keys]


@router.delete("/{key_id}", response_model=OperationResult, summary="Revoke an API key")
async def revoke_api_key(
    key_id: int,
    user: Annotated[UserContext, Depends(verify_identity_token)],
    key_store: Annotated[ApiKeyStore, Depends(get_api_key_store)],
) -> OperationResult:
    if not await key_store.revoke(user.owner_id, key_id):
        raise _not_found(key_id)
    return OperationResult(status="deleted", count=1)


@router.post("/{key_id}/toggle", response_model=ToggleResult, summary="Pause or resume an API key")
async def toggle_api_key(
    key_id: int,
    user: Annotated[UserContext, Depends(verify_identity_token)],
    key_store: Annotated[ApiKeyStore, Depends(get_api_key_store)],
) -> ToggleResult:
    is_active = await key_store.toggle_active(user.owner_id, key_id)
    if is_active is None:
        raise _not_found(key_id)
    return ToggleResult(id=key_id, is_active=is_active)


@router.get("/{key_id}/usage", response_model=UsageView, summary="Today's usage for an API key")
async def get_api_key_usage(
    key_id: int,
    user: Annotated[UserContext, Depends(verify_identity_token)],
    key_store: Annotated[ApiKeyStore, Depends(get_api_key_store)],
) -> UsageView:
    key = await key_store.get_owned_key(user.owner_id, key_id)
    if key is None:
        raise _not_found(key_id)

    usage = await key_store.usage_today(key.id, key.rate_limit)
    return UsageView(
        requests_today=usage.requests_today,
        remaining=usage.remaining,
        limit=usage.limit,
        is_limited=usage.is_limited,
        reset_time=usage.reset_time,
    )
