"""
Maintenance Routes

Destructive operations used when reloading the corpus from scratch.

Security
--------
All endpoints are protected by `verify_admin`, which requires the
`x-admin-key` header to match `ADMIN_API_KEY`. When no admin key is
configured the routes are disabled.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from .dependencies import get_question_store
from .models import OperationResult
from ..config import settings
from ..db import QuestionStore

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------
# Security Dependency
# ---------------------------------------------------------------------

async def verify_admin(
    x_admin_key: Optional[str] = Header(None, alias="x-admin-key"),
) -> None:
    expected_key = settings.admin_api_key.get_secret_value() if settings.admin_api_key else None

    if not expected_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access is not configured (ADMIN_API_KEY missing)",
        )

    if not x_admin_key or x_admin_key != expected_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing admin API key",
        )


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------

@router.delete(
    "/questions",
    response_model=OperationResult,
    dependencies=[Depends(verify_admin)],
)
async def clear_questions(
    store: Annotated[QuestionStore, Depends(get_question_store)],
) -> OperationResult:
    deleted = await store.clear_questions()
    return OperationResult(status="deleted", count=deleted)


@router.delete(
    "/aggregates",
    response_model=OperationResult,
    dependencies=[Depends(verify_admin)],
)
async def clear_aggregates(
    store: Annotated[QuestionStore, Depends(get_question_store)],
) -> OperationResult:
    counts = await store.clear_aggregates()
    return OperationResult(status="deleted", count=sum(counts.values()), details=counts)
