from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session, QuestionStore, ApiKeyStore
from ..llm.client import LLMClient


def get_question_store(
    session: AsyncSession = Depends(get_async_session),
) -> QuestionStore:
    return QuestionStore(session)


def get_api_key_store(
    session: AsyncSession = Depends(get_async_session),
) -> ApiKeyStore:
    return ApiKeyStore(session)


@lru_cache
def get_llm_client() -> LLMClient:
    return LLMClient()
