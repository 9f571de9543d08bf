"""
Database Package

Provides SQLAlchemy async session management, model definitions and the
record stores for PostgreSQL with pgvector.
"""

from .session import get_async_session, async_engine, AsyncSessionLocal, init_models
from .models import (
    Base,
    QuestionRecord,
    SubjectRecord,
    ChapterRecord,
    SubtopicRecord,
    ApiKey,
    ApiUsageLog,
)
from .question_store import QuestionStore
from .api_keys import ApiKeyStore

__all__ = [
    "get_async_session",
    "async_engine",
    "AsyncSessionLocal",
    "init_models",
    "Base",
    "QuestionRecord",
    "SubjectRecord",
    "ChapterRecord",
    "SubtopicRecord",
    "ApiKey",
    "ApiUsageLog",
    "QuestionStore",
    "ApiKeyStore",
]
