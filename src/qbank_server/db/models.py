"""
SQLAlchemy Models

Defines the database schema for:
- Questions (with optional pgvector embeddings)
- Derived subject / chapter / subtopic aggregates
- API keys and their usage log
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from pgvector.sqlalchemy import Vector

from ..config import settings


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Question Model
# ---------------------------------------------------------------------

class QuestionRecord(Base):
    """
    A single exam question.

    `question_id` is derived from year, paper code and question number at
    ingest and is unique across the corpus. `vector_embedding` stays NULL
    until the embedding pipeline populates it.
    """
    __tablename__ = "question"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    question_no: Mapped[str] = mapped_column(String(32), nullable=False)
    paper_code: Mapped[str] = mapped_column(String(64), nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[Optional[List[str]]] = mapped_column(JSONB, nullable=True)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False, default="")

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    marks: Mapped[int] = mapped_column(Integer, nullable=False)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    chapter: Mapped[str] = mapped_column(Text, nullable=False)
    subtopic: Mapped[str] = mapped_column(Text, nullable=False)
    theoretical_practical: Mapped[str] = mapped_column(String(16), nullable=False)
    has_diagram: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    provenance: Mapped[str] = mapped_column(Text, nullable=False, default="")
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    vector_embedding = Column(Vector(settings.embedding_dimensions), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_question_subject", "subject"),
        Index("idx_question_year", "year"),
    )


# ---------------------------------------------------------------------
# Aggregate Models (derived, rebuilt on every ingest)
# ---------------------------------------------------------------------

class SubjectRecord(Base):
    __tablename__ = "subject"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    question_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ChapterRecord(Base):
    __tablename__ = "chapter"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    question_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_chapter_subject", "subject"),
        Index("idx_chapter_name", "name"),
    )


class SubtopicRecord(Base):
    __tablename__ = "subtopic"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    chapter: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    question_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_subtopic_chapter", "chapter"),
    )


# ---------------------------------------------------------------------
# API Key Models (public API access gate)
# ---------------------------------------------------------------------

class ApiKey(Base):
    """
    A hashed API key. The raw key is shown to its owner once at creation
    and never stored.
    """
    __tablename__ = "api_key"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    key_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    key_prefix: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    rate_limit: Mapped[int] = mapped_column(Integer, nullable=False)  # requests per day
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )

    usage_logs: Mapped[List["ApiUsageLog"]] = relationship(
        "ApiUsageLog",
        back_populates="api_key",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_api_key_owner", "owner_id"),
    )


class ApiUsageLog(Base):
    """One row per successful public API request."""
    __tablename__ = "api_usage_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    api_key_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("api_key.id", ondelete="CASCADE"),
        nullable=False,
    )
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    method: Mapped[str] = mapped_column(String(8), nullable=False)
    status_code: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )

    api_key: Mapped["ApiKey"] = relationship("ApiKey", back_populates="usage_logs")

    __table_args__ = (
        Index("idx_usage_key_time", "api_key_id", "timestamp"),
    )
