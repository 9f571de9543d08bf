"""
API Models for the Question Bank Server

Request and response schemas for the question, similarity, key management,
chat and maintenance endpoints.

Response fields that the browser app reads in camelCase declare an alias.
FastAPI dumps response models by alias and re-validates the result, so
every aliased model also accepts its field names.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..questions.models import Question, SimilarQuestion


# ---------------------------------------------------------------------
# Question listing
# ---------------------------------------------------------------------

class ResponseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Pagination(ResponseModel):
    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
    has_more: bool = Field(..., alias="hasMore")


class FilterEcho(ResponseModel):
    """The filters a listing was computed with, echoed back to the caller."""
    subject: Optional[str] = None
    year: Optional[int] = None
    marks: Optional[int] = None
    type: Optional[str] = None
    subtopic: Optional[str] = None
    search: Optional[str] = None
    sort_by: Optional[str] = Field(default=None, alias="sortBy")


class QuestionListResponse(ResponseModel):
    success: bool = True
    data: List[Question]
    pagination: Pagination
    filters: FilterEcho


class QuestionResponse(ResponseModel):
    success: bool = True
    data: Question


class SimilarQuestionsResponse(ResponseModel):
    success: bool = True
    question_id: str = Field(..., alias="questionId")
    algorithm: Literal["graph", "vector"]
    data: List[SimilarQuestion]
    count: int = Field(..., ge=0)


class SubjectListResponse(ResponseModel):
    success: bool = True
    data: List[Dict[str, Any]]


# ---------------------------------------------------------------------
# API key management
# ---------------------------------------------------------------------

class CreateApiKeyRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    rate_limit: Optional[int] = Field(default=None, ge=1, alias="rateLimit")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class CreatedApiKey(ResponseModel):
    """
    Returned once at creation. The raw key is never retrievable again.
    """
    id: int
    key: str
    name: str
    key_prefix: str = Field(..., alias="keyPrefix")


class ApiKeyView(ResponseModel):
    id: int
    name: str
    key_prefix: str = Field(..., alias="keyPrefix")
    is_active: bool = Field(..., alias="isActive")
    rate_limit: int = Field(..., alias="rateLimit")
    last_used_at: Optional[datetime] = Field(default=None, alias="lastUsedAt")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ToggleResult(ResponseModel):
    id: int
    is_active: bool = Field(..., alias="isActive")


class UsageView(ResponseModel):
    requests_today: int = Field(..., alias="requestsToday")
    remaining: int
    limit: int
    is_limited: bool = Field(..., alias="isLimited")
    reset_time: datetime = Field(..., alias="resetTime")


# ---------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------

class ChatMessage(BaseModel):
    """
    Single message in a chat conversation.
    """
    role: Literal["system", "user", "assistant"]
    content: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class ChatResponse(ResponseModel):
    response: str


# ---------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------

class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    """
    status: Literal["deleted", "ok"]
    count: Optional[int] = Field(default=None, ge=0)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")
