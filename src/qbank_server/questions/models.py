"""
Question Domain Models

This module defines the canonical, storage-independent representation of an
exam question and of a ranked "similar question" result.

These models are the contract between:
- the record store (db/question_store.py)
- the filter and similarity engines
- the HTTP layer (serialized with `by_alias=True`)
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .answers import detect_correct_option


class QuestionType(str, Enum):
    """Value set of the `theoretical_practical` facet."""

    THEORETICAL = "theoretical"
    PRACTICAL = "practical"


class Question(BaseModel):
    """
    A single exam question.

    `question_id` is assigned at ingest and never changes afterwards.
    `vector_embedding` is absent until the embedding pipeline fills it in;
    absence is a normal state and is never serialized to clients.
    """

    question_id: str = Field(..., min_length=1, alias="questionId")
    question_no: str = ""
    paper_code: str = ""
    question_text: str = Field(..., min_length=1)
    options: Optional[List[str]] = None
    correct_answer: str = ""

    year: int
    marks: int
    subject: str
    chapter: str = ""
    subtopic: str = ""
    theoretical_practical: QuestionType
    has_diagram: bool = False
    provenance: str = ""
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    vector_embedding: Optional[List[float]] = Field(default=None, exclude=True)

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        use_enum_values=True,
    )

    @computed_field(alias="correctOptionIndex")
    @property
    def correct_option_index(self) -> Optional[int]:
        return detect_correct_option(self.options, self.correct_answer)

    @property
    def has_embedding(self) -> bool:
        return bool(self.vector_embedding)


class SimilarQuestion(Question):
    """
    A question returned by the similarity engine, annotated with its score
    and a human-readable reason.
    """

    similarity_score: float = Field(..., alias="similarityScore")
    similarity_reason: str = Field(..., alias="similarityReason")

    @classmethod
    def from_question(
        cls,
        question: Question,
        score: float,
        reason: str,
    ) -> "SimilarQuestion":
        data = question.model_dump(exclude={"correct_option_index"})
        data["vector_embedding"] = question.vector_embedding
        return cls(
            **data,
            similarity_score=score,
            similarity_reason=reason,
        )
