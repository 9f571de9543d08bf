"""
Derived subject / chapter / subtopic aggregates.

Aggregates exist so menus and stats pages do not rescan the corpus. They
are never a source of truth for filtering, and they are recomputed
wholesale from the question set on every ingest run rather than patched
incrementally.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..subjects import find_subject
from .models import Question


class SubjectAggregate(BaseModel):
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    question_count: int = Field(default=0, alias="questionCount")

    model_config = ConfigDict(populate_by_name=True)


class ChapterAggregate(BaseModel):
    name: str
    subject: str
    question_count: int = Field(default=0, alias="questionCount")

    model_config = ConfigDict(populate_by_name=True)


class SubtopicAggregate(BaseModel):
    name: str
    chapter: str
    subject: str
    question_count: int = Field(default=0, alias="questionCount")

    model_config = ConfigDict(populate_by_name=True)


class Aggregates(BaseModel):
    subjects: List[SubjectAggregate] = Field(default_factory=list)
    chapters: List[ChapterAggregate] = Field(default_factory=list)
    subtopics: List[SubtopicAggregate] = Field(default_factory=list)


def build_aggregates(questions: Iterable[Question]) -> Aggregates:
    """
    Count questions per subject, per (subject, chapter) and per
    (subject, chapter, subtopic), in first-seen order.

    Subject descriptions and icons come from the static catalog when the
    subject is listed there.
    """
    subjects: Dict[str, SubjectAggregate] = {}
    chapters: Dict[Tuple[str, str], ChapterAggregate] = {}
    subtopics: Dict[Tuple[str, str, str], SubtopicAggregate] = {}

    for q in questions:
        subject = subjects.get(q.subject)
        if subject is None:
            info = find_subject(q.subject)
            subject = subjects[q.subject] = SubjectAggregate(
                name=q.subject,
                description=info.description if info else None,
                icon=info.icon if info else None,
            )
        subject.question_count += 1

        chapter_key = (q.subject, q.chapter)
        chapter = chapters.get(chapter_key)
        if chapter is None:
            chapter = chapters[chapter_key] = ChapterAggregate(
                name=q.chapter,
                subject=q.subject,
            )
        chapter.question_count += 1

        subtopic_key = (q.subject, q.chapter, q.subtopic)
        subtopic = subtopics.get(subtopic_key)
        if subtopic is None:
            subtopic = subtopics[subtopic_key] = SubtopicAggregate(
                name=q.subtopic,
                chapter=q.chapter,
                subject=q.subject,
            )
        subtopic.question_count += 1

    return Aggregates(
        subjects=list(subjects.values()),
        chapters=list(chapters.values()),
        subtopics=list(subtopics.values()),
    )
