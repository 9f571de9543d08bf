"""
Question Store

PostgreSQL-backed record store for questions and their derived aggregates.
The filter and similarity engines only read through this class; writes
happen in the offline ingest path.
"""

from __future__ import annotations

import functools
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from sqlalchemy import Insert, Select, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from ..core.errors import UpstreamUnavailableError
from ..questions.aggregates import (
    Aggregates,
    ChapterAggregate,
    SubjectAggregate,
    SubtopicAggregate,
)
from ..questions.models import Question
from .models import ChapterRecord, QuestionRecord, SubjectRecord, SubtopicRecord

# 16 columns per row: 500 rows stay well under the 32767 bind-parameter cap.
INSERT_BATCH_SIZE = 500


def wrap_store_errors(func_):
    """
    Re-raise driver and connection failures as UpstreamUnavailableError.
    """

    @functools.wraps(func_)
    async def wrapper(*args, **kwargs):
        try:
            return await func_(*args, **kwargs)
        except (SQLAlchemyError, OSError) as exc:
            raise UpstreamUnavailableError(
                f"{func_.__name__} failed: {type(exc).__name__}"
            ) from exc

    return wrapper


def record_to_question(record: QuestionRecord, include_embedding: bool = True) -> Question:
    # A deferred column must not be touched: under asyncio it would lazy-load.
    embedding = record.vector_embedding if include_embedding else None
    return Question(
        question_id=record.question_id,
        question_no=record.question_no,
        paper_code=record.paper_code,
        question_text=record.question_text,
        options=list(record.options) if record.options else None,
        correct_answer=record.correct_answer,
        year=record.year,
        marks=record.marks,
        subject=record.subject,
        chapter=record.chapter,
        subtopic=record.subtopic,
        theoretical_practical=record.theoretical_practical,
        has_diagram=record.has_diagram,
        provenance=record.provenance,
        confidence=record.confidence,
        vector_embedding=[float(x) for x in embedding] if embedding is not None else None,
    )


def question_to_row(question: Question) -> dict:
    return {
        "question_id": question.question_id,
        "question_no": question.question_no,
        "paper_code": question.paper_code,
        "question_text": question.question_text,
        "options": question.options,
        "correct_answer": question.correct_answer,
        "year": question.year,
        "marks": question.marks,
        "subject": question.subject,
        "chapter": question.chapter,
        "subtopic": question.subtopic,
        "theoretical_practical": question.theoretical_practical,
        "has_diagram": question.has_diagram,
        "provenance": question.provenance,
        "confidence": question.confidence,
        "vector_embedding": question.vector_embedding,
    }


def list_questions_statement(
    subject: Optional[str] = None,
    include_embeddings: bool = False,
) -> Select:
    stmt = select(QuestionRecord).order_by(QuestionRecord.id)
    if not include_embeddings:
        stmt = stmt.options(defer(QuestionRecord.vector_embedding))
    if subject:
        stmt = stmt.where(func.lower(QuestionRecord.subject) == subject.strip().lower())
    return stmt


def insert_statements(
    questions: Sequence[Question],
    batch_size: int = INSERT_BATCH_SIZE,
) -> Iterator[Insert]:
    """
    One `INSERT ... ON CONFLICT DO NOTHING RETURNING id` per batch, keeping
    each statement's bind parameters under PostgreSQL's 32767 limit.
    """
    for start in range(0, len(questions), batch_size):
        rows = [question_to_row(q) for q in questions[start : start + batch_size]]
        yield (
            pg_insert(QuestionRecord)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["question_id"])
            .returning(QuestionRecord.id)
        )


class QuestionStore:
    """
    Read/write access to the question corpus.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize with an async database session.

        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        """
        self._session = session

    async def commit(self) -> None:
        await self._session.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @wrap_store_errors
    async def get_question(self, question_id: str) -> Optional[Question]:
        result = await self._session.execute(
            select(QuestionRecord).where(QuestionRecord.question_id == question_id)
        )
        record = result.scalars().first()
        return record_to_question(record) if record else None

    @wrap_store_errors
    async def list_questions(
        self,
        subject: Optional[str] = None,
        include_embeddings: bool = False,
    ) -> List[Question]:
        """
        Return the corpus in insertion order, optionally narrowed to one
        subject (case-insensitive).

        The embedding column is left unloaded unless `include_embeddings`
        is set; only vector ranking and the embedding back-fill need it.
        """
        stmt = list_questions_statement(subject, include_embeddings)
        result = await self._session.execute(stmt)
        return [
            record_to_question(r, include_embedding=include_embeddings)
            for r in result.scalars().all()
        ]

    @wrap_store_errors
    async def list_subjects(self) -> List[SubjectAggregate]:
        result = await self._session.execute(
            select(SubjectRecord).order_by(SubjectRecord.name)
        )
        return [
            SubjectAggregate(
                name=r.name,
                description=r.description,
                icon=r.icon,
                question_count=r.question_count,
            )
            for r in result.scalars().all()
        ]

    @wrap_store_errors
    async def list_chapters(self) -> List[ChapterAggregate]:
        result = await self._session.execute(select(ChapterRecord).order_by(ChapterRecord.id))
        return [
            ChapterAggregate(name=r.name, subject=r.subject, question_count=r.question_count)
            for r in result.scalars().all()
        ]

    @wrap_store_errors
    async def list_subtopics(self) -> List[SubtopicAggregate]:
        result = await self._session.execute(select(SubtopicRecord).order_by(SubtopicRecord.id))
        return [
            SubtopicAggregate(
                name=r.name,
                chapter=r.chapter,
                subject=r.subject,
                question_count=r.question_count,
            )
            for r in result.scalars().all()
        ]

    @wrap_store_errors
    async def chapters_by_subject(self, subject: str) -> List[ChapterAggregate]:
        result = await self._session.execute(
            select(ChapterRecord)
            .where(ChapterRecord.subject == subject)
            .order_by(ChapterRecord.id)
        )
        return [
            ChapterAggregate(name=r.name, subject=r.subject, question_count=r.question_count)
            for r in result.scalars().all()
        ]

    @wrap_store_errors
    async def subtopics_by_chapter(self, chapter: str) -> List[SubtopicAggregate]:
        result = await self._session.execute(
            select(SubtopicRecord)
            .where(SubtopicRecord.chapter == chapter)
            .order_by(SubtopicRecord.id)
        )
        return [
            SubtopicAggregate(
                name=r.name,
                chapter=r.chapter,
                subject=r.subject,
                question_count=r.question_count,
            )
            for r in result.scalars().all()
        ]

    # ------------------------------------------------------------------
    # Writes (ingest path)
    # ------------------------------------------------------------------

    @wrap_store_errors
    async def insert_questions(self, questions: Sequence[Question]) -> int:
        """
        Insert questions, skipping ids that already exist.

        Re-running with the same records is a no-op.

        Returns
        -------
        int
            Number of rows actually inserted.
        """
        inserted = 0
        for stmt in insert_statements(questions):
            result = await self._session.execute(stmt)
            inserted += len(result.all())

        if inserted:
            await self._session.flush()
        return inserted

    @wrap_store_errors
    async def rebuild_aggregates(self, aggregates: Aggregates) -> Dict[str, int]:
        """
        Delete all aggregate rows and replace them with `aggregates`.
        """
        await self._delete_aggregates()

        self._session.add_all(
            SubjectRecord(
                name=s.name,
                description=s.description,
                icon=s.icon,
                question_count=s.question_count,
            )
            for s in aggregates.subjects
        )
        self._session.add_all(
            ChapterRecord(name=c.name, subject=c.subject, question_count=c.question_count)
            for c in aggregates.chapters
        )
        self._session.add_all(
            SubtopicRecord(
                name=st.name,
                chapter=st.chapter,
                subject=st.subject,
                question_count=st.question_count,
            )
            for st in aggregates.subtopics
        )
        await self._session.flush()

        return {
            "subjects": len(aggregates.subjects),
            "chapters": len(aggregates.chapters),
            "subtopics": len(aggregates.subtopics),
        }

    @wrap_store_errors
    async def update_embeddings(self, embeddings: Dict[str, Iterable[float]]) -> int:
        """
        Set `vector_embedding` for each question id in `embeddings`.

        Returns the number of questions updated; unknown ids are ignored.
        """
        updated = 0
        for question_id, vector in embeddings.items():
            result = await self._session.execute(
                update(QuestionRecord)
                .where(QuestionRecord.question_id == question_id)
                .values(vector_embedding=list(vector))
            )
            updated += result.rowcount or 0
        await self._session.flush()
        return updated

    @wrap_store_errors
    async def clear_questions(self) -> int:
        result = await self._session.execute(delete(QuestionRecord))
        return result.rowcount or 0

    @wrap_store_errors
    async def clear_aggregates(self) -> Dict[str, int]:
        return await self._delete_aggregates()

    async def _delete_aggregates(self) -> Dict[str, int]:
        subjects = await self._session.execute(delete(SubjectRecord))
        chapters = await self._session.execute(delete(ChapterRecord))
        subtopics = await self._session.execute(delete(SubtopicRecord))
        return {
            "subjects": subjects.rowcount or 0,
            "chapters": chapters.rowcount or 0,
            "subtopics": subtopics.rowcount or 0,
        }
