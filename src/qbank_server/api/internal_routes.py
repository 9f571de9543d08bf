"""
Internal Routes

Open endpoints consumed by the browser app. They share the filter and
similarity pipelines with the public `/v1` API but skip the API key gate
and usage accounting.
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .dependencies import get_question_store
from .models import QuestionListResponse, QuestionResponse, SimilarQuestionsResponse
from .question_routes import search_questions, similar_questions
from ..db import QuestionStore
from ..questions.aggregates import ChapterAggregate, SubjectAggregate, SubtopicAggregate
from ..questions.normalization import unique_display_values

router = APIRouter(prefix="/internal", tags=["internal"])


@router.get("/questions", response_model=QuestionListResponse)
async def list_questions(
    store: Annotated[QuestionStore, Depends(get_question_store)],
    subject: Optional[str] = Query(None),
    year: Optional[str] = Query(None),
    marks: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    subtopic: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
) -> QuestionListResponse:
    return await search_questions(
        store,
        subject=subject,
        year=year,
        marks=marks,
        type=type,
        subtopic=subtopic,
        search=search,
        sort=sort,
        limit=limit,
        offset=offset,
    )


@router.get("/questions/{question_id}", response_model=QuestionResponse)
async def get_question(
    question_id: str,
    store: Annotated[QuestionStore, Depends(get_question_store)],
) -> QuestionResponse:
    question = await store.get_question(question_id)
    if question is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Question '{question_id}' not found",
        )
    return QuestionResponse(data=question)


@router.get("/questions/{question_id}/similar", response_model=SimilarQuestionsResponse)
async def get_similar_questions(
    question_id: str,
    store: Annotated[QuestionStore, Depends(get_question_store)],
    limit: Optional[int] = Query(None, ge=1),
    use_vectors: bool = Query(True, alias="useVectors"),
) -> SimilarQuestionsResponse:
    return await similar_questions(store, question_id, limit, use_vectors)


@router.get("/subjects", response_model=List[SubjectAggregate])
async def list_subjects(
    store: Annotated[QuestionStore, Depends(get_question_store)],
) -> List[SubjectAggregate]:
    return await store.list_subjects()


@router.get("/subjects/{subject}/chapters", response_model=List[ChapterAggregate])
async def list_chapters(
    subject: str,
    store: Annotated[QuestionStore, Depends(get_question_store)],
) -> List[ChapterAggregate]:
    return await store.chapters_by_subject(subject)


@router.get("/chapters/{chapter}/subtopics", response_model=List[SubtopicAggregate])
async def list_subtopics(
    chapter: str,
    store: Annotated[QuestionStore, Depends(get_question_store)],
) -> List[SubtopicAggregate]:
    return await store.subtopics_by_chapter(chapter)


@router.get("/subtopics", response_model=List[str])
async def list_subtopic_names(
    store: Annotated[QuestionStore, Depends(get_question_store)],
    subject: Optional[str] = Query(None),
) -> List[str]:
    """
    Distinct subtopics in display form, one per normalization key, sorted.
    """
    questions = await store.list_questions(subject=subject)
    return unique_display_values(q.subtopic for q in questions)
