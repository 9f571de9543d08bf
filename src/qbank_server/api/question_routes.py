"""
Public Question Routes

Read-only `/v1` endpoints for third-party consumers. Every route is guarded
by `require_api_key`, which authenticates, enforces the daily quota and
schedules usage recording before any engine runs.

The listing and similarity helpers here are shared with the open
`/internal` routes used by the browser app.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from .dependencies import get_question_store
from .models import (
    FilterEcho,
    Pagination,
    QuestionListResponse,
    SimilarQuestionsResponse,
    SubjectListResponse,
)
from ..auth.api_key import require_api_key
from ..auth.models import ApiKeyContext
from ..config import settings
from ..db import QuestionStore
from ..questions.filtering import Page, QuestionFilters, filter_questions, parse_sort
from ..questions.similarity import find_similar
from ..subjects import SUBJECTS

router = APIRouter(prefix="/v1", tags=["questions"])


# ---------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------

async def search_questions(
    store: QuestionStore,
    subject: Optional[str] = None,
    year: Optional[str] = None,
    marks: Optional[str] = None,
    type: Optional[str] = None,
    subtopic: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
) -> QuestionListResponse:
    """
    Validate raw query values, fetch the candidate pool and run the filter
    engine over it.

    Parameters are parsed before the store is touched, so malformed input
    fails with InvalidFilterError without a database round trip.
    """
    filters = QuestionFilters.parse(
        subject=subject,
        year=year,
        marks=marks,
        type=type,
        subtopic=subtopic,
        search=search,
    )
    page = Page.parse(offset=offset, limit=limit)
    sort_order = parse_sort(sort)

    corpus = await store.list_questions(subject=filters.subject)
    result = filter_questions(corpus, filters, sort=sort_order, page=page)

    return QuestionListResponse(
        data=result.items,
        pagination=Pagination(
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            has_more=result.has_more,
        ),
        filters=FilterEcho(
            **filters.echo(),
            sort_by=sort_order.value if sort_order else sort,
        ),
    )


async def similar_questions(
    store: QuestionStore,
    question_id: str,
    limit: Optional[int],
    use_vectors: bool,
) -> SimilarQuestionsResponse:
    if limit is None:
        limit = settings.default_similar_limit
    limit = min(limit, settings.max_similar_limit)

    result = await find_similar(store, question_id, limit=limit, prefer_vectors=use_vectors)

    return SimilarQuestionsResponse(
        question_id=question_id,
        algorithm=result.algorithm.value,
        data=result.items,
        count=result.count,
    )


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------

@router.get(
    "/questions",
    response_model=QuestionListResponse,
    summary="Filter, sort and paginate questions",
)
async def list_questions(
    key: Annotated[ApiKeyContext, Depends(require_api_key)],
    store: Annotated[QuestionStore, Depends(get_question_store)],
    subject: Optional[str] = Query(None),
    year: Optional[str] = Query(None),
    marks: Optional[str] = Query(None),
    type: Optional[str] = Query(None, description="theoretical or practical"),
    subtopic: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="year-desc, year-asc, marks-desc or marks-asc"),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
) -> QuestionListResponse:
    """
    Return one page of questions matching every supplied filter.

    `year`, `marks`, `limit` and `offset` are taken as raw strings so a
    non-numeric value is reported as `invalid_filter`.
    """
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


@router.get(
    "/questions/{question_id}/similar",
    response_model=SimilarQuestionsResponse,
    summary="Rank questions similar to a target question",
)
async def get_similar_questions(
    question_id: str,
    key: Annotated[ApiKeyContext, Depends(require_api_key)],
    store: Annotated[QuestionStore, Depends(get_question_store)],
    limit: Optional[int] = Query(None, ge=1),
    use_vectors: bool = Query(True, alias="useVectors"),
) -> SimilarQuestionsResponse:
    return await similar_questions(store, question_id, limit, use_vectors)


@router.get(
    "/subjects",
    response_model=SubjectListResponse,
    summary="List the subject catalog",
)
async def list_subjects(
    key: Annotated[ApiKeyContext, Depends(require_api_key)],
) -> SubjectListResponse:
    return SubjectListResponse(data=[subject.public_view() for subject in SUBJECTS])
