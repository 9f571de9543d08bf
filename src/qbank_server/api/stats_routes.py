"""
Corpus Statistics

Read-only analytics over the stored question corpus for the stats
dashboard and the graph explorer:

- `/v1/stats`: headline totals and the covered year range
- `/v1/stats/detailed`: year, subject, marks, type, chapter and subtopic
  distributions
- `/v1/graph`: subject / chapter / subtopic / question nodes and links
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from .dependencies import get_question_store
from ..db import QuestionStore
from ..questions.stats import detailed_stats, graph_data, summarize

router = APIRouter(prefix="/v1", tags=["stats"])


@router.get("/stats", response_model=Dict[str, Any])
async def get_stats(
    store: Annotated[QuestionStore, Depends(get_question_store)],
) -> Dict[str, Any]:
    questions = await store.list_questions()
    subjects = await store.list_subjects()
    chapters = await store.list_chapters()
    subtopics = await store.list_subtopics()
    return summarize(questions, len(subjects), len(chapters), len(subtopics))


@router.get("/stats/detailed", response_model=Dict[str, Any])
async def get_detailed_stats(
    store: Annotated[QuestionStore, Depends(get_question_store)],
) -> Dict[str, Any]:
    return detailed_stats(await store.list_questions())


@router.get("/graph", response_model=Dict[str, Any])
async def get_graph(
    store: Annotated[QuestionStore, Depends(get_question_store)],
    limit: int = Query(100, ge=1, le=1000),
    exclude_diagrams: bool = Query(False, alias="excludeDiagrams"),
    subject: Optional[str] = Query(None),
) -> Dict[str, Any]:
    """
    Parameters
    ----------
    limit : int
        Number of questions sampled into the graph.
    exclude_diagrams : bool
        Drop questions that depend on a diagram.
    subject : str, optional
        Restrict every layer of the graph to one subject.
    """
    return graph_data(
        subjects=await store.list_subjects(),
        chapters=await store.list_chapters(),
        subtopics=await store.list_subtopics(),
        questions=await store.list_questions(),
        limit=limit,
        exclude_diagrams=exclude_diagrams,
        subject=subject,
    )
