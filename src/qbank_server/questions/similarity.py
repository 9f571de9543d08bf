"""
Similar-Question Ranking

Two interchangeable ranking strategies share one signature,
`(target, candidates, limit) -> List[SimilarQuestion]`:

- GRAPH  : metadata-overlap scoring on subtopic / chapter / subject with
           recency and marks boosts. Always available.
- VECTOR : cosine similarity between stored embeddings plus a flat
           same-subject bonus. Only candidates with a comparable embedding
           qualify; the rest are skipped with a warning.

`find_similar()` layers the fallback protocol on top:

    START -> TRY_VECTOR (if requested) -> results?  -> "vector"
                                       -> none/err  -> TRY_GRAPH -> "graph"
    START -> TRY_GRAPH (vectors not requested)      -> "graph"

There is no failing terminal state. A missing target yields an empty
"graph" result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Protocol, Sequence

import numpy as np

from ..config import settings
from .models import Question, SimilarQuestion
from .normalization import normalize

logger = logging.getLogger("qbank.similarity")


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

SUBTOPIC_WEIGHT = 5.0
CHAPTER_WEIGHT = 3.0
SUBJECT_WEIGHT = 1.0

RECENCY_BOOST = 1.2
SAME_MARKS_BOOST = 1.1

VECTOR_SUBJECT_BONUS = 0.1

REASON_SUBTOPIC = "Same subtopic"
REASON_CHAPTER = "Same chapter"
REASON_SUBJECT = "Same subject"
REASON_RELATED = "Related topic"
REASON_VECTOR = "Vector similarity"


class Strategy(str, Enum):
    GRAPH = "graph"
    VECTOR = "vector"


class QuestionSource(Protocol):
    """The slice of the record store the similarity engine reads from."""

    async def get_question(self, question_id: str) -> "Question | None": ...

    async def list_questions(
        self,
        subject: "str | None" = None,
        include_embeddings: bool = False,
    ) -> List[Question]: ...


@dataclass(frozen=True)
class SimilarityResult:
    algorithm: Strategy
    items: List[SimilarQuestion] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)


# ---------------------------------------------------------------------
# Metadata-overlap scoring
# ---------------------------------------------------------------------

def metadata_score(target: Question, candidate: Question) -> float:
    """
    Additive base score, then boosts applied one after the other.
    """
    score = 0.0
    if normalize(candidate.subtopic) == normalize(target.subtopic):
        score += SUBTOPIC_WEIGHT
    if candidate.chapter == target.chapter:
        score += CHAPTER_WEIGHT
    if candidate.subject == target.subject:
        score += SUBJECT_WEIGHT

    if abs(candidate.year - target.year) <= settings.recency_window_years:
        score *= RECENCY_BOOST
    if candidate.marks == target.marks:
        score *= SAME_MARKS_BOOST
    return score


def similarity_reason(target: Question, candidate: Question) -> str:
    """First matching condition wins, regardless of the numeric score."""
    if normalize(candidate.subtopic) == normalize(target.subtopic):
        return REASON_SUBTOPIC
    if candidate.chapter == target.chapter:
        return REASON_CHAPTER
    if candidate.subject == target.subject:
        return REASON_SUBJECT
    return REASON_RELATED


def rank_by_metadata(
    target: Question,
    candidates: Sequence[Question],
    limit: int,
) -> List[SimilarQuestion]:
    scored = [
        (metadata_score(target, candidate), candidate)
        for candidate in candidates
        if candidate.question_id != target.question_id
    ]
    # Score descending, then newer year first.
    scored.sort(key=lambda pair: (-pair[0], -pair[1].year))

    return [
        SimilarQuestion.from_question(
            candidate,
            score=score,
            reason=similarity_reason(target, candidate),
        )
        for score, candidate in scored[:limit]
    ]


# ---------------------------------------------------------------------
# Embedding cosine similarity
# ---------------------------------------------------------------------

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Raises ValueError on mismatched dimensions or a zero-length vector.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(
            f"Embedding dimensions differ: {va.shape[0]} vs {vb.shape[0]}"
        )

    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0.0:
        raise ValueError("Cannot compare a zero-length embedding.")
    return float(np.dot(va, vb) / norm)


def rank_by_vectors(
    target: Question,
    candidates: Sequence[Question],
    limit: int,
) -> List[SimilarQuestion]:
    if not target.has_embedding:
        return []

    scored = []
    for candidate in candidates:
        if candidate.question_id == target.question_id or not candidate.has_embedding:
            continue
        try:
            score = cosine_similarity(target.vector_embedding, candidate.vector_embedding)
        except ValueError as exc:
            logger.warning("Skipping %s in vector ranking: %s", candidate.question_id, exc)
            continue
        # Not clamped: the bonus may push a score past 1.0.
        if candidate.subject == target.subject:
            score += VECTOR_SUBJECT_BONUS
        scored.append((score, candidate))

    scored.sort(key=lambda pair: -pair[0])

    return [
        SimilarQuestion.from_question(candidate, score=score, reason=REASON_VECTOR)
        for score, candidate in scored[:limit]
    ]


# ---------------------------------------------------------------------
# Dispatch & fallback
# ---------------------------------------------------------------------

Ranker = Callable[[Question, Sequence[Question], int], List[SimilarQuestion]]

RANKERS: Dict[Strategy, Ranker] = {
    Strategy.GRAPH: rank_by_metadata,
    Strategy.VECTOR: rank_by_vectors,
}


def rank(
    strategy: Strategy,
    target: Question,
    candidates: Sequence[Question],
    limit: int,
) -> List[SimilarQuestion]:
    return RANKERS[strategy](target, candidates, limit)


def rank_with_fallback(
    target: Question,
    candidates: Sequence[Question],
    limit: int,
    prefer_vectors: bool = True,
) -> SimilarityResult:
    """
    Run the fallback protocol over an already-fetched candidate pool.
    """
    if prefer_vectors:
        try:
            items = rank(Strategy.VECTOR, target, candidates, limit)
        except Exception:
            logger.warning(
                "Vector ranking failed for %s; falling back to graph scoring",
                target.question_id,
                exc_info=True,
            )
        else:
            if items:
                return SimilarityResult(algorithm=Strategy.VECTOR, items=items)
            logger.info(
                "No vector matches for %s; falling back to graph scoring",
                target.question_id,
            )

    return SimilarityResult(
        algorithm=Strategy.GRAPH,
        items=rank(Strategy.GRAPH, target, candidates, limit),
    )


async def find_similar(
    store: QuestionSource,
    question_id: str,
    limit: int | None = None,
    prefer_vectors: bool = True,
) -> SimilarityResult:
    """
    Rank the corpus against the question identified by `question_id`.

    Parameters
    ----------
    store : QuestionSource
        Record store used to fetch the target and the candidate pool.
    question_id : str
        Target question. An unknown id yields an empty "graph" result.
    limit : int | None
        Maximum number of results; defaults to `settings.default_similar_limit`.
    prefer_vectors : bool
        Attempt embedding similarity first.

    Returns
    -------
    SimilarityResult
        Ranked items and the strategy that actually produced them.
    """
    if limit is None:
        limit = settings.default_similar_limit

    target = await store.get_question(question_id)
    if target is None:
        logger.warning("Similarity requested for unknown question %s", question_id)
        return SimilarityResult(algorithm=Strategy.GRAPH)

    candidates = await store.list_questions(include_embeddings=True)
    return rank_with_fallback(target, candidates, limit, prefer_vectors)
