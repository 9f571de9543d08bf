"""
Question Embedding Client

Produces `vector_embedding` values for stored questions via an
OpenAI-compatible `/embeddings` endpoint. Only the offline back-fill
(`scripts/update_embeddings.py`) calls it; request handlers rank with
whatever vectors are already stored and fall back to metadata otherwise.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence, Optional
import logging
import httpx

from ..config import settings
from ..questions.models import Question

logger = logging.getLogger("qbank.embedder")

DEFAULT_BATCH_SIZE = 20


class EmbeddingError(RuntimeError):
    """The embeddings endpoint failed or answered with an unusable body."""


def question_embedding_text(question: Question) -> str:
    """
    Classification path on the first line, then the stem, then one line per option.
    """
    lines = [
        f"{question.subject} / {question.chapter} / {question.subtopic}",
        question.question_text,
        *(question.options or []),
    ]
    return "\n".join(line for line in lines if line)


class Embedder:
    """
    Batches question texts into embedding requests.

    Connection settings default to the `openai_*` and `embedding_*` fields of
    `Settings`; tests pass them explicitly.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        dimensions: Optional[int] = None,
        timeout: float = 60.0,
    ) -> None:
        root = (base_url or settings.openai_base_url).rstrip("/")
        self.endpoint = f"{root}/embeddings"
        self.model = model or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimensions
        self.timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {api_key or settings.openai_api_key.get_secret_value()}"
        }

    async def embed(
        self,
        texts: Sequence[str],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> List[List[float]]:
        """
        Embed `texts` in order, `batch_size` inputs per request.

        Any failed batch aborts the whole call with `EmbeddingError`; vectors
        from earlier batches are discarded.
        """
        if not texts:
            return []

        out: List[List[float]] = []
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for offset in range(0, len(texts), batch_size):
                chunk = list(texts[offset : offset + batch_size])
                out.extend(await self._embed_chunk(client, chunk))
        return out

    async def embed_questions(
        self,
        questions: Sequence[Question],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> Dict[str, List[float]]:
        """Map each question id to the vector of its embedding text."""
        vectors = await self.embed(
            [question_embedding_text(q) for q in questions],
            batch_size=batch_size,
        )
        return dict(zip((q.question_id for q in questions), vectors))

    async def _embed_chunk(
        self,
        client: httpx.AsyncClient,
        chunk: List[str],
    ) -> List[List[float]]:
        body = {"model": self.model, "input": chunk, "dimensions": self.dimensions}
        try:
            response = await client.post(self.endpoint, json=body, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "Embeddings call for %d question(s) failed: %s: %s",
                len(chunk),
                type(exc).__name__,
                exc,
            )
            raise EmbeddingError(f"Embeddings call failed: {type(exc).__name__}") from exc

        vectors = _parse_vectors(response.json())
        if len(vectors) != len(chunk):
            raise EmbeddingError(
                f"Sent {len(chunk)} inputs but received {len(vectors)} vectors."
            )
        return vectors


def _parse_vectors(body: Any) -> List[List[float]]:
    items = body.get("data") if isinstance(body, dict) else None
    if not isinstance(items, list):
        raise EmbeddingError("Embeddings response has no 'data' list.")

    vectors: List[List[float]] = []
    for position, item in enumerate(items):
        values = item.get("embedding") if isinstance(item, dict) else None
        if not isinstance(values, list) or any(
            not isinstance(v, (int, float)) for v in values
        ):
            raise EmbeddingError(f"Item {position} is not a numeric vector.")
        vectors.append([float(v) for v in values])
    return vectors
