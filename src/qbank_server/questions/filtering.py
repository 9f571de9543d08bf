"""
Question Filter Engine

Applies optional predicates to a question corpus and returns a stably
sorted, paginated slice together with the total match count.

Predicates
----------
- subject   : case-insensitive exact match
- year      : exact numeric match
- marks     : exact numeric match
- type      : exact match on `theoretical_practical`
- subtopic  : match on normalization key (never raw equality)
- search    : case-insensitive substring of question text, subtopic or chapter

All supplied predicates are AND-combined. An absent predicate always matches.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..config import settings
from ..core.errors import InvalidFilterError
from .models import Question
from .normalization import normalize

logger = logging.getLogger("qbank.filtering")


# ---------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------

class SortOrder(str, Enum):
    YEAR_DESC = "year-desc"
    YEAR_ASC = "year-asc"
    MARKS_DESC = "marks-desc"
    MARKS_ASC = "marks-asc"

    @property
    def key(self) -> str:
        return self.value.split("-", 1)[0]

    @property
    def descending(self) -> bool:
        return self.value.endswith("-desc")


DEFAULT_SORT = SortOrder.YEAR_DESC


def parse_sort(raw: Optional[str]) -> Optional[SortOrder]:
    """
    Map a sort parameter onto a SortOrder.

    Missing means the default (`year-desc`). An unrecognized value means
    no sorting at all; it is not an error.
    """
    if raw is None or not raw.strip():
        return DEFAULT_SORT
    try:
        return SortOrder(raw.strip().lower())
    except ValueError:
        logger.debug("Ignoring unrecognized sort value %r", raw)
        return None


# ---------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------

def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _parse_int(field: str, value: Any) -> Optional[int]:
    value = _blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidFilterError(f"'{field}' must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    raise InvalidFilterError(f"'{field}' must be an integer, got {value!r}")


def _as_invalid_filter(exc: ValidationError) -> InvalidFilterError:
    """Unwrap the first validator error pydantic collected."""
    messages = []
    for err in exc.errors():
        original = err.get("ctx", {}).get("error")
        if isinstance(original, InvalidFilterError):
            messages.append(str(original))
        else:
            location = ".".join(str(part) for part in err.get("loc", ()))
            messages.append(f"'{location}': {err.get('msg', 'invalid value')}")
    return InvalidFilterError("; ".join(messages))


class QuestionFilters(BaseModel):
    """
    The set of optional predicates for one filter/search request.

    Numeric predicates accept ints or numeric strings; anything else raises
    InvalidFilterError instead of being coerced.
    """

    subject: Optional[str] = None
    year: Optional[int] = None
    marks: Optional[int] = None
    type: Optional[str] = None
    subtopic: Optional[str] = None
    search: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("subject", "type", "subtopic", "search", mode="before")
    @classmethod
    def _strip_text(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("year", "marks", mode="before")
    @classmethod
    def _strict_int(cls, v: Any, info) -> Optional[int]:
        return _parse_int(info.field_name, v)

    @classmethod
    def parse(cls, **raw: Any) -> "QuestionFilters":
        """
        Build filters from raw request values.

        Raises InvalidFilterError (not pydantic's ValidationError) so the
        HTTP layer can answer 400 with the field-specific message.
        """
        try:
            return cls(**raw)
        except ValidationError as exc:
            raise _as_invalid_filter(exc) from exc

    def echo(self) -> Dict[str, Any]:
        return self.model_dump()


def matches(question: Question, filters: QuestionFilters) -> bool:
    """Return True if `question` satisfies every supplied predicate."""
    if filters.subject is not None and question.subject.lower() != filters.subject.lower():
        return False
    if filters.year is not None and question.year != filters.year:
        return False
    if filters.marks is not None and question.marks != filters.marks:
        return False
    if filters.type is not None and question.theoretical_practical != filters.type:
        return False
    if filters.subtopic is not None and normalize(question.subtopic) != normalize(filters.subtopic):
        return False
    if filters.search is not None:
        term = filters.search.lower()
        haystacks = (question.question_text, question.subtopic, question.chapter)
        if not any(term in (text or "").lower() for text in haystacks):
            return False
    return True


# ---------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------

class Page(BaseModel):
    """Offset/limit window. Limits above `max_page_limit` are capped."""

    offset: int = 0
    limit: int = Field(default_factory=lambda: settings.default_page_limit)

    model_config = ConfigDict(frozen=True)

    @field_validator("offset", mode="before")
    @classmethod
    def _check_offset(cls, v: Any) -> int:
        offset = _parse_int("offset", v)
        if offset is None:
            return 0
        if offset < 0:
            raise InvalidFilterError("'offset' must be >= 0")
        return offset

    @field_validator("limit", mode="before")
    @classmethod
    def _check_limit(cls, v: Any) -> int:
        limit = _parse_int("limit", v)
        if limit is None:
            return settings.default_page_limit
        if limit < 1:
            raise InvalidFilterError("'limit' must be >= 1")
        return min(limit, settings.max_page_limit)

    @classmethod
    def parse(cls, offset: Any = None, limit: Any = None) -> "Page":
        try:
            return cls(offset=offset, limit=limit)
        except ValidationError as exc:
            raise _as_invalid_filter(exc) from exc


class FilterResult(BaseModel):
    items: List[Question]
    total: int
    offset: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    def pagination(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "hasMore": self.has_more,
        }


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def sort_questions(
    questions: Sequence[Question],
    sort: Optional[SortOrder],
) -> List[Question]:
    """
    Stable sort by the chosen key; equal keys keep corpus order.

    `sorted()` is stable even with `reverse=True`, so descending order
    does not flip ties.
    """
    if sort is None:
        return list(questions)
    return sorted(
        questions,
        key=lambda q: getattr(q, sort.key),
        reverse=sort.descending,
    )


def filter_questions(
    corpus: Sequence[Question],
    filters: QuestionFilters,
    sort: Optional[SortOrder] = DEFAULT_SORT,
    page: Optional[Page] = None,
) -> FilterResult:
    """
    Filter, sort and paginate `corpus`.

    Returns the page slice and `total`, the number of matches before slicing.
    """
    page = page or Page()

    matched = [q for q in corpus if matches(q, filters)]
    ordered = sort_questions(matched, sort)

    logger.debug(
        "Filtered %d/%d questions (sort=%s offset=%d limit=%d)",
        len(matched),
        len(corpus),
        sort.value if sort else None,
        page.offset,
        page.limit,
    )

    return FilterResult(
        items=ordered[page.offset : page.offset + page.limit],
        total=len(matched),
        offset=page.offset,
        limit=page.limit,
    )
