import itertools

import pytest

from qbank_server.config import settings
from qbank_server.core.errors import InvalidFilterError
from qbank_server.questions.filtering import (
    DEFAULT_SORT,
    Page,
    QuestionFilters,
    SortOrder,
    filter_questions,
    matches,
    parse_sort,
    sort_questions,
)


@pytest.fixture
def corpus(make_question):
    return [
        make_question(question_id="q1", year=2021, marks=1, subject="Algorithms", subtopic="Binary Trees.",
                      question_text="Height of a binary tree"),
        make_question(question_id="q2", year=2023, marks=2, subject="Algorithms", subtopic="binary trees",
                      theoretical_practical="practical"),
        make_question(question_id="q3", year=2019, marks=2, subject="Databases", chapter="SQL",
                      subtopic="Joins", question_text="Natural join semantics"),
        make_question(question_id="q4", year=2023, marks=1, subject="algorithms", subtopic="Graphs"),
        make_question(question_id="q5", year=2020, marks=2, subject="Databases", chapter="Normalization",
                      subtopic="BCNF"),
    ]


def ids(questions):
    return [q.question_id for q in questions]


# ---------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------

def test_numeric_strings_are_accepted():
    filters = QuestionFilters.parse(year="2023", marks=" 2 ")
    assert filters.year == 2023
    assert filters.marks == 2


def test_blank_values_are_absent():
    filters = QuestionFilters.parse(subject="  ", year="", search=None)
    assert filters == QuestionFilters()


@pytest.mark.parametrize("field", ["year", "marks"])
def test_non_numeric_values_raise_invalid_filter(field):
    with pytest.raises(InvalidFilterError) as excinfo:
        QuestionFilters.parse(**{field: "abc"})
    assert field in str(excinfo.value)


def test_unknown_filter_field_rejected():
    with pytest.raises(InvalidFilterError):
        QuestionFilters.parse(colour="red")


def test_parse_sort():
    assert parse_sort(None) is DEFAULT_SORT
    assert parse_sort("  ") is DEFAULT_SORT
    assert parse_sort("marks-asc") is SortOrder.MARKS_ASC
    assert parse_sort("YEAR-ASC") is SortOrder.YEAR_ASC
    assert parse_sort("newest") is None


def test_page_defaults_and_cap():
    assert Page.parse() == Page(offset=0, limit=settings.default_page_limit)
    assert Page.parse(limit=str(settings.max_page_limit + 500)).limit == settings.max_page_limit


@pytest.mark.parametrize("offset, limit", [("-1", None), (None, "0"), ("x", None), (None, "ten")])
def test_page_rejects_bad_values(offset, limit):
    with pytest.raises(InvalidFilterError):
        Page.parse(offset=offset, limit=limit)


# ---------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------

def test_subject_is_case_insensitive(corpus):
    result = filter_questions(corpus, QuestionFilters(subject="ALGORITHMS"), sort=None)
    assert ids(result.items) == ["q1", "q2", "q4"]


def test_search_covers_text_subtopic_and_chapter(corpus):
    assert ids(filter_questions(corpus, QuestionFilters(search="JOIN"), sort=None).items) == ["q3"]
    assert ids(filter_questions(corpus, QuestionFilters(search="bcnf"), sort=None).items) == ["q5"]
    assert ids(filter_questions(corpus, QuestionFilters(search="normaliz"), sort=None).items) == ["q5"]


def test_type_filter(corpus):
    result = filter_questions(corpus, QuestionFilters(type="practical"), sort=None)
    assert ids(result.items) == ["q2"]


def test_subtopic_normalization_insensitivity(corpus):
    dotted = filter_questions(corpus, QuestionFilters(subtopic="Binary Trees."))
    plain = filter_questions(corpus, QuestionFilters(subtopic="binary trees"))
    assert ids(dotted.items) == ids(plain.items) == ["q2", "q1"]


def test_filtering_is_idempotent(corpus):
    filters = QuestionFilters(subject="Algorithms", marks=1)
    first = filter_questions(corpus, filters)
    second = filter_questions(corpus, filters)
    assert (ids(first.items), first.total) == (ids(second.items), second.total)


def test_adding_predicates_never_grows_the_result(corpus):
    predicates = {"subject": "algorithms", "year": 2023, "marks": 1, "search": "question"}
    names = list(predicates)
    for size in range(len(names)):
        for subset in itertools.combinations(names, size):
            smaller = {name: predicates[name] for name in subset}
            for extra in set(names) - set(subset):
                larger = dict(smaller, **{extra: predicates[extra]})
                loose = {q.question_id for q in corpus if matches(q, QuestionFilters(**smaller))}
                strict = {q.question_id for q in corpus if matches(q, QuestionFilters(**larger))}
                assert strict <= loose


# ---------------------------------------------------------------------
# Sorting & pagination
# ---------------------------------------------------------------------

def test_sort_is_stable_for_ties(corpus):
    ordered = sort_questions(corpus, SortOrder.YEAR_DESC)
    assert ids(ordered) == ["q2", "q4", "q1", "q5", "q3"]

    ordered = sort_questions(corpus, SortOrder.MARKS_ASC)
    assert ids(ordered) == ["q1", "q4", "q2", "q3", "q5"]


def test_unrecognized_sort_keeps_corpus_order(corpus):
    result = filter_questions(corpus, QuestionFilters(), sort=parse_sort("bogus"))
    assert ids(result.items) == ids(corpus)


def test_pagination_reconstructs_full_list(corpus):
    full = filter_questions(corpus, QuestionFilters(), sort=SortOrder.YEAR_ASC, page=Page(limit=1000))
    collected = []
    offset = 0
    while True:
        page = filter_questions(corpus, QuestionFilters(), sort=SortOrder.YEAR_ASC, page=Page(offset=offset, limit=2))
        collected.extend(page.items)
        if not page.has_more:
            break
        offset += 2

    assert ids(collected) == ids(full.items)
    assert len(set(ids(collected))) == len(corpus)


def test_offset_past_end_is_empty(corpus):
    result = filter_questions(corpus, QuestionFilters(), page=Page(offset=50, limit=10))
    assert result.items == []
    assert result.total == 5
    assert result.has_more is False


def test_year_filter_pagination_scenario(make_question):
    corpus = [make_question(year=2023, marks=m) for m in range(1, 6)]
    corpus += [make_question(year=2022) for _ in range(3)]

    result = filter_questions(
        corpus,
        QuestionFilters.parse(year="2023"),
        sort=SortOrder.YEAR_DESC,
        page=Page.parse(offset="0", limit="2"),
    )

    assert len(result.items) == 2
    assert result.total == 5
    assert result.pagination() == {"total": 5, "limit": 2, "offset": 0, "hasMore": True}
