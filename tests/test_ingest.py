import json
from unittest.mock import AsyncMock

import pytest

from qbank_server.db import QuestionStore
from qbank_server.ingest import (
    IngestReport,
    compute_question_id,
    ingest_questions,
    load_data_files,
    load_embedding_csv,
    parse_records,
    run_ingest,
)


def raw_record(**overrides):
    record = {
        "year": 2020,
        "paper_code": "CS",
        "question_no": "Q.12",
        "question_text": "Which sort is stable?",
        "options": ["Quick sort", "Heap sort", "Merge sort", "Selection sort"],
        "subject": "Algorithms",
        "chapter": "Sorting",
        "subtopic": "Stability",
        "theoretical_practical": "theoretical",
        "marks": 1,
        "provenance": "gate-2020",
        "confidence": 0.95,
        "correct_answer": "C",
        "has_diagram": False,
    }
    record.update(overrides)
    return record


def test_compute_question_id():
    assert compute_question_id(2020, "CS", "Q.12") == "2020-cs-q.12"
    assert compute_question_id(2019, "CS 1", "Q  3") == "2019-cs-1-q-3"


def test_parse_records_builds_questions():
    report = IngestReport()
    questions = parse_records([raw_record(unknown_field="ignored")], "cs-data.json", report)

    assert report.errors == []
    assert len(questions) == 1
    assert questions[0].question_id == "2020-cs-q.12"
    assert questions[0].correct_option_index == 2


@pytest.mark.parametrize(
    "bad",
    [
        {"year": "2020"},
        {"marks": 1.5},
        {"theoretical_practical": "numerical"},
        {"question_text": ""},
        {"has_diagram": "no"},
    ],
)
def test_invalid_records_are_reported_not_fatal(bad):
    report = IngestReport()
    questions = parse_records([raw_record(**bad), raw_record(question_no="Q.13")], "cs-data.json", report)

    assert [q.question_id for q in questions] == ["2020-cs-q.13"]
    assert len(report.errors) == 1
    assert "cs-data.json" in report.errors[0]


def test_missing_field_is_reported():
    record = raw_record()
    del record["subtopic"]
    report = IngestReport()
    assert parse_records([record, "junk"], "x.json", report) == []
    assert len(report.errors) == 2


def test_load_data_files(tmp_path):
    (tmp_path / "algo-data.json").write_text(json.dumps([raw_record(), raw_record(question_no="Q.2")]))
    (tmp_path / "broken-data.json").write_text("{not json")
    (tmp_path / "notes.json").write_text(json.dumps([raw_record(question_no="Q.99")]))

    report = IngestReport()
    questions = load_data_files(tmp_path, report)

    assert report.files == 2
    assert report.read == 2
    assert len(report.errors) == 1
    assert {q.question_no for q in questions} == {"Q.12", "Q.2"}


async def test_ingest_is_idempotent_and_rebuilds_aggregates(tmp_path):
    (tmp_path / "algo-data.json").write_text(json.dumps([raw_record(), raw_record(question_no="Q.2")]))
    store = AsyncMock(spec=QuestionStore)
    store.insert_questions.return_value = 0
    store.list_questions.return_value = load_data_files(tmp_path)
    store.rebuild_aggregates.return_value = {"subjects": 1, "chapters": 1, "subtopics": 1}

    report = await run_ingest(store, tmp_path)

    assert report.inserted == 0
    assert report.skipped == 2
    assert report.aggregates == {"subjects": 1, "chapters": 1, "subtopics": 1}

    aggregates = store.rebuild_aggregates.await_args.args[0]
    assert aggregates.subjects[0].question_count == 2
    store.commit.assert_awaited_once()


async def test_ingest_questions_counts_inserts(make_question):
    store = AsyncMock(spec=QuestionStore)
    store.insert_questions.return_value = 3
    store.list_questions.return_value = []
    store.rebuild_aggregates.return_value = {}

    report = await ingest_questions(store, [make_question() for _ in range(3)])

    assert report.read == 3
    assert report.inserted == 3
    assert report.skipped == 0


def test_load_embedding_csv(tmp_path):
    path = tmp_path / "embeddings.csv"
    path.write_text(
        "question_id,question_text,vector_embedding\n"
        '2020-cs-q.1,"multi\nline, text","[0.1, 0.2, 0.3]"\n'
        "2020-cs-q.2,short,not-json\n"
        ",missing id,[1.0]\n"
        '2020-cs-q.3,ok,"[1, 2]"\n',
        encoding="utf-8",
    )

    embeddings = load_embedding_csv(path)

    assert embeddings == {
        "2020-cs-q.1": [0.1, 0.2, 0.3],
        "2020-cs-q.3": [1.0, 2.0],
    }
