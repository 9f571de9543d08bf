from datetime import datetime, timedelta, timezone

import pytest

from qbank_server.core.errors import UpstreamUnavailableError
from qbank_server.db.api_keys import UsageStatus


@pytest.fixture
def corpus(make_question):
    return [
        make_question(question_id="2021-cs-q.1", year=2021, marks=1, subtopic="Binary Trees."),
        make_question(question_id="2023-cs-q.2", year=2023, marks=2, subtopic="binary trees",
                      options=["a", "b"], correct_answer="b"),
        make_question(question_id="2019-cs-q.3", year=2019, marks=2, subtopic="Graphs"),
    ]


# ---------------------------------------------------------------------
# Access gate
# ---------------------------------------------------------------------

async def test_missing_key_is_rejected_before_any_query(async_client, question_store):
    resp = await async_client.get("/v1/questions")

    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "unauthorized"
    assert "API key is required" in body["detail"]
    question_store.list_questions.assert_not_awaited()


async def test_invalid_key_is_rejected(async_client):
    resp = await async_client.get("/v1/questions", headers={"X-API-Key": "gate_live_nope"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid or inactive API key"


async def test_bearer_key_is_accepted(async_client, valid_key, usage_recorder):
    resp = await async_client.get("/v1/subjects", headers={"Authorization": f"Bearer {valid_key}"})
    assert resp.status_code == 200
    usage_recorder.assert_awaited_once()


async def test_quota_exhausted_returns_429(async_client, api_headers, key_store, usage_recorder):
    key_store.usage_today.return_value = UsageStatus(
        requests_today=1000,
        remaining=0,
        limit=1000,
        is_limited=True,
        reset_time=datetime.now(timezone.utc) + timedelta(hours=2),
    )

    resp = await async_client.get("/v1/questions", headers=api_headers)

    assert resp.status_code == 429
    assert resp.json()["error"] == "rate_limited"
    assert 0 < int(resp.headers["Retry-After"]) <= 2 * 3600
    usage_recorder.assert_not_awaited()


async def test_successful_call_records_usage(async_client, api_headers, usage_recorder):
    resp = await async_client.get("/v1/questions", headers=api_headers)

    assert resp.status_code == 200
    usage_recorder.assert_awaited_once()
    key, endpoint, method = usage_recorder.await_args.args
    assert key.key_id == 7
    assert endpoint == "/v1/questions"
    assert method == "GET"


# ---------------------------------------------------------------------
# /v1/questions
# ---------------------------------------------------------------------

async def test_list_questions_shape(async_client, api_headers, question_store, corpus):
    question_store.list_questions.return_value = corpus

    resp = await async_client.get("/v1/questions", headers=api_headers, params={"limit": "2"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert [q["questionId"] for q in body["data"]] == ["2023-cs-q.2", "2021-cs-q.1"]
    assert body["data"][0]["correctOptionIndex"] == 1
    assert "vector_embedding" not in body["data"][0]
    assert body["pagination"] == {"total": 3, "limit": 2, "offset": 0, "hasMore": True}
    assert body["filters"]["sortBy"] == "year-desc"


async def test_list_questions_filters(async_client, api_headers, question_store, corpus):
    question_store.list_questions.return_value = corpus

    resp = await async_client.get(
        "/v1/questions",
        headers=api_headers,
        params={"subject": "Algorithms", "subtopic": "BINARY TREES", "sort": "year-asc"},
    )

    body = resp.json()
    assert [q["questionId"] for q in body["data"]] == ["2021-cs-q.1", "2023-cs-q.2"]
    assert body["filters"]["subject"] == "Algorithms"
    assert body["filters"]["subtopic"] == "BINARY TREES"
    question_store.list_questions.assert_awaited_once_with(subject="Algorithms")


async def test_non_numeric_year_is_400(async_client, api_headers, question_store):
    resp = await async_client.get("/v1/questions", headers=api_headers, params={"year": "abc"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "invalid_filter"
    assert "year" in body["detail"]
    question_store.list_questions.assert_not_awaited()


async def test_limit_above_maximum_is_capped(async_client, api_headers):
    resp = await async_client.get("/v1/questions", headers=api_headers, params={"limit": "5000"})
    assert resp.json()["pagination"]["limit"] == 1000


async def test_store_outage_is_503(async_client, api_headers, question_store):
    question_store.list_questions.side_effect = UpstreamUnavailableError("connection refused")

    resp = await async_client.get("/v1/questions", headers=api_headers)

    assert resp.status_code == 503
    assert resp.json()["error"] == "upstream_unavailable"
    assert "refused" not in resp.json()["detail"]


# ---------------------------------------------------------------------
# /v1/questions/{id}/similar
# ---------------------------------------------------------------------

async def test_similar_questions(async_client, api_headers, question_store, corpus):
    target = corpus[0]
    question_store.get_question.return_value = target
    question_store.list_questions.return_value = corpus

    resp = await async_client.get(f"/v1/questions/{target.question_id}/similar", headers=api_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["questionId"] == target.question_id
    assert body["algorithm"] == "graph"
    assert body["count"] == 2
    assert target.question_id not in [q["questionId"] for q in body["data"]]
    assert body["data"][0]["similarityReason"] == "Same subtopic"
    assert "similarityScore" in body["data"][0]


async def test_similar_unknown_question_is_empty(async_client, api_headers, question_store):
    question_store.get_question.return_value = None

    resp = await async_client.get("/v1/questions/nope/similar", headers=api_headers)

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "questionId": "nope",
        "algorithm": "graph",
        "data": [],
        "count": 0,
    }


async def test_similar_limit_validation(async_client, api_headers, question_store, corpus):
    question_store.get_question.return_value = corpus[0]
    question_store.list_questions.return_value = corpus

    resp = await async_client.get("/v1/questions/x/similar", headers=api_headers, params={"limit": "0"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"

    resp = await async_client.get(
        "/v1/questions/x/similar",
        headers=api_headers,
        params={"limit": "1", "useVectors": "false"},
    )
    assert resp.json()["count"] == 1


# ---------------------------------------------------------------------
# /v1/subjects
# ---------------------------------------------------------------------

async def test_subjects_catalog(async_client, api_headers):
    resp = await async_client.get("/v1/subjects", headers=api_headers)

    body = resp.json()
    assert body["success"] is True
    assert len(body["data"]) == 11
    assert body["data"][0] == {
        "name": "Algorithms",
        "fileName": "Algorithms",
        "description": "Sorting, searching, graph algorithms, and complexity analysis",
        "icon": "⚡",
    }
