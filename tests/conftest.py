import itertools
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from qbank_server.api.dependencies import get_api_key_store, get_question_store
from qbank_server.auth.api_key import get_usage_recorder
from qbank_server.db import ApiKeyStore, QuestionStore
from qbank_server.db.api_keys import UsageStatus, VerifiedApiKey
from qbank_server.main import create_app
from qbank_server.questions.models import Question

_ids = itertools.count(1)


def build_question(**overrides) -> Question:
    n = next(_ids)
    fields = {
        "question_id": f"2020-cs-q.{n}",
        "question_no": f"Q.{n}",
        "paper_code": "CS",
        "question_text": f"Question number {n}",
        "options": None,
        "correct_answer": "",
        "year": 2020,
        "marks": 1,
        "subject": "Algorithms",
        "chapter": "Sorting",
        "subtopic": "Merge Sort",
        "theoretical_practical": "theoretical",
        "has_diagram": False,
        "provenance": "gate-2020",
        "confidence": 1.0,
    }
    fields.update(overrides)
    return Question(**fields)


@pytest.fixture
def make_question():
    return build_question


# ---------------------------------------------------------------------
# Application fixtures
# ---------------------------------------------------------------------

VALID_KEY = "gate_live_" + "ab" * 32


def usage_status(requests_today=0, limit=1000):
    return UsageStatus(
        requests_today=requests_today,
        remaining=max(0, limit - requests_today),
        limit=limit,
        is_limited=requests_today >= limit,
        reset_time=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.fixture
def question_store():
    store = AsyncMock(spec=QuestionStore)
    store.list_questions.return_value = []
    return store


@pytest.fixture
def key_store():
    store = AsyncMock(spec=ApiKeyStore)

    async def _verify(raw_key):
        if raw_key == VALID_KEY:
            return VerifiedApiKey(key_id=7, owner_id="owner-1", daily_limit=1000)
        return None

    store.verify.side_effect = _verify
    store.usage_today.return_value = usage_status()
    return store


@pytest.fixture
def usage_recorder():
    return AsyncMock()


@pytest.fixture
def app(question_store, key_store, usage_recorder):
    app = create_app()
    app.dependency_overrides[get_question_store] = lambda: question_store
    app.dependency_overrides[get_api_key_store] = lambda: key_store

    async def _record(key, endpoint, method):
        await usage_recorder(key, endpoint, method)

    app.dependency_overrides[get_usage_recorder] = lambda: _record
    return app


@pytest.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def valid_key():
    return VALID_KEY


@pytest.fixture
def api_headers(valid_key):
    return {"X-API-Key": valid_key}
