from qbank_server.questions.aggregates import ChapterAggregate, SubjectAggregate, SubtopicAggregate


async def test_internal_questions_need_no_key(async_client, question_store, make_question, usage_recorder):
    question_store.list_questions.return_value = [make_question(question_id="q1")]

    resp = await async_client.get("/internal/questions")

    assert resp.status_code == 200
    assert resp.json()["pagination"]["total"] == 1
    usage_recorder.assert_not_awaited()


async def test_internal_questions_reject_bad_marks(async_client):
    resp = await async_client.get("/internal/questions", params={"marks": "two"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_filter"


async def test_get_question(async_client, question_store, make_question):
    question_store.get_question.return_value = make_question(question_id="2020-cs-q.1")

    resp = await async_client.get("/internal/questions/2020-cs-q.1")

    assert resp.status_code == 200
    assert resp.json()["data"]["questionId"] == "2020-cs-q.1"


async def test_get_question_not_found(async_client, question_store):
    question_store.get_question.return_value = None

    resp = await async_client.get("/internal/questions/missing")

    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


async def test_internal_similar(async_client, question_store, make_question):
    target = make_question(question_id="t")
    question_store.get_question.return_value = target
    question_store.list_questions.return_value = [target, make_question(question_id="other")]

    resp = await async_client.get("/internal/questions/t/similar", params={"useVectors": "true"})

    body = resp.json()
    assert body["algorithm"] == "graph"
    assert [q["questionId"] for q in body["data"]] == ["other"]


async def test_subject_aggregates(async_client, question_store):
    question_store.list_subjects.return_value = [
        SubjectAggregate(name="Algorithms", icon="⚡", question_count=3),
    ]
    resp = await async_client.get("/internal/subjects")
    assert resp.json() == [
        {"name": "Algorithms", "description": None, "icon": "⚡", "questionCount": 3},
    ]


async def test_chapters_and_subtopics(async_client, question_store):
    question_store.chapters_by_subject.return_value = [
        ChapterAggregate(name="Sorting", subject="Algorithms", question_count=2),
    ]
    question_store.subtopics_by_chapter.return_value = [
        SubtopicAggregate(name="Merge Sort", chapter="Sorting", subject="Algorithms", question_count=2),
    ]

    chapters = await async_client.get("/internal/subjects/Algorithms/chapters")
    subtopics = await async_client.get("/internal/chapters/Sorting/subtopics")

    assert chapters.json()[0]["questionCount"] == 2
    assert subtopics.json()[0]["name"] == "Merge Sort"
    question_store.chapters_by_subject.assert_awaited_once_with("Algorithms")
    question_store.subtopics_by_chapter.assert_awaited_once_with("Sorting")


async def test_subtopic_names_are_unique_display_forms(async_client, question_store, make_question):
    question_store.list_questions.return_value = [
        make_question(subtopic="Binary Trees."),
        make_question(subtopic="binary trees"),
        make_question(subtopic="dns"),
    ]

    resp = await async_client.get("/internal/subtopics", params={"subject": "Computer Networks"})

    assert resp.json() == ["Binary Trees", "DNS"]
    question_store.list_questions.assert_awaited_once_with(subject="Computer Networks")
