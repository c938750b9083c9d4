from conftest import make_question, make_set, stored
from core.schemas import QuestionSet
from library import service


def sets() -> list[QuestionSet]:
    rows = [
        make_set("1", title="French Revolution", subject="history", difficulty="hard"),
        make_set("2", title="Cell biology", subject="biology", difficulty="easy"),
        make_set("3", title="World capitals", subject="geography", difficulty="easy"),
        make_set("4", title="Napoleon", subject="history", difficulty="medium"),
    ]
    return [QuestionSet.model_validate(r) for r in rows]


def ids(items: list[QuestionSet]) -> list[str]:
    return [s.id for s in items]


def test_filter_by_difficulty():
    assert ids(service.filter_sets(sets(), difficulty="easy")) == ["2", "3"]


def test_filter_by_subject():
    assert ids(service.filter_sets(sets(), subject="history")) == ["1", "4"]


def test_search_matches_title_or_subject_case_insensitively():
    assert ids(service.filter_sets(sets(), search="NAPO")) == ["4"]
    assert ids(service.filter_sets(sets(), search="bio")) == ["2"]


def test_filters_combine():
    assert ids(service.filter_sets(sets(), search="o", difficulty="hard", subject="history")) == ["1"]
    assert service.filter_sets(sets(), difficulty="hard", subject="biology") == []


def test_all_means_no_filter():
    assert len(service.filter_sets(sets(), difficulty="all", subject="all")) == 4


def test_pagination_clamps_page():
    items = sets() * 4  # 16 sets
    page = service.paginate(items, 3, 6)
    assert (page.page, page.total_pages, len(page.items)) == (3, 3, 4)
    assert service.paginate(items, 99, 6).page == 3
    assert service.paginate(items, -1, 6).page == 1
    empty = service.paginate([], 2, 6)
    assert (empty.page, empty.total_pages, empty.items) == (1, 0, [])


def test_unique_subjects_keep_first_seen_order():
    rows = sets() + [QuestionSet.model_validate(make_set("5", subject=""))]
    assert service.unique_subjects(rows) == ["history", "biology", "geography"]


def test_labels():
    assert service.type_label("TRUE_FALSE") == "True/False"
    assert service.type_label("CUSTOM") == "CUSTOM"
    assert service.difficulty_label(None) == "Unrated"


def test_library_page_filters_and_caches(signed_in, backend, state_store):
    rows = [make_set(str(i), title=f"Set {i}", subject="history" if i % 2 else "math") for i in range(1, 10)]
    backend.ok("GET", "/questions/sets", rows)

    resp = signed_in.get("/library", params={"subject": "history", "page": 5})

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 5
    assert body["total_pages"] == 1
    assert body["page"] == 1
    assert [item["id"] for item in body["items"]] == ["1", "3", "5", "7", "9"]
    assert body["subjects"] == ["history", "math"]
    assert body["items"][0]["type_label"] == "Multiple choice"
    assert len(stored(state_store, "quizSets")) == 9
    assert backend.calls("GET", "/questions/sets")[0].url.params["userId"] == "u-1"


def test_library_load_failure_is_reported(signed_in, backend):
    backend.add("GET", "/questions/sets", (500, {"message": "db down"}))
    resp = signed_in.get("/library")
    assert resp.status_code == 502
    assert resp.json()["notifications"][0]["message"] == "Could not load your question sets."


def test_delete_removes_from_cache(signed_in, backend, state_store):
    backend.ok("GET", "/questions/sets", [make_set("1"), make_set("2")])
    signed_in.get("/library")
    backend.ok("DELETE", "/questions/sets/1", None)

    resp = signed_in.delete("/library/1")

    assert resp.status_code == 200
    assert resp.json()["notifications"][0]["level"] == "success"
    assert [row["id"] for row in stored(state_store, "quizSets")] == ["2"]


def test_practice_set_without_questions_is_rejected(signed_in, backend, state_store):
    backend.ok("GET", "/questions/sets/1", make_set("1", questions=[]))
    resp = signed_in.post("/library/1/practice")
    assert resp.status_code == 422
    assert resp.json()["detail"] == "This question set has no questions."
    assert stored(state_store, "practiceSession") is None


def test_practice_set_starts_bound_session(signed_in, backend, state_store):
    backend.ok("GET", "/questions/sets/1", make_set("1", questions=[make_question("q1", "Capital of France?")]))
    backend.ok("POST", "/practice/start", {"id": "remote-9"})

    resp = signed_in.post("/library/1/practice")

    assert resp.status_code == 200
    body = resp.json()
    assert body["redirect"] == "/practice"
    assert body["notifications"][0]["message"] == "Starting practice: Geography"
    assert body["question"]["question"] == "Capital of France?"
    session = stored(state_store, "practiceSession")
    assert session["question_set_id"] == "1"
    assert session["remote_session_id"] == "remote-9"
    assert stored(state_store, "generatedQuestions")[0]["questionId"] == "q1"


def test_library_falls_back_to_last_loaded_sets(signed_in, backend):
    backend.add(
        "GET",
        "/questions/sets",
        (200, {"success": True, "data": [make_set("1", subject="history"), make_set("2", subject="math")]}),
        (503, {"message": "maintenance"}),
    )
    signed_in.get("/library")

    resp = signed_in.get("/library", params={"subject": "math"})

    assert resp.status_code == 200
    body = resp.json()
    assert [item["id"] for item in body["items"]] == ["2"]
    assert body["all_count"] == 2
    assert body["notifications"][0]["level"] == "warning"
