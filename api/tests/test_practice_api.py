import json

import pytest

from conftest import make_question, make_set, stored


@pytest.fixture
def practicing(signed_in, state_store):
    """
    A signed-in browser with two generated questions.
    """
    questions = [
        {"id": 1, "question": "Capital of France?", "options": ["Paris", "Rome"], "correctAnswer": ["Paris"],
         "type": "multiple-choice"},
        {"id": 2, "question": "Primes?", "options": ["2", "3", "4"], "correctAnswer": ["2", "3"],
         "type": "multiple-response", "explanation": "4 = 2 x 2"},
    ]
    browser_id = next(b for (b, _) in state_store)
    state_store[(browser_id, "generatedQuestions")] = json.dumps(questions)
    return signed_in


def test_practice_requires_generated_questions(signed_in):
    resp = signed_in.get("/practice")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Please generate questions before practicing."


def test_practice_requires_sign_in(client):
    assert client.post("/practice/check").status_code == 401


def test_full_practice_run(practicing, state_store):
    view = practicing.get("/practice").json()
    assert view["question"]["number"] == 1
    assert "correct_answer" not in view["question"]
    assert view["summary"]["total"] == 2

    warn = practicing.post("/practice/check").json()
    assert warn["notifications"][0]["level"] == "warning"

    practicing.post("/practice/select", json={"option": "Paris"})
    checked = practicing.post("/practice/check").json()
    assert checked["question"]["is_correct"] is True
    assert checked["summary"]["score"] == 1

    again = practicing.post("/practice/check")
    assert again.status_code == 409

    moved = practicing.post("/practice/next").json()
    assert moved["question"]["allows_multiple"] is True
    practicing.post("/practice/select", json={"option": "2"})
    practicing.post("/practice/select", json={"option": "4"})
    wrong = practicing.post("/practice/check").json()
    assert wrong["question"]["is_correct"] is False
    assert wrong["question"]["explanation"] == "4 = 2 x 2"
    assert wrong["summary"]["accuracy"] == "50.0"

    back = practicing.post("/practice/prev").json()
    assert back["question"]["selected"] == ["Paris"]
    assert back["question"]["checked"] is True
    practicing.post("/practice/next")

    done = practicing.post("/practice/next").json()
    assert done["summary"]["completed"] is True
    assert done["notifications"][0]["message"].startswith("Practice complete! Score 1/2")
    assert stored(state_store, "practiceSession")["completed_at"] is not None

    blocked = practicing.post("/practice/select", json={"option": "2"})
    assert blocked.status_code == 409

    reset = practicing.post("/practice/reset").json()
    assert reset["summary"]["answered"] == 0
    assert reset["notifications"][0]["level"] == "info"


def test_invalid_option_is_a_conflict(practicing):
    practicing.get("/practice")
    resp = practicing.post("/practice/select", json={"option": "London"})
    assert resp.status_code == 409
    assert resp.json()["notifications"][0]["level"] == "error"


def test_pause_and_resume(practicing):
    practicing.get("/practice")
    paused = practicing.post("/practice/pause").json()
    assert paused["summary"]["paused"] is True
    toggled = practicing.post("/practice/toggle-pause").json()
    assert toggled["summary"]["paused"] is False


def test_rating_feeds_review_sessions(practicing, state_store):
    practicing.get("/practice")
    assert practicing.post("/practice/rate", json={"rating": "again"}).status_code == 409

    practicing.post("/practice/select", json={"option": "Rome"})
    practicing.post("/practice/check")
    rated = practicing.post("/practice/rate", json={"rating": "again"}).json()
    assert rated["question"]["rating"] == "again"
    assert "later in this session" in rated["notifications"][0]["message"]

    practicing.post("/practice/next")
    practicing.post("/practice/select", json={"option": "2"})
    practicing.post("/practice/select", json={"option": "3"})
    practicing.post("/practice/check")
    good = practicing.post("/practice/rate", json={"rating": "good"}).json()
    assert "in 1 day(s)" in good["notifications"][0]["message"]

    overview = practicing.get("/practice/memory").json()
    assert overview["cards"] == 2
    assert overview["due"] == 1

    review = practicing.post("/practice/review", json={"limit": 5}).json()
    assert review["mode"] == "review"
    assert review["summary"]["total"] == 1
    assert review["question"]["question"] == "Capital of France?"
    assert review["notifications"][0]["message"] == "1 question(s) due for review."


def test_review_with_nothing_due(signed_in):
    resp = signed_in.post("/practice/review")
    assert resp.status_code == 404


def test_unknown_rating_is_rejected(practicing):
    practicing.get("/practice")
    assert practicing.post("/practice/rate", json={"rating": "perfect"}).status_code == 422


def test_answers_are_synced_for_library_sets(signed_in, backend):
    backend.ok(
        "GET",
        "/questions/sets/s1",
        make_set("s1", questions=[make_question("q1", "Capital of France?", correct=["A"])]),
    )
    backend.ok("POST", "/practice/start", {"sessionId": "remote-1"})
    backend.ok("POST", "/practice/answer", {"isCorrect": True})
    backend.ok("POST", "/practice/complete", {"score": 1})

    signed_in.post("/library/s1/practice")
    signed_in.post("/practice/select", json={"option": "Paris"})
    checked = signed_in.post("/practice/check").json()
    assert [n["level"] for n in checked["notifications"]] == ["success"]
    signed_in.post("/practice/next")

    answer = json.loads(backend.calls("POST", "/practice/answer")[0].read())
    assert answer == {"sessionId": "remote-1", "questionId": "q1", "selectedChoices": ["A"]}
    complete = json.loads(backend.calls("POST", "/practice/complete")[0].read())
    assert complete == {"sessionId": "remote-1"}


def test_sync_failure_degrades_to_warning(signed_in, backend):
    backend.ok("GET", "/questions/sets/s1", make_set("s1", questions=[make_question("q1", "Q?")]))
    backend.ok("POST", "/practice/start", {"id": "remote-1"})
    backend.add("POST", "/practice/answer", (503, {"message": "unavailable"}))

    signed_in.post("/library/s1/practice")
    signed_in.post("/practice/select", json={"option": "Paris"})
    resp = signed_in.post("/practice/check")

    assert resp.status_code == 200
    levels = [n["level"] for n in resp.json()["notifications"]]
    assert levels == ["success", "warning"]
    assert resp.json()["summary"]["score"] == 1


def test_timer_stream_ends_for_completed_session(practicing):
    practicing.get("/practice")
    practicing.post("/practice/next")
    practicing.post("/practice/next")

    resp = practicing.get("/practice/timer")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    events = [line for line in resp.text.splitlines() if line.startswith("data: ")]
    assert len(events) == 1
    payload = json.loads(events[0][len("data: "):])
    assert payload["completed"] is True
    assert payload["elapsed"].count(":") == 1


def test_history_proxies_backend(signed_in, backend):
    backend.ok("GET", "/practice/sessions", [{"id": "p1"}, {"id": "p2"}])
    backend.ok("GET", "/practice/sessions/p1", {"id": "p1", "score": 3})

    assert signed_in.get("/practice/history").json()["count"] == 2
    assert signed_in.get("/practice/history/p1").json()["session"]["score"] == 3


def memory_card(state_store, text: str) -> dict:
    deck = stored(state_store, "memoryDeck")
    return next(card for card in deck.values() if card["question"]["question"] == text)


def test_rating_again_replaces_the_earlier_rating(practicing, state_store):
    practicing.get("/practice")
    practicing.post("/practice/select", json={"option": "Paris"})
    practicing.post("/practice/check")

    practicing.post("/practice/rate", json={"rating": "easy"})
    practicing.post("/practice/rate", json={"rating": "easy"})
    card = memory_card(state_store, "Capital of France?")
    assert (card["box"], card["reviews"]) == (3, 1)

    changed = practicing.post("/practice/rate", json={"rating": "hard"}).json()
    card = memory_card(state_store, "Capital of France?")
    assert (card["box"], card["reviews"], card["last_rating"]) == (1, 1, "hard")
    assert changed["summary"]["ratings"]["hard"] == 1
    assert changed["summary"]["ratings"]["easy"] == 0


def test_rating_after_reset_moves_the_card_again(practicing, state_store):
    practicing.get("/practice")
    practicing.post("/practice/select", json={"option": "Paris"})
    practicing.post("/practice/check")
    practicing.post("/practice/rate", json={"rating": "good"})

    practicing.post("/practice/reset")
    practicing.post("/practice/select", json={"option": "Paris"})
    practicing.post("/practice/check")
    practicing.post("/practice/rate", json={"rating": "good"})

    card = memory_card(state_store, "Capital of France?")
    assert (card["box"], card["reviews"]) == (3, 2)


def test_next_returns_to_an_answered_question_checked(practicing):
    practicing.get("/practice")
    practicing.post("/practice/select", json={"option": "Paris"})
    practicing.post("/practice/check")
    practicing.post("/practice/next")
    practicing.post("/practice/select", json={"option": "2"})
    practicing.post("/practice/check")
    practicing.post("/practice/prev")

    view = practicing.post("/practice/next").json()

    assert view["question"]["checked"] is True
    assert view["question"]["selected"] == ["2"]
    assert view["question"]["correct_answer"] == ["2", "3"]
    assert practicing.post("/practice/check").status_code == 409
