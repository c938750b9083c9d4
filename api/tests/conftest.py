from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

import main
from core import quiz_backend
from storage import repository as state_repository

BACKEND_URL = "http://quiz.test/api"


class FakeBackend:
    """
    Programmable stand-in for the remote quiz service, served through
    httpx.MockTransport. Each route answers with its queued responses in
    order; the last one repeats.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[tuple[int, Any]]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses: tuple[int, Any]) -> None:
        self.routes[(method.upper(), path)] = list(responses)

    def ok(self, method: str, path: str, data: Any) -> None:
        self.add(method, path, (200, {"success": True, "data": data}))

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and self._path(r) == path]

    @staticmethod
    def _path(request: httpx.Request) -> str:
        return request.url.path.removeprefix("/api")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, self._path(request)))
        if not queue:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        status, body = queue.pop(0) if len(queue) > 1 else queue[0]
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)


@pytest.fixture
def state_store(monkeypatch) -> dict[tuple[str, str], str]:
    store: dict[tuple[str, str], str] = {}

    async def get_value(browser_id: str, key: str) -> str | None:
        return store.get((browser_id, key))

    async def set_value(browser_id: str, key: str, value: Any) -> None:
        store[(browser_id, key)] = json.dumps(value)

    async def delete_value(browser_id: str, key: str) -> bool:
        return store.pop((browser_id, key), None) is not None

    monkeypatch.setattr(state_repository, "get_value", get_value)
    monkeypatch.setattr(state_repository, "set_value", set_value)
    monkeypatch.setattr(state_repository, "delete_value", delete_value)
    return store


@pytest.fixture
def backend(monkeypatch) -> FakeBackend:
    fake = FakeBackend()
    monkeypatch.setenv("QUIZ_API_URL", BACKEND_URL)
    monkeypatch.setattr(quiz_backend, "transport", httpx.MockTransport(fake.handler))
    return fake


@pytest.fixture
def client(state_store, backend) -> TestClient:
    # No context manager: the lifespan (DB pool) is not started.
    return TestClient(main.app)


@pytest.fixture
def user() -> dict:
    return {"id": "u-1", "email": "ada@example.com", "name": "Ada"}


@pytest.fixture
def signed_in(client, backend, user) -> TestClient:
    backend.ok("POST", "/auth/login", {"user": user, "token": "access-1", "refreshToken": "refresh-1"})
    resp = client.post("/auth/login", json={"email": user["email"], "password": "secret123"})
    assert resp.status_code == 200
    return client


def stored(state_store: dict, key: str) -> Any:
    """
    Decode the single browser's value for `key`.
    """
    values = [json.loads(v) for (_, k), v in state_store.items() if k == key]
    assert len(values) <= 1
    return values[0] if values else None


def make_question(
    qid: str,
    content: str,
    *,
    qtype: str = "MULTIPLE_CHOICE",
    choices: list[str] | None = None,
    correct: list[str] | None = None,
    order: int = 0,
) -> dict:
    texts = choices or ["Paris", "Rome", "Berlin", "Madrid"]
    labels = [chr(ord("A") + i) for i in range(len(texts))]
    return {
        "id": qid,
        "content": content,
        "explanation": f"Because of {content}",
        "type": qtype,
        "order": order,
        "choices": [
            {"id": f"{qid}-{label}", "label": label, "content": text, "order": i}
            for i, (label, text) in enumerate(zip(labels, texts))
        ],
        "correctAnswers": [{"id": f"{qid}-ca-{label}", "choiceLabel": label} for label in (correct or ["A"])],
    }


def make_set(
    set_id: str = "set-1",
    *,
    title: str = "Geography",
    subject: str = "geo",
    difficulty: str = "easy",
    questions: list[dict] | None = None,
) -> dict:
    return {
        "id": set_id,
        "title": title,
        "subject": subject,
        "difficulty": difficulty,
        "type": "MULTIPLE_CHOICE",
        "fileName": "notes.txt",
        "createdAt": "2026-10-01T10:00:00Z",
        "questions": questions if questions is not None else [],
    }
