"""
Library page logic: the signed-in user's saved question sets.

Sets are fetched from the remote backend and cached per browser under
`quizSets`; filtering and pagination happen here.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException
from pydantic import ValidationError

from auth import service as auth_service
from core import notify, quiz_backend
from core.schemas import QuestionSet
from practice import service as practice_service
from questions import schemas as question_schemas
from storage import service as state

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 6
ALL = "all"

TYPE_LABELS = {
    "MULTIPLE_CHOICE": "Multiple choice",
    "TRUE_FALSE": "True/False",
    "MULTIPLE_RESPONSE": "Multiple response",
    "MATCHING": "Matching",
    "COMPLETION": "Completion",
    "FILL_IN_BLANK": "Fill in the blank",
    "ESSAY": "Essay",
}

DIFFICULTY_LABELS = {
    "easy": "Easy",
    "medium": "Medium",
    "hard": "Hard",
}


def page_size() -> int:
    raw = os.environ.get("LIBRARY_PAGE_SIZE", "").strip()
    if not raw:
        return DEFAULT_PAGE_SIZE
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_PAGE_SIZE
    return value if value > 0 else DEFAULT_PAGE_SIZE


def type_label(raw: str) -> str:
    return TYPE_LABELS.get((raw or "").upper(), raw)


def difficulty_label(raw: str | None) -> str:
    return DIFFICULTY_LABELS.get((raw or "").lower(), raw or "Unrated")


def filter_sets(
    sets: list[QuestionSet],
    *,
    search: str = "",
    difficulty: str = ALL,
    subject: str = ALL,
) -> list[QuestionSet]:
    filtered = sets
    term = (search or "").strip().lower()
    if term:
        filtered = [s for s in filtered if term in s.title.lower() or term in s.subject.lower()]
    if difficulty and difficulty != ALL:
        filtered = [s for s in filtered if s.difficulty == difficulty]
    if subject and subject != ALL:
        filtered = [s for s in filtered if s.subject == subject]
    return filtered


@dataclass(frozen=True)
class Page:
    items: list[QuestionSet]
    page: int
    total_pages: int
    total: int


def paginate(sets: list[QuestionSet], page: int, per_page: int) -> Page:
    total_pages = math.ceil(len(sets) / per_page) if sets else 0
    current = max(1, min(page, total_pages)) if total_pages else 1
    start = (current - 1) * per_page
    return Page(items=sets[start:start + per_page], page=current, total_pages=total_pages, total=len(sets))


def unique_subjects(sets: list[QuestionSet]) -> list[str]:
    seen: list[str] = []
    for s in sets:
        if s.subject and s.subject not in seen:
            seen.append(s.subject)
    return seen


def _parse_sets(rows: list[dict]) -> list[QuestionSet]:
    parsed: list[QuestionSet] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            parsed.append(QuestionSet.model_validate(row))
        except ValidationError:
            logger.warning("question_set_skipped id=%s", row.get("id"))
    return parsed


def _summary(question_set: QuestionSet) -> dict[str, Any]:
    return {
        "id": question_set.id,
        "title": question_set.title,
        "subject": question_set.subject,
        "tone": question_set.tone,
        "difficulty": question_set.difficulty,
        "difficulty_label": difficulty_label(question_set.difficulty),
        "type": question_set.type,
        "type_label": type_label(question_set.type),
        "file_name": question_set.file_name,
        "created_at": question_set.created_at,
        "question_count": len(question_set.questions),
    }


async def load_sets(browser_id: str, user: dict) -> list[QuestionSet]:
    async with auth_service.backend_credentials(browser_id) as credentials:
        rows = await quiz_backend.list_question_sets(
            credentials=credentials,
            user_id=auth_service.user_id(user),
        )
    await state.save(browser_id, state.QUIZ_SETS, rows)
    return _parse_sets(rows)


async def list_library(
    browser_id: str,
    user: dict,
    *,
    search: str = "",
    difficulty: str = ALL,
    subject: str = ALL,
    page: int = 1,
) -> dict[str, Any]:
    toasts: list[notify.Toast] = []
    try:
        sets = await load_sets(browser_id, user)
    except quiz_backend.BackendError as exc:
        if exc.status_code == 401:
            raise
        cached = await state.load(browser_id, state.QUIZ_SETS)
        if not isinstance(cached, list):
            raise HTTPException(status_code=502, detail="Could not load your question sets.") from exc
        logger.warning("library_served_from_cache browser_id=%s sets=%s error=%s", browser_id, len(cached), exc)
        sets = _parse_sets(cached)
        toasts.append(notify.warning("Could not reach the server. Showing your last loaded question sets."))

    filtered = filter_sets(sets, search=search, difficulty=difficulty, subject=subject)
    current = paginate(filtered, page, page_size())
    return {
        "items": [_summary(s) for s in current.items],
        "page": current.page,
        "total_pages": current.total_pages,
        "total": current.total,
        "all_count": len(sets),
        "subjects": unique_subjects(sets),
        "filters": {"search": search, "difficulty": difficulty, "subject": subject},
        "notifications": notify.dump(toasts),
    }


async def delete_set(browser_id: str, user: dict, set_id: str) -> dict[str, Any]:
    try:
        async with auth_service.backend_credentials(browser_id) as credentials:
            await quiz_backend.delete_question_set(
                set_id,
                credentials=credentials,
                user_id=auth_service.user_id(user),
            )
    except quiz_backend.BackendError as exc:
        if exc.status_code in (401, 404):
            raise
        raise HTTPException(status_code=502, detail="Could not delete the question set.") from exc

    cached = await state.load(browser_id, state.QUIZ_SETS, [])
    if isinstance(cached, list):
        remaining = [row for row in cached if not (isinstance(row, dict) and str(row.get("id")) == set_id)]
        await state.save(browser_id, state.QUIZ_SETS, remaining)

    logger.info("question_set_deleted browser_id=%s set_id=%s", browser_id, set_id)
    return {"ok": True, "id": set_id, "notifications": notify.dump([notify.success("Question set deleted.")])}


async def practice_set(browser_id: str, user: dict, set_id: str) -> dict[str, Any]:
    """
    Load a set's questions, hand them to the practice page and start a
    session bound to the set.
    """
    try:
        async with auth_service.backend_credentials(browser_id) as credentials:
            data = await quiz_backend.get_question_set(set_id, credentials=credentials)
    except quiz_backend.BackendError as exc:
        if exc.status_code in (401, 404):
            raise
        raise HTTPException(status_code=502, detail="Could not load the question set details.") from exc

    try:
        question_set = QuestionSet.model_validate(data)
    except ValidationError as exc:
        raise HTTPException(status_code=502, detail="Could not load the question set details.") from exc

    questions = question_schemas.to_practice_questions(question_set)
    if not questions:
        raise HTTPException(status_code=422, detail="This question set has no questions.")

    await state.save(browser_id, state.GENERATED_QUESTIONS, question_schemas.dump_questions(questions))
    await state.save(browser_id, state.CURRENT_QUESTION_SET, data)

    view = await practice_service.start(
        browser_id,
        user,
        question_set_id=question_set.id or set_id,
        title=question_set.title,
    )
    view["notifications"] = [
        notify.success(f"Starting practice: {question_set.title}").model_dump(),
        *view.get("notifications", []),
    ]
    view["redirect"] = "/practice"
    return view
