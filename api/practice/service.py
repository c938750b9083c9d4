"""
Practice page orchestration.

The session lives in the browser's `practiceSession` entry and is replayed
through `engine.PracticeSession` on every request. Sessions started from a
library set are mirrored to the backend's practice API; mirroring is best
effort and never blocks local practice.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable

from fastapi import HTTPException
from pydantic import ValidationError

from auth import service as auth_service
from core import notify, quiz_backend
from questions import schemas as question_schemas
from storage import service as state

from . import memory
from .engine import PracticeError, PracticeSession, format_time

logger = logging.getLogger(__name__)

TIMER_INTERVAL_S = 1.0
SYNC_WARNING = "Your progress could not be synced with the server."


def _utc(now: float) -> datetime:
    return datetime.fromtimestamp(now, tz=timezone.utc)


async def load_session(browser_id: str) -> PracticeSession | None:
    raw = await state.load(browser_id, state.PRACTICE_SESSION)
    if not isinstance(raw, dict):
        return None
    try:
        return PracticeSession.model_validate(raw)
    except ValidationError:
        logger.warning("practice_session_corrupt browser_id=%s", browser_id)
        return None


async def save_session(browser_id: str, session: PracticeSession) -> None:
    await state.save(browser_id, state.PRACTICE_SESSION, session.model_dump(mode="json", by_alias=True))


def _response(session: PracticeSession, toasts: list[notify.Toast], now: float) -> dict[str, Any]:
    view = session.view(now)
    view["notifications"] = notify.dump(toasts)
    return view


async def _remote_start(browser_id: str, user: dict, session: PracticeSession) -> notify.Toast | None:
    if not session.question_set_id:
        return None
    try:
        async with auth_service.backend_credentials(browser_id) as credentials:
            data = await quiz_backend.start_practice(
                session.question_set_id,
                credentials=credentials,
                user_id=auth_service.user_id(user),
            )
    except quiz_backend.BackendError as exc:
        logger.warning("practice_sync_failed step=start set_id=%s error=%s", session.question_set_id, exc)
        return notify.warning(SYNC_WARNING)

    remote_id = data.get("id") or data.get("sessionId")
    session.remote_session_id = str(remote_id) if remote_id else None
    return None


async def _remote_submit(browser_id: str, session: PracticeSession, index: int) -> notify.Toast | None:
    question = session.questions[index]
    if not session.remote_session_id or not question.question_id:
        return None
    labels = [label for label in (question.label_for(o) for o in session.user_answers.get(index, [])) if label]
    try:
        async with auth_service.backend_credentials(browser_id) as credentials:
            await quiz_backend.submit_answer(
                session.remote_session_id,
                question.question_id,
                labels,
                credentials=credentials,
            )
    except quiz_backend.BackendError as exc:
        logger.warning(
            "practice_sync_failed step=answer session_id=%s question_id=%s error=%s",
            session.remote_session_id,
            question.question_id,
            exc,
        )
        return notify.warning(SYNC_WARNING)
    return None


async def _remote_complete(browser_id: str, session: PracticeSession) -> notify.Toast | None:
    if not session.remote_session_id:
        return None
    try:
        async with auth_service.backend_credentials(browser_id) as credentials:
            await quiz_backend.complete_practice(session.remote_session_id, credentials=credentials)
    except quiz_backend.BackendError as exc:
        logger.warning("practice_sync_failed step=complete session_id=%s error=%s", session.remote_session_id, exc)
        return notify.warning(SYNC_WARNING)
    return None


async def start(
    browser_id: str,
    user: dict,
    *,
    question_set_id: str | None = None,
    title: str | None = None,
    questions: list[question_schemas.PracticeQuestion] | None = None,
    mode: str = "practice",
    now: float | None = None,
) -> dict[str, Any]:
    current = time.time() if now is None else now
    if questions is None:
        questions = question_schemas.load_questions(await state.load(browser_id, state.GENERATED_QUESTIONS))
    if not questions:
        raise HTTPException(status_code=404, detail="Please generate questions before practicing.")

    if question_set_id is None and mode == "practice":
        current_set = await state.load(browser_id, state.CURRENT_QUESTION_SET)
        if isinstance(current_set, dict):
            title = title or current_set.get("title")

    session = PracticeSession.begin(
        questions,
        now=current,
        mode=mode,
        title=title,
        question_set_id=question_set_id,
    )
    toasts: list[notify.Toast] = []
    sync = await _remote_start(browser_id, user, session)
    if sync is not None:
        toasts.append(sync)

    await save_session(browser_id, session)
    logger.info(
        "practice_started browser_id=%s mode=%s questions=%s set_id=%s",
        browser_id,
        mode,
        session.total,
        question_set_id,
    )
    return _response(session, toasts, current)


async def get_view(browser_id: str, user: dict, *, now: float | None = None) -> dict[str, Any]:
    current = time.time() if now is None else now
    session = await load_session(browser_id)
    if session is None:
        return await start(browser_id, user, now=current)
    return _response(session, [], current)


async def _require_session(browser_id: str) -> PracticeSession:
    session = await load_session(browser_id)
    if session is None:
        raise HTTPException(status_code=404, detail="No practice session in progress.")
    return session


async def _apply(
    browser_id: str,
    action: Callable[[PracticeSession, float], list[notify.Toast] | None],
    *,
    after: Callable[[PracticeSession, float], Awaitable[list[notify.Toast]]] | None = None,
    now: float | None = None,
) -> dict[str, Any]:
    current = time.time() if now is None else now
    session = await _require_session(browser_id)
    try:
        toasts = list(action(session, current) or [])
    except PracticeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    if after is not None:
        toasts.extend(await after(session, current))
    await save_session(browser_id, session)
    return _response(session, toasts, current)


async def select(browser_id: str, option: str, *, now: float | None = None) -> dict[str, Any]:
    return await _apply(browser_id, lambda s, _: s.select(option), now=now)


async def check(browser_id: str, *, now: float | None = None) -> dict[str, Any]:
    checked_index: list[int] = []

    def action(session: PracticeSession, _: float) -> list[notify.Toast]:
        was_checked = session.show_answer
        toasts = session.check()
        if session.show_answer and not was_checked:
            checked_index.append(session.current_index)
        return toasts

    async def after(session: PracticeSession, _: float) -> list[notify.Toast]:
        if not checked_index:
            return []
        sync = await _remote_submit(browser_id, session, checked_index[0])
        return [sync] if sync is not None else []

    return await _apply(browser_id, action, after=after, now=now)


async def next_question(browser_id: str, *, now: float | None = None) -> dict[str, Any]:
    async def after(session: PracticeSession, _: float) -> list[notify.Toast]:
        if not session.is_completed:
            return []
        logger.info(
            "practice_completed browser_id=%s score=%s total=%s elapsed=%s",
            browser_id,
            session.score,
            session.total,
            format_time(session.elapsed_seconds()),
        )
        sync = await _remote_complete(browser_id, session)
        return [sync] if sync is not None else []

    return await _apply(browser_id, lambda s, t: s.next(t), after=after, now=now)


async def prev_question(browser_id: str, *, now: float | None = None) -> dict[str, Any]:
    return await _apply(browser_id, lambda s, _: s.prev(), now=now)


async def reset(browser_id: str, user: dict, *, now: float | None = None) -> dict[str, Any]:
    async def after(session: PracticeSession, _: float) -> list[notify.Toast]:
        # A fresh local run gets a fresh server-side session.
        session.remote_session_id = None
        sync = await _remote_start(browser_id, user, session)
        return [sync] if sync is not None else []

    return await _apply(browser_id, lambda s, t: s.reset(t), after=after, now=now)


async def pause(browser_id: str, *, now: float | None = None) -> dict[str, Any]:
    return await _apply(browser_id, lambda s, t: s.pause(t), now=now)


async def resume(browser_id: str, *, now: float | None = None) -> dict[str, Any]:
    return await _apply(browser_id, lambda s, t: s.resume(t), now=now)


async def toggle_pause(browser_id: str, *, now: float | None = None) -> dict[str, Any]:
    return await _apply(browser_id, lambda s, t: s.toggle_pause(t), now=now)


async def rate(browser_id: str, rating: str, *, index: int | None = None, now: float | None = None) -> dict[str, Any]:
    rated: list[tuple[int, question_schemas.PracticeQuestion]] = []

    def action(session: PracticeSession, _: float) -> None:
        position = session.current_index if index is None else index
        rated.append((position, session.rate(rating, index=index)))

    async def after(session: PracticeSession, current: float) -> list[notify.Toast]:
        position, question = rated[0]
        deck = memory.load_deck(await state.load(browser_id, state.MEMORY_DECK))
        if position in session.deck_snapshots:
            # Rating again replaces this session's earlier rating.
            memory.restore(deck, question, session.deck_snapshots[position])
        else:
            session.deck_snapshots[position] = memory.snapshot(deck, question)
        card = memory.rate(deck, question, rating, _utc(current))
        await state.save(browser_id, state.MEMORY_DECK, memory.dump_deck(deck))
        days = memory.INTERVAL_DAYS[card.box]
        when = "later in this session" if days == 0 else f"in {days} day(s)"
        return [notify.info(f"Saved. This question will come back {when}.")]

    return await _apply(browser_id, action, after=after, now=now)


async def review(browser_id: str, user: dict, *, limit: int = 20, now: float | None = None) -> dict[str, Any]:
    """
    Start a session made of the memory cards that are due.
    """
    current = time.time() if now is None else now
    deck = memory.load_deck(await state.load(browser_id, state.MEMORY_DECK))
    due = memory.due_cards(deck, _utc(current), limit=limit)
    if not due:
        raise HTTPException(status_code=404, detail="Nothing is due for review right now.")

    questions = [
        card.question.model_copy(update={"id": position})
        for position, card in enumerate(due, start=1)
    ]
    view = await start(browser_id, user, questions=questions, mode="review", title="Review", now=current)
    view["notifications"].insert(0, notify.info(f"{len(questions)} question(s) due for review.").model_dump())
    return view


async def deck_overview(browser_id: str, *, now: float | None = None) -> dict[str, Any]:
    current = _utc(time.time() if now is None else now)
    deck = memory.load_deck(await state.load(browser_id, state.MEMORY_DECK))
    boxes = {box: 0 for box in range(memory.MIN_BOX, memory.MAX_BOX + 1)}
    for card in deck.values():
        boxes[card.box] += 1
    return {
        "cards": len(deck),
        "due": len(memory.due_cards(deck, current)),
        "boxes": boxes,
    }


async def timer_events(
    browser_id: str,
    is_disconnected: Callable[[], Awaitable[bool]],
) -> AsyncIterator[str]:
    """
    Server-sent events with the elapsed counter, once per second, until the
    session completes, disappears, or the client goes away.
    """
    while True:
        session = await load_session(browser_id)
        if session is None:
            break
        elapsed = session.elapsed_seconds()
        payload = {
            "elapsed_seconds": elapsed,
            "elapsed": format_time(elapsed),
            "paused": session.is_paused,
            "completed": session.is_completed,
        }
        yield f"data: {json.dumps(payload)}\n\n"
        if session.is_completed or await is_disconnected():
            break
        await asyncio.sleep(TIMER_INTERVAL_S)


async def history(browser_id: str, user: dict) -> dict[str, Any]:
    async with auth_service.backend_credentials(browser_id) as credentials:
        sessions = await quiz_backend.list_practice_sessions(
            credentials=credentials,
            user_id=auth_service.user_id(user),
        )
    return {"sessions": sessions, "count": len(sessions)}


async def history_detail(browser_id: str, session_id: str) -> dict[str, Any]:
    async with auth_service.backend_credentials(browser_id) as credentials:
        session = await quiz_backend.get_practice_session(session_id, credentials=credentials)
    return {"session": session}
