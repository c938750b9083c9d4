"""
Practice page endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from auth import dependencies as auth_dependencies
from storage.dependencies import get_browser_id

from . import schemas, service

router = APIRouter(prefix="/practice")


@router.get("")
async def current(
    browser_id: str = Depends(get_browser_id),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    """
    Current practice state. Starts a session from the generated questions
    when none is in progress.
    """
    return await service.get_view(browser_id, current_user)


@router.post("/start")
async def start(
    payload: schemas.StartRequest | None = None,
    browser_id: str = Depends(get_browser_id),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    question_set_id = payload.question_set_id if payload is not None else None
    return await service.start(browser_id, current_user, question_set_id=question_set_id)


@router.post("/select")
async def select(
    payload: schemas.SelectRequest,
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.select(browser_id, payload.option)


@router.post("/check")
async def check(
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.check(browser_id)


@router.post("/next")
async def next_question(
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.next_question(browser_id)


@router.post("/prev")
async def prev_question(
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.prev_question(browser_id)


@router.post("/reset")
async def reset(
    browser_id: str = Depends(get_browser_id),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.reset(browser_id, current_user)


@router.post("/pause")
async def pause(
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.pause(browser_id)


@router.post("/resume")
async def resume(
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.resume(browser_id)


@router.post("/toggle-pause")
async def toggle_pause(
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.toggle_pause(browser_id)


@router.post("/rate")
async def rate(
    payload: schemas.RateRequest,
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.rate(browser_id, payload.rating, index=payload.index)


@router.post("/review")
async def review(
    payload: schemas.ReviewRequest | None = None,
    browser_id: str = Depends(get_browser_id),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    limit = payload.limit if payload is not None else schemas.ReviewRequest().limit
    return await service.review(browser_id, current_user, limit=limit)


@router.get("/memory")
async def memory_overview(
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.deck_overview(browser_id)


@router.get("/timer")
async def timer(
    request: Request,
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> StreamingResponse:
    if await service.load_session(browser_id) is None:
        raise HTTPException(status_code=404, detail="No practice session in progress.")
    return StreamingResponse(
        service.timer_events(browser_id, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/history")
async def history(
    browser_id: str = Depends(get_browser_id),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.history(browser_id, current_user)


@router.get("/history/{session_id}")
async def history_detail(
    session_id: str,
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.history_detail(browser_id, session_id)
