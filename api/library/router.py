"""
Library page endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies
from storage.dependencies import get_browser_id

from . import service

router = APIRouter(prefix="/library")


@router.get("")
async def list_library(
    search: str = Query(default="", max_length=200),
    difficulty: str = Query(default=service.ALL),
    subject: str = Query(default=service.ALL),
    page: int = Query(default=1),
    browser_id: str = Depends(get_browser_id),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.list_library(
        browser_id,
        current_user,
        search=search,
        difficulty=difficulty,
        subject=subject,
        page=page,
    )


@router.delete("/{set_id}")
async def delete_set(
    set_id: str,
    browser_id: str = Depends(get_browser_id),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.delete_set(browser_id, current_user, set_id)


@router.post("/{set_id}/practice")
async def practice_set(
    set_id: str,
    browser_id: str = Depends(get_browser_id),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.practice_set(browser_id, current_user, set_id)
