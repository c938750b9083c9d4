"""
Login page endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from storage.dependencies import get_browser_id

from . import dependencies, schemas, service

router = APIRouter(prefix="/auth")


@router.post("/login")
async def login(payload: schemas.LoginRequest, browser_id: str = Depends(get_browser_id)) -> dict:
    return await service.login(browser_id, payload)


@router.post("/register")
async def register(payload: schemas.RegisterRequest, browser_id: str = Depends(get_browser_id)) -> dict:
    return await service.register(browser_id, payload)


@router.post("/logout")
async def logout(browser_id: str = Depends(get_browser_id)) -> dict:
    return await service.logout(browser_id)


@router.get("/me")
async def me(
    browser_id: str = Depends(get_browser_id),
    _: dict = Depends(dependencies.get_current_user),
) -> dict:
    user = await service.refresh_current_user(browser_id)
    return {"user": user}


@router.get("/session")
async def session(user: dict | None = Depends(dependencies.get_optional_user)) -> dict:
    """
    Cheap check used by the navbar: who is signed in, without a backend call.
    """
    return {"authenticated": user is not None, "user": user}
