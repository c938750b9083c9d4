"""
Auth dependencies for protected page endpoints.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, status

from storage.dependencies import get_browser_id

from . import service


async def get_current_user(browser_id: str = Depends(get_browser_id)) -> dict:
    user = await service.current_user(browser_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please sign in to continue.",
            headers={"X-Redirect": "/login"},
        )
    return user


async def get_optional_user(browser_id: str = Depends(get_browser_id)) -> dict | None:
    return await service.current_user(browser_id)
