"""
Browser identity for the client-state store.
"""

from __future__ import annotations

import os
import secrets

from fastapi import Request, Response

DEFAULT_COOKIE_NAME = "qs_browser"
COOKIE_MAX_AGE_S = 60 * 60 * 24 * 365


def cookie_name() -> str:
    return os.environ.get("BROWSER_COOKIE_NAME", DEFAULT_COOKIE_NAME).strip() or DEFAULT_COOKIE_NAME


def _valid_browser_id(value: str | None) -> bool:
    raw = (value or "").strip()
    return 16 <= len(raw) <= 128 and all(c.isalnum() or c in "-_" for c in raw)


async def get_browser_id(request: Request, response: Response) -> str:
    """
    Return the caller's browser id, issuing a cookie on first contact.
    """
    current = request.cookies.get(cookie_name())
    if _valid_browser_id(current):
        return str(current)

    browser_id = secrets.token_urlsafe(24)
    response.set_cookie(
        cookie_name(),
        browser_id,
        max_age=COOKIE_MAX_AGE_S,
        httponly=True,
        samesite="lax",
    )
    return browser_id
