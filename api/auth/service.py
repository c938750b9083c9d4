"""
Login, registration and session bookkeeping.

Tokens come from the remote backend and are stored per browser under
`auth_token` / `refresh_token`; the signed-in user under `user`.
"""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import HTTPException, status

from core import notify, quiz_backend
from core.tokens import Credentials
from storage import service as state

from . import schemas

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def validate_login(payload: schemas.LoginRequest) -> schemas.FormErrors:
    errors = schemas.FormErrors()
    email = payload.email.strip()
    if not email:
        errors.email = "Email is required."
    elif not EMAIL_RE.match(email):
        errors.email = "Email is not valid."

    if not payload.password:
        errors.password = "Password is required."
    elif len(payload.password) < MIN_PASSWORD_LENGTH:
        errors.password = f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    return errors


def validate_register(payload: schemas.RegisterRequest) -> schemas.FormErrors:
    errors = validate_login(schemas.LoginRequest(email=payload.email, password=payload.password))
    if not payload.full_name.strip():
        errors.full_name = "Full name is required."

    if not payload.confirm_password:
        errors.confirm_password = "Please confirm your password."
    elif payload.password != payload.confirm_password:
        errors.confirm_password = "Passwords do not match."
    return errors


def _raise_form_errors(errors: schemas.FormErrors) -> None:
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={
            "message": "Please fix the highlighted fields.",
            "errors": errors.model_dump(by_alias=True),
        },
    )


async def _store_session(browser_id: str, data: dict[str, Any]) -> dict[str, Any]:
    user = data.get("user")
    token = data.get("token") or data.get("accessToken")
    if not isinstance(user, dict) or not token:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The quiz service returned an incomplete sign-in response.",
        )

    await state.save(browser_id, state.USER, user)
    await state.save(browser_id, state.AUTH_TOKEN, str(token))
    refresh_token = data.get("refreshToken")
    if refresh_token:
        await state.save(browser_id, state.REFRESH_TOKEN, str(refresh_token))
    else:
        await state.remove(browser_id, state.REFRESH_TOKEN)
    return user


def display_name(user: dict[str, Any]) -> str:
    return str(user.get("name") or user.get("fullName") or user.get("email") or "")


async def login(browser_id: str, payload: schemas.LoginRequest) -> dict[str, Any]:
    errors = validate_login(payload)
    if not errors.ok():
        _raise_form_errors(errors)

    data = await quiz_backend.login(payload.email.strip(), payload.password)
    user = await _store_session(browser_id, data)
    logger.info("login_succeeded browser_id=%s user_id=%s", browser_id, user.get("id"))
    return {
        "user": user,
        "redirect": "/",
        "notifications": notify.dump([notify.success(f"Welcome back, {display_name(user)}!")]),
    }


async def register(browser_id: str, payload: schemas.RegisterRequest) -> dict[str, Any]:
    errors = validate_register(payload)
    if not errors.ok():
        _raise_form_errors(errors)

    data = await quiz_backend.register(payload.email.strip(), payload.password, payload.full_name.strip())
    user = await _store_session(browser_id, data)
    logger.info("register_succeeded browser_id=%s user_id=%s", browser_id, user.get("id"))
    return {
        "user": user,
        "redirect": "/",
        "notifications": notify.dump([notify.success("Your account has been created.")]),
    }


async def load_credentials(browser_id: str) -> Credentials:
    return Credentials(
        access_token=await state.load(browser_id, state.AUTH_TOKEN),
        refresh_token=await state.load(browser_id, state.REFRESH_TOKEN),
    )


async def save_credentials(browser_id: str, credentials: Credentials) -> None:
    if credentials.access_token is None:
        # Refresh failed: the browser is signed out.
        await state.remove(browser_id, state.AUTH_TOKEN, state.REFRESH_TOKEN, state.USER)
        return
    await state.save(browser_id, state.AUTH_TOKEN, credentials.access_token)
    if credentials.refresh_token:
        await state.save(browser_id, state.REFRESH_TOKEN, credentials.refresh_token)


@asynccontextmanager
async def backend_credentials(browser_id: str) -> AsyncIterator[Credentials]:
    """
    Yield the browser's credentials for backend calls and persist any
    refresh that happened meanwhile, even when the call failed.
    """
    credentials = await load_credentials(browser_id)
    before = credentials.snapshot()
    try:
        yield credentials
    finally:
        if credentials.snapshot() != before:
            await save_credentials(browser_id, credentials)


async def logout(browser_id: str) -> dict[str, Any]:
    credentials = await load_credentials(browser_id)
    if credentials.access_token:
        try:
            await quiz_backend.logout(credentials=credentials)
        except quiz_backend.BackendError as exc:
            logger.warning("logout_backend_failed browser_id=%s error=%s", browser_id, exc)

    await state.remove(browser_id, state.USER, state.AUTH_TOKEN, state.REFRESH_TOKEN)
    return {
        "ok": True,
        "redirect": "/login",
        "notifications": notify.dump([notify.info("You have been signed out.")]),
    }


async def current_user(browser_id: str) -> dict[str, Any] | None:
    user = await state.load(browser_id, state.USER)
    return user if isinstance(user, dict) else None


async def refresh_current_user(browser_id: str) -> dict[str, Any]:
    async with backend_credentials(browser_id) as credentials:
        if not credentials.access_token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please sign in to continue.")
        user = await quiz_backend.me(credentials=credentials)

    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please sign in to continue.")
    await state.save(browser_id, state.USER, user)
    return user


def user_id(user: dict[str, Any] | None) -> str | None:
    if not user:
        return None
    raw = user.get("id")
    return str(raw) if raw not in (None, "") else None
