"""
Bearer credentials held on behalf of a browser.

The remote backend issues the tokens; this side only stores them, sends
them, and peeks at the `exp` claim to refresh slightly ahead of expiry.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass

import jwt


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def refresh_leeway_s() -> int:
    return _env_int("TOKEN_REFRESH_LEEWAY_S", 30)


@dataclass
class Credentials:
    access_token: str | None = None
    refresh_token: str | None = None

    def replace(self, *, access_token: str | None, refresh_token: str | None) -> None:
        self.access_token = (access_token or "").strip() or None
        # Backends that do not rotate refresh tokens omit it from the response.
        if refresh_token:
            self.refresh_token = refresh_token.strip()

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None

    def snapshot(self) -> tuple[str | None, str | None]:
        return self.access_token, self.refresh_token

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token)


def access_token_expiry(token: str | None) -> int | None:
    """
    Return the `exp` claim of a JWT access token, or None when the token is
    opaque or carries no expiry. The signature is not checked here.
    """
    raw = (token or "").strip()
    if not raw:
        return None
    try:
        payload = jwt.decode(raw, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError:
        return None
    exp = payload.get("exp")
    if isinstance(exp, (int, float)):
        return int(exp)
    return None


def access_token_expiring(token: str | None, *, now: float | None = None, leeway_s: int | None = None) -> bool:
    exp = access_token_expiry(token)
    if exp is None:
        return False
    current = time.time() if now is None else now
    leeway = refresh_leeway_s() if leeway_s is None else leeway_s
    return exp <= current + leeway
