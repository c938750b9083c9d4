"""
Toast notifications returned alongside JSON responses.

Every page endpoint answers with a `notifications` list; error bodies carry
one `error` toast built from the exception detail (see `api/main.py`).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ToastLevel = Literal["success", "info", "warning", "error"]


class Toast(BaseModel):
    level: ToastLevel
    message: str


def success(message: str) -> Toast:
    return Toast(level="success", message=message)


def info(message: str) -> Toast:
    return Toast(level="info", message=message)


def warning(message: str) -> Toast:
    return Toast(level="warning", message=message)


def error(message: str) -> Toast:
    return Toast(level="error", message=message)


def dump(toasts: list[Toast]) -> list[dict]:
    return [t.model_dump() for t in toasts]
