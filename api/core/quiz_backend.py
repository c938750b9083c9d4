"""
Remote quiz backend HTTP client.

Used endpoints:
- POST   /questions/generate, /questions/generate-multiple  (multipart)
- GET    /questions/sets, /questions/sets/{id}
- DELETE /questions/sets/{id}
- POST   /practice/start, /practice/answer, /practice/complete
- GET    /practice/sessions, /practice/sessions/{id}
- POST   /auth/login, /auth/register, /auth/refresh, /auth/logout
- GET    /auth/me

Every response is an envelope: {"success": bool, "data": ..., "message": str?}.
The functions below return `data` or raise BackendError.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx

from .schemas import GenerateQuestionsRequest
from .tokens import Credentials, access_token_expiring

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3001/api"

# Tests swap this for an httpx.MockTransport.
transport: httpx.AsyncBaseTransport | None = None


class BackendError(RuntimeError):
    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class UploadedDocument:
    filename: str
    content: bytes
    content_type: str | None = None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def quiz_api_url() -> str:
    return (os.environ.get("QUIZ_API_URL", DEFAULT_API_URL).strip() or DEFAULT_API_URL).rstrip("/")


def request_timeout_s() -> float:
    return _env_float("QUIZ_API_TIMEOUT_S", 30.0)


def generate_timeout_s() -> float:
    return _env_float("QUIZ_API_GENERATE_TIMEOUT_S", 300.0)


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return f"HTTP error! status: {resp.status_code}"


def _unwrap(resp: httpx.Response, endpoint: str) -> Any:
    if not resp.is_success:
        message = _error_message(resp)
        logger.warning("backend_request_failed endpoint=%s status=%s", endpoint, resp.status_code)
        raise BackendError(message, status_code=resp.status_code)

    if resp.status_code == 204 or not resp.content:
        return None

    try:
        body = resp.json()
    except ValueError as exc:
        raise BackendError(f"Backend returned invalid JSON for {endpoint}.") from exc

    if not isinstance(body, dict):
        return body
    if body.get("success") is False:
        message = str(body.get("message") or "").strip() or "Request was not successful."
        raise BackendError(message, status_code=422)
    return body.get("data")


async def _send(
    method: str,
    endpoint: str,
    *,
    access_token: str | None,
    json: Any = None,
    params: dict[str, str] | None = None,
    data: dict[str, Any] | None = None,
    files: dict[str, tuple[str, bytes, str]] | None = None,
    timeout_s: float,
) -> httpx.Response:
    headers: dict[str, str] = {}
    if files is None:
        headers["Content-Type"] = "application/json"
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"

    try:
        async with httpx.AsyncClient(base_url=quiz_api_url(), timeout=timeout_s, transport=transport) as client:
            return await client.request(
                method,
                endpoint,
                headers=headers,
                json=json,
                params=params,
                data=data,
                files=files,
            )
    except httpx.HTTPError as exc:
        logger.warning("backend_unreachable endpoint=%s error=%s", endpoint, exc)
        raise BackendError(f"Could not reach the quiz service: {exc}", status_code=503) from exc


async def refresh_credentials(credentials: Credentials) -> None:
    """
    Exchange the refresh token for a new pair, updating `credentials` in place.

    On failure the credentials are cleared and a 401 BackendError is raised.
    """
    if not credentials.can_refresh:
        raise BackendError("Session expired. Please sign in again.", status_code=401)

    resp = await _send(
        "POST",
        "/auth/refresh",
        access_token=None,
        json={"refreshToken": credentials.refresh_token},
        timeout_s=request_timeout_s(),
    )
    try:
        data = _unwrap(resp, "/auth/refresh")
    except BackendError as exc:
        credentials.clear()
        raise BackendError("Session expired. Please sign in again.", status_code=401) from exc

    token = (data or {}).get("token") or (data or {}).get("accessToken")
    if not token:
        credentials.clear()
        raise BackendError("Session expired. Please sign in again.", status_code=401)

    credentials.replace(
        access_token=str(token),
        refresh_token=(data or {}).get("refreshToken"),
    )
    logger.info("access_token_refreshed")


async def request(
    method: str,
    endpoint: str,
    *,
    credentials: Credentials | None = None,
    json: Any = None,
    params: dict[str, str] | None = None,
    data: dict[str, Any] | None = None,
    files: dict[str, tuple[str, bytes, str]] | None = None,
    timeout_s: float | None = None,
) -> Any:
    """
    Call the backend and return the envelope's `data`.

    A 401 with a refresh token on hand triggers one refresh and one retry.
    """
    timeout = request_timeout_s() if timeout_s is None else timeout_s

    if credentials is not None and credentials.can_refresh and access_token_expiring(credentials.access_token):
        await refresh_credentials(credentials)

    def access_token() -> str | None:
        return credentials.access_token if credentials is not None else None

    resp = await _send(
        method,
        endpoint,
        access_token=access_token(),
        json=json,
        params=params,
        data=data,
        files=files,
        timeout_s=timeout,
    )

    if resp.status_code == 401 and credentials is not None and credentials.can_refresh:
        logger.info("access_token_rejected endpoint=%s", endpoint)
        await refresh_credentials(credentials)
        resp = await _send(
            method,
            endpoint,
            access_token=access_token(),
            json=json,
            params=params,
            data=data,
            files=files,
            timeout_s=timeout,
        )

    return _unwrap(resp, endpoint)


def _user_params(user_id: str | None) -> dict[str, str] | None:
    return {"userId": str(user_id)} if user_id else None


async def _post_document(
    endpoint: str,
    document: UploadedDocument,
    payload: GenerateQuestionsRequest,
    credentials: Credentials | None,
) -> dict[str, Any]:
    files = {
        "file": (
            document.filename,
            document.content,
            document.content_type or "application/octet-stream",
        )
    }
    result = await request(
        "POST",
        endpoint,
        credentials=credentials,
        data=payload.form_fields(),
        files=files,
        timeout_s=generate_timeout_s(),
    )
    return result or {}


async def generate_questions(
    document: UploadedDocument,
    payload: GenerateQuestionsRequest,
    *,
    credentials: Credentials | None = None,
) -> dict[str, Any]:
    """
    Generate a question set from one document. Several question types go to
    the multi-type endpoint.
    """
    if len(payload.question_types) > 1:
        return await generate_multiple_questions(document, payload, credentials=credentials)
    return await _post_document("/questions/generate", document, payload, credentials)


async def generate_multiple_questions(
    document: UploadedDocument,
    payload: GenerateQuestionsRequest,
    *,
    credentials: Credentials | None = None,
) -> dict[str, Any]:
    return await _post_document("/questions/generate-multiple", document, payload, credentials)


async def list_question_sets(*, credentials: Credentials | None = None, user_id: str | None = None) -> list[dict]:
    result = await request("GET", "/questions/sets", credentials=credentials, params=_user_params(user_id))
    return list(result or [])


async def get_question_set(set_id: str, *, credentials: Credentials | None = None) -> dict[str, Any]:
    result = await request("GET", f"/questions/sets/{set_id}", credentials=credentials)
    if not result:
        raise BackendError("Question set not found.", status_code=404)
    return result


async def delete_question_set(
    set_id: str,
    *,
    credentials: Credentials | None = None,
    user_id: str | None = None,
) -> None:
    await request("DELETE", f"/questions/sets/{set_id}", credentials=credentials, params=_user_params(user_id))


async def start_practice(
    question_set_id: str,
    *,
    credentials: Credentials | None = None,
    user_id: str | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"questionSetId": question_set_id}
    if user_id:
        body["userId"] = user_id
    result = await request("POST", "/practice/start", credentials=credentials, json=body)
    return result or {}


async def submit_answer(
    session_id: str,
    question_id: str,
    selected_choices: list[str],
    *,
    credentials: Credentials | None = None,
) -> dict[str, Any]:
    result = await request(
        "POST",
        "/practice/answer",
        credentials=credentials,
        json={"sessionId": session_id, "questionId": question_id, "selectedChoices": selected_choices},
    )
    return result or {}


async def complete_practice(session_id: str, *, credentials: Credentials | None = None) -> dict[str, Any]:
    result = await request("POST", "/practice/complete", credentials=credentials, json={"sessionId": session_id})
    return result or {}


async def get_practice_session(session_id: str, *, credentials: Credentials | None = None) -> dict[str, Any]:
    result = await request("GET", f"/practice/sessions/{session_id}", credentials=credentials)
    if not result:
        raise BackendError("Practice session not found.", status_code=404)
    return result


async def list_practice_sessions(
    *,
    credentials: Credentials | None = None,
    user_id: str | None = None,
) -> list[dict]:
    result = await request("GET", "/practice/sessions", credentials=credentials, params=_user_params(user_id))
    return list(result or [])


async def login(email: str, password: str) -> dict[str, Any]:
    result = await request("POST", "/auth/login", json={"email": email, "password": password})
    return result or {}


async def register(email: str, password: str, name: str) -> dict[str, Any]:
    result = await request(
        "POST",
        "/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    return result or {}


async def me(*, credentials: Credentials) -> dict[str, Any]:
    result = await request("GET", "/auth/me", credentials=credentials)
    return result or {}


async def logout(*, credentials: Credentials) -> None:
    body = {"refreshToken": credentials.refresh_token} if credentials.refresh_token else {}
    await request("POST", "/auth/logout", credentials=credentials, json=body)
