"""
Generator page logic.

- Validate the uploaded document (type, size)
- Forward it with the quiz parameters to the remote backend
- Convert the returned question set for practice and keep it for other pages
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Sequence

from fastapi import HTTPException, UploadFile
from pydantic import ValidationError

from auth import service as auth_service
from core import notify, quiz_backend
from core.schemas import GenerateQuestionsRequest, QuestionSet
from storage import service as state

from . import export, schemas

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".txt", ".pdf"}
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB
DEFAULT_QUESTION_TYPES = ("multiple-choice",)


def max_upload_bytes_from_env() -> int:
    raw = os.environ.get("MAX_UPLOAD_BYTES", "").strip()
    if not raw:
        return DEFAULT_MAX_UPLOAD_BYTES
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_MAX_UPLOAD_BYTES
    return value if value > 0 else DEFAULT_MAX_UPLOAD_BYTES


def _size_label(size_bytes: int) -> str:
    if size_bytes > 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    return f"{size_bytes / 1024:.1f} KB"


def validate_upload(file: UploadFile) -> None:
    """
    Accept .txt and .pdf uploads. Either the extension or the declared
    content type is enough; browsers disagree on the latter.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Please upload a file.")

    ext = Path(file.filename).suffix.lower()
    content_type = (file.content_type or "").lower()
    if ext not in ALLOWED_EXTENSIONS and "text" not in content_type and "pdf" not in content_type:
        raise HTTPException(status_code=400, detail="Only PDF and TXT files are supported.")


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    chunk_size = 1024 * 1024
    buf = bytearray()
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.",
            )
    return bytes(buf)


def quality_metrics(difficulty: str | None) -> schemas.QualityMetrics:
    return schemas.QualityMetrics(
        difficulty=(difficulty or "").strip() or "Medium",
        clarity="Clear content",
        coverage="Good knowledge coverage",
    )


def _truncation_toast(data: dict[str, Any]) -> notify.Toast | None:
    info = data.get("textProcessingInfo")
    if not isinstance(info, dict) or not info.get("wasTruncated"):
        return None
    original = int(info.get("originalLength") or 0)
    truncated = int(info.get("truncatedLength") or 0)
    return notify.warning(
        f"The input text was too long ({round(original / 1000)}K characters) and was shortened to "
        f"{round(truncated / 1000)}K characters. Questions are based on the beginning of the document."
    )


async def generate(
    browser_id: str,
    file: UploadFile,
    *,
    subject: str,
    question_count: int,
    question_types: Sequence[str],
    tone: str | None = None,
    difficulty: str | None = None,
    title: str | None = None,
) -> dict[str, Any]:
    subject = (subject or "").strip()
    if not file.filename or not subject:
        raise HTTPException(status_code=400, detail="Please upload a file and enter a subject.")

    types = [t.strip() for t in question_types if t and t.strip()]
    if not types:
        raise HTTPException(status_code=400, detail="Please choose at least one question type.")

    validate_upload(file)
    content = await read_upload_bytes(file, max_upload_bytes_from_env())
    if not content:
        raise HTTPException(status_code=400, detail="The uploaded file is empty.")

    try:
        payload = GenerateQuestionsRequest(
            subject=subject,
            question_count=question_count,
            question_types=[schemas.backend_type(t) for t in types],
            tone=(tone or "").strip() or None,
            difficulty=(difficulty or "").strip() or None,
            title=(title or "").strip() or None,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Invalid quiz settings.") from exc

    document = quiz_backend.UploadedDocument(
        filename=file.filename,
        content=content,
        content_type=file.content_type,
    )
    logger.info(
        "generate_requested browser_id=%s filename=%s size=%s types=%s count=%s",
        browser_id,
        document.filename,
        _size_label(len(content)),
        ",".join(payload.question_types),
        payload.question_count,
    )

    async with auth_service.backend_credentials(browser_id) as credentials:
        data = await quiz_backend.generate_questions(
            document,
            payload,
            credentials=credentials if credentials.access_token else None,
        )

    try:
        question_set = QuestionSet.model_validate(data)
    except ValidationError as exc:
        logger.warning("generate_response_invalid browser_id=%s error=%s", browser_id, exc)
        raise HTTPException(status_code=502, detail="The quiz service returned an unexpected response.") from exc

    questions = schemas.to_practice_questions(question_set)
    if not questions:
        raise HTTPException(status_code=422, detail="No questions could be generated from this document.")

    await state.save(browser_id, state.GENERATED_QUESTIONS, schemas.dump_questions(questions))
    await state.save(browser_id, state.CURRENT_QUESTION_SET, data)
    # A new question list invalidates any session built from the previous one.
    await state.remove(browser_id, state.PRACTICE_SESSION)

    toasts: list[notify.Toast] = []
    truncation = _truncation_toast(data)
    if truncation is not None:
        toasts.append(truncation)
    toasts.append(
        notify.success(f"Generated {len(questions)} questions across {len(types)} question type(s).")
    )

    return {
        "question_set_id": question_set.id,
        "title": question_set.title,
        "questions": schemas.dump_questions(questions),
        "quality_metrics": quality_metrics(difficulty).model_dump(),
        "file": {"name": document.filename, "size": _size_label(len(content))},
        "notifications": notify.dump(toasts),
    }


async def current_questions(browser_id: str) -> list[schemas.PracticeQuestion]:
    return schemas.load_questions(await state.load(browser_id, state.GENERATED_QUESTIONS))


async def _export_subject(browser_id: str) -> str:
    current = await state.load(browser_id, state.CURRENT_QUESTION_SET)
    if isinstance(current, dict):
        return str(current.get("subject") or "")
    return ""


async def export_questions(browser_id: str, *, fmt: str) -> tuple[str, str]:
    """
    Return (filename, body) for the stored questions in `fmt` ("csv" or "txt").
    """
    questions = await current_questions(browser_id)
    if not questions:
        raise HTTPException(status_code=404, detail="There are no generated questions to export.")

    body = export.to_csv(questions) if fmt == "csv" else export.to_text(questions)
    subject = await _export_subject(browser_id)
    return export.export_filename(subject, int(time.time() * 1000), fmt), body
