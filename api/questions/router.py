"""
Generator page endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import PlainTextResponse, Response

from storage.dependencies import get_browser_id

from . import schemas, service

router = APIRouter(prefix="/questions")


@router.post("/generate")
async def generate(
    file: UploadFile = File(...),
    subject: str = Form(default=""),
    question_count: int = Form(default=10, ge=1, le=50, alias="questionCount"),
    question_types: list[str] = Form(default=service.DEFAULT_QUESTION_TYPES, alias="questionTypes"),
    tone: str | None = Form(default=None),
    difficulty: str | None = Form(default=None),
    title: str | None = Form(default=None),
    browser_id: str = Depends(get_browser_id),
) -> dict:
    """
    Upload a document (.txt or .pdf) and have the quiz service generate questions from it.
    """
    return await service.generate(
        browser_id,
        file,
        subject=subject,
        question_count=question_count,
        question_types=question_types,
        tone=tone,
        difficulty=difficulty,
        title=title,
    )


@router.get("/current")
async def current(browser_id: str = Depends(get_browser_id)) -> dict:
    questions = await service.current_questions(browser_id)
    return {"questions": schemas.dump_questions(questions), "count": len(questions)}


@router.get("/export.csv")
async def export_csv(browser_id: str = Depends(get_browser_id)) -> Response:
    filename, body = await service.export_questions(browser_id, fmt="csv")
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export.txt")
async def export_text(browser_id: str = Depends(get_browser_id)) -> PlainTextResponse:
    _, body = await service.export_questions(browser_id, fmt="txt")
    return PlainTextResponse(body)
