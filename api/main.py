import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import router as auth_router
from core import db, notify, quiz_backend
from library import router as library_router
from practice import router as practice_router
from questions import router as questions_router
from storage import repository as state_repository

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(_: FastAPI):
    # One DB pool per process; the state table is created on first boot.
    await db.init_pool()
    await state_repository.ensure_schema()
    try:
        yield
    finally:
        await db.close_pool()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(status_code: int, detail: object) -> dict:
    if isinstance(detail, dict):
        message = str(detail.get("message") or "Request failed.")
        body = dict(detail)
    else:
        message = str(detail)
        body = {}
    body["detail"] = message
    body["notifications"] = notify.dump([notify.error(message)])
    if status_code == 401:
        body["redirect"] = "/login"
    return body


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.detail),
        headers=exc.headers,
    )


@app.exception_handler(quiz_backend.BackendError)
async def backend_error_handler(request: Request, exc: quiz_backend.BackendError) -> JSONResponse:
    # 401, 404 and 422 from upstream keep their status; anything else is a gateway failure.
    status_code = exc.status_code if exc.status_code in (401, 404, 422) else 502
    logger.warning("backend_error path=%s status=%s error=%s", request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=status_code, content=_error_body(status_code, str(exc)))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    body = _error_body(422, "Some fields are missing or invalid.")
    body["errors"] = exc.errors()
    return JSONResponse(status_code=422, content=jsonable_encoder(body))


app.include_router(auth_router.router, tags=["auth"])
app.include_router(questions_router.router, tags=["questions"])
app.include_router(library_router.router, tags=["library"])
app.include_router(practice_router.router, tags=["practice"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "quiz studio api"}
