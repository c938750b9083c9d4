"""
Postgres pool for the client-state store.

Opened by the FastAPI lifespan in `api/main.py`, closed on shutdown. Pool
sizing and the per-statement timeout come from the environment:

- DATABASE_URL (required; libpq's `sslmode` is dropped, asyncpg rejects it)
- DB_POOL_MIN_SIZE / DB_POOL_MAX_SIZE (1 / 5)
- DB_COMMAND_TIMEOUT_S (30)
"""

from __future__ import annotations

import logging
import os
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


def _env_number(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        return default
    return value if value > 0 else default


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    parts = urlsplit(url)
    query = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    return urlunsplit(parts._replace(query=urlencode(query)))


def pool_settings() -> dict[str, int]:
    min_size = _env_number("DB_POOL_MIN_SIZE", 1)
    return {
        "min_size": min_size,
        "max_size": max(min_size, _env_number("DB_POOL_MAX_SIZE", 5)),
        "command_timeout": _env_number("DB_COMMAND_TIMEOUT_S", 30),
    }


async def init_pool() -> None:
    global _pool
    if _pool is not None:
        return
    settings = pool_settings()
    _pool = await asyncpg.create_pool(dsn=database_url(), **settings)
    logger.info("db_pool_opened min_size=%s max_size=%s", settings["min_size"], settings["max_size"])


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return
    await _pool.close()
    _pool = None


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


async def fetch_value(sql: str, *args: Any) -> Any:
    """
    First column of the first row, or None when nothing matched.
    """
    return await pool().fetchval(sql, *args)


async def execute(sql: str, *args: Any) -> str:
    """
    Run a statement and return asyncpg's status tag (e.g. "DELETE 1").
    """
    return await pool().execute(sql, *args)
