"""
Client-state persistence (raw SQL).

One row per (browser, key). Values are JSON documents; asyncpg hands jsonb
back as text, so callers decode.
"""

from __future__ import annotations

import json
from typing import Any

from core import db

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS client_state (
  browser_id text NOT NULL,
  key        text NOT NULL,
  value      jsonb NOT NULL,
  updated_at timestamptz NOT NULL DEFAULT now(),
  PRIMARY KEY (browser_id, key)
)
"""


def _json_arg(value: Any) -> str:
    # asyncpg does not encode Python objects for jsonb parameters.
    return json.dumps(value, ensure_ascii=False)


async def ensure_schema() -> None:
    await db.execute(SCHEMA_SQL)


async def get_value(browser_id: str, key: str) -> str | None:
    value = await db.fetch_value(
        """
        SELECT value::text
        FROM client_state
        WHERE browser_id = $1
          AND key = $2
        """,
        browser_id,
        key,
    )
    return None if value is None else str(value)


async def set_value(browser_id: str, key: str, value: Any) -> None:
    await db.execute(
        """
        INSERT INTO client_state (browser_id, key, value)
        VALUES ($1, $2, $3::jsonb)
        ON CONFLICT (browser_id, key) DO UPDATE
        SET value = EXCLUDED.value,
            updated_at = now()
        """,
        browser_id,
        key,
        _json_arg(value),
    )


async def delete_value(browser_id: str, key: str) -> bool:
    status = await db.execute(
        """
        DELETE FROM client_state
        WHERE browser_id = $1
          AND key = $2
        """,
        browser_id,
        key,
    )
    return status.endswith(" 1")
