"""
Browser-scoped key/value state.

This plays the part localStorage plays in a single-page client: pages hand
data to each other through well-known keys.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from . import repository

logger = logging.getLogger(__name__)

GENERATED_QUESTIONS = "generatedQuestions"
CURRENT_QUESTION_SET = "currentQuestionSet"
QUIZ_SETS = "quizSets"
USER = "user"
AUTH_TOKEN = "auth_token"
REFRESH_TOKEN = "refresh_token"
PRACTICE_SESSION = "practiceSession"
MEMORY_DECK = "memoryDeck"


async def load(browser_id: str, key: str, default: Any = None) -> Any:
    raw = await repository.get_value(browser_id, key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        # A corrupt entry behaves like a missing one.
        logger.warning("client_state_corrupt browser_id=%s key=%s", browser_id, key)
        return default


async def save(browser_id: str, key: str, value: Any) -> None:
    await repository.set_value(browser_id, key, value)


async def remove(browser_id: str, *keys: str) -> None:
    for key in keys:
        await repository.delete_value(browser_id, key)
