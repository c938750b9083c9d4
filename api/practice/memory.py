"""
Memory rating (Leitner boxes).

After checking an answer the learner rates how well they remembered it.
Ratings move the question between five boxes; each box has a review
interval, and a card is due once its interval has passed.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta
from typing import Literal

from pydantic import BaseModel, ValidationError

from questions.schemas import PracticeQuestion

Rating = Literal["again", "hard", "good", "easy"]
RATINGS: tuple[str, ...] = ("again", "hard", "good", "easy")

MIN_BOX = 1
MAX_BOX = 5
INTERVAL_DAYS = {1: 0, 2: 1, 3: 3, 4: 7, 5: 14}


class MemoryCard(BaseModel):
    fingerprint: str
    question: PracticeQuestion
    box: int = MIN_BOX
    streak: int = 0
    lapses: int = 0
    reviews: int = 0
    last_rating: str | None = None
    last_reviewed_at: datetime | None = None
    due_at: datetime


def fingerprint(question: PracticeQuestion) -> str:
    """
    Identity of a question across sessions and regenerated sets.
    """
    basis = "\x1f".join([question.question.strip().lower(), *sorted(o.strip().lower() for o in question.options)])
    return hashlib.sha256(basis.encode("utf-8")).hexdigest()[:32]


def _clamp(box: int) -> int:
    return max(MIN_BOX, min(box, MAX_BOX))


def apply_rating(card: MemoryCard, rating: str, now: datetime) -> MemoryCard:
    if rating not in RATINGS:
        raise ValueError(f"Unknown rating '{rating}'. Allowed: {list(RATINGS)}")

    if rating == "again":
        card.box = MIN_BOX
        card.streak = 0
        card.lapses += 1
    elif rating == "hard":
        card.box = _clamp(card.box - 1)
        card.streak = 0
    elif rating == "good":
        card.box = _clamp(card.box + 1)
        card.streak += 1
    else:
        card.box = _clamp(card.box + 2)
        card.streak += 1

    card.reviews += 1
    card.last_rating = rating
    card.last_reviewed_at = now
    card.due_at = now + timedelta(days=INTERVAL_DAYS[card.box])
    return card


def rate(deck: dict[str, MemoryCard], question: PracticeQuestion, rating: str, now: datetime) -> MemoryCard:
    key = fingerprint(question)
    card = deck.get(key)
    if card is None:
        card = MemoryCard(fingerprint=key, question=question, due_at=now)
        deck[key] = card
    else:
        # Keep the latest wording and answer key.
        card.question = question
    return apply_rating(card, rating, now)


def snapshot(deck: dict[str, MemoryCard], question: PracticeQuestion) -> dict | None:
    card = deck.get(fingerprint(question))
    return card.model_dump(mode="json") if card is not None else None


def restore(deck: dict[str, MemoryCard], question: PracticeQuestion, saved: dict | None) -> None:
    """
    Put a question's card back to a `snapshot`; None means it had no card.
    """
    key = fingerprint(question)
    if saved is None:
        deck.pop(key, None)
    else:
        deck[key] = MemoryCard.model_validate(saved)


def due_cards(deck: dict[str, MemoryCard], now: datetime, *, limit: int | None = None) -> list[MemoryCard]:
    due = sorted(
        (card for card in deck.values() if card.due_at <= now),
        key=lambda c: (c.due_at, c.box),
    )
    return due[:limit] if limit is not None else due


def load_deck(raw: object) -> dict[str, MemoryCard]:
    deck: dict[str, MemoryCard] = {}
    if not isinstance(raw, dict):
        return deck
    for key, value in raw.items():
        try:
            deck[str(key)] = MemoryCard.model_validate(value)
        except ValidationError:
            continue
    return deck


def dump_deck(deck: dict[str, MemoryCard]) -> dict[str, dict]:
    return {key: card.model_dump(mode="json", by_alias=True) for key, card in deck.items()}
