"""
Practice session state machine.

A session walks through a fixed list of questions. For the current question
the learner selects options, checks the answer (scored once per question),
optionally rates their memory of it, and moves on. The clock runs from the
start, stops while paused, and freezes at completion.

Every method that depends on time takes `now` (epoch seconds) so callers
and tests control the clock.
"""

from __future__ import annotations

import math
import time
from typing import Any, Literal

from pydantic import BaseModel, Field

from core import notify
from questions.schemas import PracticeQuestion

from . import grading
from .memory import RATINGS


class PracticeError(ValueError):
    pass


def _now(now: float | None) -> float:
    return time.time() if now is None else now


def format_time(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


class PracticeSession(BaseModel):
    questions: list[PracticeQuestion]
    current_index: int = 0
    selected: list[str] = Field(default_factory=list)
    show_answer: bool = False
    user_answers: dict[int, list[str]] = Field(default_factory=dict)
    results: dict[int, bool] = Field(default_factory=dict)
    ratings: dict[int, str] = Field(default_factory=dict)
    # Memory card state before this session first rated each question.
    deck_snapshots: dict[int, dict[str, Any] | None] = Field(default_factory=dict)
    score: int = 0
    started_at: float
    paused_at: float | None = None
    paused_seconds: float = 0.0
    completed_at: float | None = None
    mode: Literal["practice", "review"] = "practice"
    title: str | None = None
    question_set_id: str | None = None
    remote_session_id: str | None = None

    @classmethod
    def begin(cls, questions: list[PracticeQuestion], *, now: float | None = None, **fields: Any) -> "PracticeSession":
        if not questions:
            raise PracticeError("Please generate questions before practicing.")
        return cls(questions=questions, started_at=_now(now), **fields)

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current(self) -> PracticeQuestion:
        return self.questions[self.current_index]

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    @property
    def is_last(self) -> bool:
        return self.current_index >= self.total - 1

    def elapsed_seconds(self, now: float | None = None) -> int:
        # The clock stops at the earliest of: completion, the current pause, now.
        end = _now(now)
        if self.paused_at is not None:
            end = min(end, self.paused_at)
        if self.completed_at is not None:
            end = min(end, self.completed_at)
        return max(0, math.floor(end - self.started_at - self.paused_seconds))

    def _ensure_open(self) -> None:
        if self.is_completed:
            raise PracticeError("This practice session is already completed. Reset to start again.")

    def select(self, option: str) -> None:
        self._ensure_open()
        if self.show_answer:
            raise PracticeError("The answer for this question has already been checked.")
        if option not in self.current.options:
            raise PracticeError("That option does not belong to the current question.")
        self.selected = grading.apply_selection(self.current, self.selected, option)

    def check(self) -> list[notify.Toast]:
        self._ensure_open()
        if self.show_answer or self.current_index in self.user_answers:
            raise PracticeError("The answer for this question has already been checked.")
        if not self.selected:
            return [notify.warning("Please choose at least one answer before checking.")]

        question = self.current
        correct = grading.is_correct(question, self.selected)
        self.show_answer = True
        self.user_answers[self.current_index] = list(self.selected)
        self.results[self.current_index] = correct

        if correct:
            self.score += 1
            return [notify.success("Correct! You picked the right answer.")]
        return [notify.error(f"Not quite. The correct answer is: {', '.join(question.correct_answer)}")]

    def next(self, now: float | None = None) -> list[notify.Toast]:
        self._ensure_open()
        if not self.is_last:
            self._move_to(self.current_index + 1)
            return []

        current = _now(now)
        if self.paused_at is not None:
            self.paused_seconds += max(0.0, current - self.paused_at)
            self.paused_at = None
        self.completed_at = current
        accuracy = self.accuracy()
        return [notify.success(f"Practice complete! Score {self.score}/{self.total} ({accuracy}%).")]

    def prev(self) -> None:
        self._ensure_open()
        if self.current_index == 0:
            return
        self._move_to(self.current_index - 1)

    def _move_to(self, index: int) -> None:
        # Answered questions come back checked, with their saved selection.
        self.current_index = index
        saved = self.user_answers.get(index)
        self.selected = list(saved or [])
        self.show_answer = saved is not None

    def reset(self, now: float | None = None) -> list[notify.Toast]:
        self.current_index = 0
        self.selected = []
        self.show_answer = False
        self.user_answers = {}
        self.results = {}
        self.ratings = {}
        self.deck_snapshots = {}
        self.score = 0
        self.started_at = _now(now)
        self.paused_at = None
        self.paused_seconds = 0.0
        self.completed_at = None
        return [notify.info("Practice reset. Starting over from the first question.")]

    def pause(self, now: float | None = None) -> None:
        self._ensure_open()
        if self.paused_at is None:
            self.paused_at = _now(now)

    def resume(self, now: float | None = None) -> None:
        self._ensure_open()
        if self.paused_at is not None:
            self.paused_seconds += max(0.0, _now(now) - self.paused_at)
            self.paused_at = None

    def toggle_pause(self, now: float | None = None) -> None:
        if self.is_paused:
            self.resume(now)
        else:
            self.pause(now)

    def rate(self, rating: str, *, index: int | None = None) -> PracticeQuestion:
        """
        Record a memory rating for an already checked question (the current
        one by default) and return that question.
        """
        if rating not in RATINGS:
            raise PracticeError(f"Unknown rating '{rating}'. Allowed: {list(RATINGS)}")
        target = self.current_index if index is None else index
        if not 0 <= target < self.total:
            raise PracticeError("No such question in this session.")
        if target not in self.user_answers:
            raise PracticeError("Check your answer before rating how well you remembered it.")
        self.ratings[target] = rating
        return self.questions[target]

    def accuracy(self) -> str:
        answered = len(self.user_answers)
        if not answered:
            return "0"
        return f"{self.score / answered * 100:.1f}"

    def progress(self) -> float:
        if not self.total:
            return 0.0
        return (self.current_index + 1) / self.total * 100

    def summary(self, now: float | None = None) -> dict[str, Any]:
        elapsed = self.elapsed_seconds(now)
        rating_counts = {r: 0 for r in RATINGS}
        for rating in self.ratings.values():
            rating_counts[rating] = rating_counts.get(rating, 0) + 1
        return {
            "total": self.total,
            "answered": len(self.user_answers),
            "score": self.score,
            "accuracy": self.accuracy(),
            "progress": round(self.progress()),
            "elapsed_seconds": elapsed,
            "elapsed": format_time(elapsed),
            "paused": self.is_paused,
            "completed": self.is_completed,
            "ratings": rating_counts,
            "incorrect_question_ids": [
                self.questions[i].id for i, ok in sorted(self.results.items()) if not ok
            ],
        }

    def question_view(self) -> dict[str, Any]:
        question = self.current
        view: dict[str, Any] = {
            "number": self.current_index + 1,
            "id": question.id,
            "question": question.question,
            "type": grading.canonical_type(question.type),
            "hint": grading.hint(question),
            "allows_multiple": grading.allows_multiple(question),
            "options": [
                {
                    "label": chr(ord("A") + i),
                    "text": option,
                    "state": grading.option_state(question, option, self.selected, self.show_answer),
                }
                for i, option in enumerate(question.options)
            ],
            "selected": list(self.selected),
            "checked": self.show_answer,
            "rating": self.ratings.get(self.current_index),
        }
        if self.show_answer:
            view["is_correct"] = self.results.get(self.current_index, grading.is_correct(question, self.selected))
            view["correct_answer"] = list(question.correct_answer)
            view["explanation"] = question.explanation
        return view

    def view(self, now: float | None = None) -> dict[str, Any]:
        return {
            "title": self.title,
            "mode": self.mode,
            "question_set_id": self.question_set_id,
            "question": self.question_view(),
            "can_go_back": self.current_index > 0 and not self.is_completed,
            "is_last": self.is_last,
            "summary": self.summary(now),
        }
