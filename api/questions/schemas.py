"""
Question shapes used by the generator, library and practice pages.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.schemas import Question, QuestionSet


class PracticeQuestion(BaseModel):
    """
    A question flattened for answering: options are choice texts and the
    correct answers are the texts of the correct choices.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer: list[str] = Field(default_factory=list, alias="correctAnswer")
    explanation: str | None = None
    type: str = "multiple-choice"
    question_id: str | None = Field(default=None, alias="questionId")
    labels: list[str] = Field(default_factory=list)

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _as_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    def label_for(self, option: str) -> str | None:
        try:
            index = self.options.index(option)
        except ValueError:
            return None
        if index < len(self.labels):
            return self.labels[index]
        return None


class QualityMetrics(BaseModel):
    difficulty: str
    clarity: str
    coverage: str


def normalize_type(raw: str) -> str:
    """
    Backend types are upper snake case (MULTIPLE_CHOICE); the practice page
    uses lower kebab case (multiple-choice).
    """
    return (raw or "").strip().lower().replace("_", "-")


def backend_type(raw: str) -> str:
    return (raw or "").strip().upper().replace("-", "_")


def to_practice_question(question: Question, position: int) -> PracticeQuestion:
    choices = sorted(question.choices, key=lambda c: c.order)
    by_label = {choice.label: choice.content for choice in choices}
    correct = [by_label[ca.choice_label] for ca in question.correct_answers if by_label.get(ca.choice_label)]
    return PracticeQuestion(
        id=position,
        question=question.content,
        options=[choice.content for choice in choices],
        correct_answer=correct,
        explanation=question.explanation,
        type=normalize_type(question.type),
        question_id=question.id,
        labels=[choice.label for choice in choices],
    )


def to_practice_questions(question_set: QuestionSet) -> list[PracticeQuestion]:
    ordered = sorted(question_set.questions, key=lambda q: q.order)
    return [to_practice_question(q, i) for i, q in enumerate(ordered, start=1)]


def dump_questions(questions: list[PracticeQuestion]) -> list[dict]:
    return [q.model_dump(by_alias=True) for q in questions]


def load_questions(raw: object) -> list[PracticeQuestion]:
    if not isinstance(raw, list):
        return []
    return [PracticeQuestion.model_validate(item) for item in raw if isinstance(item, dict)]
