"""
Shapes exchanged with the remote quiz backend.

Field names follow the backend's camelCase JSON through aliases; Python code
uses the snake_case attribute names.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _BackendModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class Choice(_BackendModel):
    id: str = ""
    label: str
    content: str
    order: int = 0


class CorrectAnswer(_BackendModel):
    id: str = ""
    choice_label: str = Field(..., alias="choiceLabel")


class Question(_BackendModel):
    id: str
    content: str
    explanation: str | None = None
    type: str
    order: int = 0
    choices: list[Choice] = Field(default_factory=list)
    correct_answers: list[CorrectAnswer] = Field(default_factory=list, alias="correctAnswers")


class QuestionSet(_BackendModel):
    id: str = ""
    title: str = ""
    subject: str = ""
    tone: str | None = None
    difficulty: str | None = None
    type: str = ""
    file_name: str | None = Field(default=None, alias="fileName")
    created_at: str = Field(default="", alias="createdAt")
    questions: list[Question] = Field(default_factory=list)


class GenerateQuestionsRequest(_BackendModel):
    subject: str = Field(..., min_length=1)
    question_count: int = Field(10, ge=1, le=50, alias="questionCount")
    question_types: list[str] = Field(default_factory=lambda: ["MULTIPLE_CHOICE"], alias="questionTypes")
    tone: str | None = None
    difficulty: str | None = None
    title: str | None = None

    def form_fields(self) -> dict[str, str | list[str]]:
        """
        Multipart form fields for the generate endpoints.

        A single type is sent as `questionType`; several as repeated
        `questionTypes` fields.
        """
        fields: dict[str, str | list[str]] = {
            "subject": self.subject,
            "questionCount": str(self.question_count),
        }
        if len(self.question_types) == 1:
            fields["questionType"] = self.question_types[0]
        else:
            fields["questionTypes"] = list(self.question_types)
        if self.tone:
            fields["tone"] = self.tone
        if self.difficulty:
            fields["difficulty"] = self.difficulty
        if self.title:
            fields["title"] = self.title
        return fields
