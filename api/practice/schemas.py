"""
Practice page request bodies.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .memory import Rating


class StartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_set_id: str | None = Field(default=None, alias="questionSetId")


class SelectRequest(BaseModel):
    option: str = Field(..., min_length=1)


class RateRequest(BaseModel):
    rating: Rating
    index: int | None = Field(default=None, ge=0)


class ReviewRequest(BaseModel):
    limit: int = Field(default=20, ge=1, le=100)
