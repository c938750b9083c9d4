"""
Login page request/response models.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=128)


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=128)
    confirm_password: str = Field(default="", max_length=128, alias="confirmPassword")
    full_name: str = Field(default="", max_length=200, alias="fullName")


class FormErrors(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")
    full_name: str = Field(default="", alias="fullName")

    def ok(self) -> bool:
        return not any((self.email, self.password, self.confirm_password, self.full_name))
