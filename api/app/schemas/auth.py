import re
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field, field_validator

from app.schemas.common import ApiModel, validate_phone

SelfServiceRole = Literal["normal_user", "business_user"]


class RegisterRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = None
    role: SelfServiceRole = "normal_user"

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        if not re.search(r"[a-z]", value) or not re.search(r"[A-Z]", value) or not re.search(r"\d", value):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number."
            )
        return value

    @field_validator("first_name")
    @classmethod
    def strip_first_name(cls, value: str) -> str:
        stripped = value.strip()
        if len(stripped) < 2:
            raise ValueError("First name must be at least 2 characters.")
        return stripped

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str | None) -> str | None:
        return validate_phone(value)


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(ApiModel):
    refresh_token: str = Field(min_length=1)


class AuthUserOut(ApiModel):
    id: int
    uuid: str
    email: str
    first_name: str
    last_name: str | None = None
    role: str
    created_at: datetime | None = None


class AuthTokensOut(ApiModel):
    user: AuthUserOut | None = None
    access_token: str
    refresh_token: str
