from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from app.schemas.common import ApiModel, validate_phone

UserRoleFilter = Literal["normal_user", "business_user", "admin", "all"]


class UserProfileOut(ApiModel):
    id: int
    uuid: str
    email: str
    first_name: str
    last_name: str | None = None
    phone: str | None = None
    avatar: str | None = None
    role: str
    is_active: bool
    is_email_verified: bool = False
    is_phone_verified: bool = False
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class UpdateProfileRequest(ApiModel):
    first_name: str | None = Field(default=None, min_length=2, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = None
    avatar: str | None = Field(default=None, max_length=500)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str | None) -> str | None:
        return validate_phone(value)
