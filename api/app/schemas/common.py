import math
import re
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base for every wire model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationMeta(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ApiResponse(ApiModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class PaginatedResponse(ApiModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T
    pagination: PaginationMeta


def build_pagination(*, page: int, limit: int, total: int) -> PaginationMeta:
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return PaginationMeta(page=page, limit=limit, total=total, total_pages=total_pages)


PHONE_PATTERN = re.compile(r"^(\+91|91)?[6-9]\d{9}$")


def validate_phone(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        return None
    if not PHONE_PATTERN.match(stripped):
        raise ValueError("Please provide a valid Indian phone number.")
    return stripped
