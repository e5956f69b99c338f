from datetime import datetime

from pydantic import Field

from app.schemas.common import ApiModel


class SubcategoryOut(ApiModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    icon: str | None = None
    sort_order: int = 0


class CategoryOut(ApiModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    icon: str | None = None
    sort_order: int = 0
    created_at: datetime | None = None
    subcategories: list[SubcategoryOut] = Field(default_factory=list)


class AdminCategoryOut(ApiModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    icon: str | None = None
    is_active: bool
    sort_order: int = 0
    created_at: datetime | None = None
    business_count: int = 0


class CreateCategoryRequest(ApiModel):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    icon: str | None = Field(default=None, max_length=100)
    sort_order: int = Field(default=0, ge=0)
