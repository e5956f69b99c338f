from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field, field_validator

from app.schemas.common import ApiModel, validate_phone

BusinessSortBy = Literal["name", "averageRating", "totalReviews", "createdAt"]
SortDir = Literal["asc", "desc"]
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class BusinessCategoryRef(ApiModel):
    id: int
    name: str
    slug: str | None = None


class BusinessOwnerRef(ApiModel):
    id: int
    uuid: str
    first_name: str | None = None
    last_name: str | None = None
    avatar: str | None = None


class BusinessListItemOut(ApiModel):
    id: int
    uuid: str
    name: str
    slug: str
    description: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    address_line_1: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    logo: str | None = None
    cover_image: str | None = None
    opening_time: str | None = None
    closing_time: str | None = None
    working_days: str | None = None
    is_verified: bool
    average_rating: float = 0.0
    total_reviews: int = 0
    created_at: datetime
    category_id: int | None = None
    category_name: str | None = None
    subcategory_id: int | None = None
    subcategory_name: str | None = None
    owner_first_name: str | None = None
    owner_last_name: str | None = None


class BusinessDetailOut(ApiModel):
    id: int
    uuid: str
    category_id: int | None = None
    subcategory_id: int | None = None
    name: str
    slug: str
    description: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    address_line_1: str | None = None
    address_line_2: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    country: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    logo: str | None = None
    cover_image: str | None = None
    opening_time: str | None = None
    closing_time: str | None = None
    working_days: str | None = None
    is_active: bool
    is_verified: bool
    status: str
    rejection_reason: str | None = None
    average_rating: float = 0.0
    total_reviews: int = 0
    created_at: datetime
    updated_at: datetime
    category: BusinessCategoryRef | None = None
    subcategory: BusinessCategoryRef | None = None
    owner: BusinessOwnerRef | None = None


class AdminBusinessOut(ApiModel):
    id: int
    uuid: str
    name: str
    slug: str
    description: str | None = None
    city: str | None = None
    state: str | None = None
    average_rating: float = 0.0
    total_reviews: int = 0
    is_verified: bool
    is_active: bool
    status: str
    rejection_reason: str | None = None
    category_id: int | None = None
    category_name: str | None = None
    owner_name: str | None = None
    owner_role: str | None = None
    created_at: datetime


class BusinessWriteFields(ApiModel):
    subcategory_id: int | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, max_length=5000)
    phone: str | None = None
    email: str | None = Field(default=None, max_length=255)
    website: str | None = Field(default=None, max_length=500)
    address_line_1: str | None = Field(default=None, max_length=255)
    address_line_2: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    pincode: str | None = Field(default=None, pattern=r"^\d{6}$")
    latitude: Decimal | None = Field(default=None, ge=-90, le=90)
    longitude: Decimal | None = Field(default=None, ge=-180, le=180)
    opening_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    closing_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    working_days: str | None = Field(default=None, max_length=100)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str | None) -> str | None:
        return validate_phone(value)


class CreateBusinessRequest(BusinessWriteFields):
    name: str = Field(min_length=2, max_length=200)
    category_id: int = Field(gt=0)


class UpdateBusinessRequest(BusinessWriteFields):
    name: str | None = Field(default=None, min_length=2, max_length=200)
    category_id: int | None = Field(default=None, gt=0)
