from datetime import datetime

from app.schemas.common import ApiModel


class ApprovedBusinessOut(ApiModel):
    id: int
    uuid: str
    name: str
    slug: str
    description: str | None = None
    phone: str | None = None
    city: str | None = None
    state: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    logo: str | None = None
    cover_image: str | None = None
    is_verified: bool
    average_rating: float = 0.0
    total_reviews: int = 0
    category_name: str | None = None
    created_at: datetime


class ApprovedJobOut(ApiModel):
    id: int
    uuid: str
    title: str
    description: str
    job_type: str | None = None
    experience_level: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    location: str | None = None
    is_remote: bool = False
    business_name: str | None = None
    business_logo: str | None = None
    created_at: datetime


class ApprovedOfferOut(ApiModel):
    id: int
    uuid: str
    title: str
    description: str | None = None
    discount_type: str | None = None
    discount_value: float | None = None
    coupon_code: str | None = None
    image: str | None = None
    business_name: str | None = None
    business_logo: str | None = None
    starts_at: datetime | None = None
    expires_at: datetime
    created_at: datetime
