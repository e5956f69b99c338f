from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.common import ApiModel

PostStatusFilter = Literal["pending", "approved", "rejected", "all"]
PostType = Literal["listing", "job", "offer"]


class PostOut(ApiModel):
    id: int
    uuid: str
    type: PostType
    title: str
    description: str | None = None
    status: str
    is_active: bool
    rejection_reason: str | None = None
    business_name: str | None = None
    business_id: int | None = None
    category_name: str | None = None
    created_at: datetime


class PostListData(ApiModel):
    posts: list[PostOut] = Field(default_factory=list)


class PostTypeRequest(ApiModel):
    type: str | None = None


class RejectPostRequest(PostTypeRequest):
    reason: str | None = Field(default=None, max_length=2000)


class ModeratedPostOut(ApiModel):
    id: int
    uuid: str
    type: PostType
    title: str
    status: str
    rejection_reason: str | None = None
    is_active: bool
    business_id: int | None = None
    created_at: datetime
    updated_at: datetime


class AdminStatsOut(ApiModel):
    total_users: int
    total_businesses: int
    pending_businesses: int
    total_categories: int
    total_jobs: int
    pending_jobs: int
    total_offers: int
    pending_offers: int
    total_reviews: int
