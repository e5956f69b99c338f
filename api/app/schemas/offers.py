from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field, model_validator

from app.schemas.common import ApiModel

DiscountType = Literal["percentage", "flat", "bogo", "freebie"]


class OfferOut(ApiModel):
    id: int
    uuid: str
    business_id: int
    title: str
    description: str | None = None
    discount_type: str | None = None
    discount_value: float | None = None
    min_order_value: float | None = None
    max_discount: float | None = None
    coupon_code: str | None = None
    terms_and_conditions: str | None = None
    image: str | None = None
    is_active: bool
    status: str
    rejection_reason: str | None = None
    starts_at: datetime | None = None
    expires_at: datetime
    created_at: datetime
    updated_at: datetime


class CreateOfferRequest(ApiModel):
    title: str = Field(min_length=2, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    discount_type: DiscountType = "percentage"
    discount_value: Decimal | None = Field(default=None, ge=0)
    min_order_value: Decimal | None = Field(default=None, ge=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    coupon_code: str | None = Field(default=None, max_length=50)
    terms_and_conditions: str | None = Field(default=None, max_length=5000)
    image: str | None = Field(default=None, max_length=500)
    starts_at: datetime | None = None
    expires_at: datetime

    @model_validator(mode="after")
    def check_window(self) -> "CreateOfferRequest":
        if self.starts_at is not None and self.starts_at >= self.expires_at:
            raise ValueError("startsAt must be before expiresAt")
        if self.discount_type == "percentage" and self.discount_value is not None and self.discount_value > 100:
            raise ValueError("percentage discounts cannot exceed 100")
        return self
