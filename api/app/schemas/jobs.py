from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field, model_validator

from app.schemas.common import ApiModel

JobType = Literal["full_time", "part_time", "contract", "internship", "freelance"]
ExperienceLevel = Literal["fresher", "junior", "mid", "senior", "lead"]


class JobOut(ApiModel):
    id: int
    uuid: str
    business_id: int
    title: str
    description: str
    job_type: str | None = None
    experience_level: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    salary_currency: str | None = None
    location: str | None = None
    is_remote: bool = False
    skills: list[str] = Field(default_factory=list)
    is_active: bool
    status: str
    rejection_reason: str | None = None
    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CreateJobRequest(ApiModel):
    title: str = Field(min_length=2, max_length=200)
    description: str = Field(min_length=1, max_length=10000)
    job_type: JobType = "full_time"
    experience_level: ExperienceLevel = "fresher"
    salary_min: Decimal | None = Field(default=None, ge=0)
    salary_max: Decimal | None = Field(default=None, ge=0)
    salary_currency: str = Field(default="INR", min_length=3, max_length=3)
    location: str | None = Field(default=None, max_length=255)
    is_remote: bool = False
    skills: list[str] = Field(default_factory=list)
    expires_at: datetime | None = None

    @model_validator(mode="after")
    def check_salary_range(self) -> "CreateJobRequest":
        if self.salary_min is not None and self.salary_max is not None and self.salary_min > self.salary_max:
            raise ValueError("salaryMin must not exceed salaryMax")
        return self
