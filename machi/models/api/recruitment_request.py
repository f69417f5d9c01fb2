# machi/models/api/recruitment_request.py
"""
Recruitment API request models.
Used by routes for input validation; the lifecycle service re-validates
business rules.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from machi.features.recruitments.domain.models import ApplicationAction, OfferAction


class CreateRecruitmentRequest(BaseModel):
    """Request for creating a recruitment."""

    category_id: str = Field(..., min_length=1, description="Category ID")
    title: str = Field(..., min_length=1, max_length=100, description="Recruitment title")
    description: str | None = Field(None, max_length=1000)
    scheduled_at: datetime | None = Field(None, description="Fixed meetup time")
    flexible_time: str | None = Field(None, max_length=100, description="Free-form timing")
    location_name: str | None = Field(None, max_length=100)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    min_people: int = Field(default=1, ge=1, le=100)
    max_people: int = Field(default=10, ge=1, le=100)


class UpdateRecruitmentRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""

    category_id: str | None = Field(None, min_length=1)
    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    scheduled_at: datetime | None = None
    flexible_time: str | None = Field(None, max_length=100)
    location_name: str | None = Field(None, max_length=100)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    min_people: int | None = Field(None, ge=1, le=100)
    max_people: int | None = Field(None, ge=1, le=100)


class ApplyRequest(BaseModel):
    message: str | None = Field(None, max_length=500)


class RespondToApplicationRequest(BaseModel):
    action: ApplicationAction


class SendOfferRequest(BaseModel):
    receiver_id: UUID
    message: str | None = Field(None, max_length=500)


class RespondToOfferRequest(BaseModel):
    action: OfferAction
