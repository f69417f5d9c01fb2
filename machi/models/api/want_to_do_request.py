# machi/models/api/want_to_do_request.py
"""
Want-to-do API request models.
"""

from pydantic import BaseModel, Field

from machi.features.want_to_dos.domain.models import Timing


class CreateWantToDoRequest(BaseModel):
    category_id: str = Field(..., min_length=1, description="Category ID")
    timing: Timing = Field(..., description="When the user is available")
    comment: str | None = Field(None, max_length=200)
    location_name: str | None = Field(None, max_length=100)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class UpdateWantToDoRequest(BaseModel):
    timing: Timing | None = None
    comment: str | None = Field(None, max_length=200)
