"""
Domain models for want-to-dos: time-boxed declarations that a user would
like to do something in a category.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from machi.models.domain.user_domain import CategorySummary, PublicProfile


class Timing(StrEnum):
    THIS_WEEK = "THIS_WEEK"
    NEXT_WEEK = "NEXT_WEEK"
    THIS_MONTH = "THIS_MONTH"
    ANYTIME = "ANYTIME"


class WantToDoStatus(StrEnum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    DELETED = "DELETED"


@dataclass(slots=True)
class WantToDo:
    id: str
    user_id: str
    category: CategorySummary
    timing: Timing
    comment: str | None
    location_name: str | None
    latitude: float | None
    longitude: float | None
    status: WantToDoStatus
    expires_at: datetime
    created_at: datetime
    # Populated only for reads shown to other users
    user: PublicProfile | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "timing": self.timing.value,
            "comment": self.comment,
            "location_name": self.location_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "status": self.status.value,
            "expires_at": self.expires_at.isoformat(),
            "created_at": self.created_at.isoformat(),
            "category": self.category.to_dict(),
        }
        if self.user is not None:
            data["user"] = self.user.to_dict()
        return data


@dataclass(slots=True)
class WantToDoDraft:
    user_id: str
    category_id: str
    timing: Timing
    comment: str | None = None
    location_name: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(slots=True, frozen=True)
class SuggestionQuery:
    """Want-to-dos of other users matching the caller's interests."""

    user_id: str
    category_ids: frozenset[str]
    area: str | None
    now: datetime
    limit: int = 20


@dataclass(slots=True, frozen=True)
class WantToDoQuery:
    """Filters for browsing ACTIVE, unexpired want-to-dos, newest first."""

    now: datetime
    category_id: str | None = None
    area: str | None = None
    timing: Timing | None = None
    page: int = 1
    limit: int = 20
