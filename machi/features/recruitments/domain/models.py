"""
Domain models for recruitments, applications, offers and groups.

Plain dataclasses with no persistence concerns, so the lifecycle service,
the repositories and the API layer can all share them.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from machi.models.domain.user_domain import CategorySummary, PublicProfile


class RecruitmentStatus(StrEnum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ApplicationStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class ApplicationAction(StrEnum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class OfferStatus(StrEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class OfferAction(StrEnum):
    ACCEPT = "ACCEPT"
    DECLINE = "DECLINE"


class GroupRole(StrEnum):
    OWNER = "OWNER"
    MEMBER = "MEMBER"


# Fields a creator may change while the recruitment is OPEN
UPDATABLE_FIELDS = frozenset(
    {
        "category_id",
        "title",
        "description",
        "scheduled_at",
        "flexible_time",
        "location_name",
        "latitude",
        "longitude",
        "min_people",
        "max_people",
    }
)


@dataclass(slots=True)
class Recruitment:
    id: str
    creator_id: str
    category_id: str
    title: str
    description: str | None
    scheduled_at: datetime | None
    flexible_time: str | None
    location_name: str | None
    latitude: float | None
    longitude: float | None
    min_people: int
    max_people: int
    current_people: int
    status: RecruitmentStatus
    created_at: datetime
    closed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == RecruitmentStatus.OPEN

    @property
    def is_full(self) -> bool:
        return self.current_people >= self.max_people

    @property
    def is_terminal(self) -> bool:
        return self.status != RecruitmentStatus.OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "creator_id": self.creator_id,
            "category_id": self.category_id,
            "title": self.title,
            "description": self.description,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "flexible_time": self.flexible_time,
            "location_name": self.location_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "min_people": self.min_people,
            "max_people": self.max_people,
            "current_people": self.current_people,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
        }


@dataclass(slots=True)
class RecruitmentDraft:
    """Validated input for a new recruitment."""

    creator_id: str
    category_id: str
    title: str
    description: str | None = None
    scheduled_at: datetime | None = None
    flexible_time: str | None = None
    location_name: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    min_people: int = 1
    max_people: int = 10


@dataclass(slots=True, frozen=True)
class RecruitmentQuery:
    """Filters for browsing recruitments, newest first."""

    status: RecruitmentStatus = RecruitmentStatus.OPEN
    category_id: str | None = None
    page: int = 1
    limit: int = 20


@dataclass(slots=True, frozen=True)
class RecruitmentRef:
    """Recruitment fields shown next to a user's own applications and offers."""

    id: str
    title: str
    status: RecruitmentStatus
    category: CategorySummary
    creator: PublicProfile

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "category": self.category.to_dict(),
            "creator": self.creator.to_dict(),
        }


@dataclass(slots=True)
class Application:
    id: str
    recruitment_id: str
    applicant_id: str
    message: str | None
    status: ApplicationStatus
    created_at: datetime
    responded_at: datetime | None = None
    # Populated only for the applicant's own listing
    recruitment: RecruitmentRef | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "recruitment_id": self.recruitment_id,
            "applicant_id": self.applicant_id,
            "message": self.message,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "responded_at": self.responded_at.isoformat() if self.responded_at else None,
        }
        if self.recruitment is not None:
            data["recruitment"] = self.recruitment.to_dict()
        return data


@dataclass(slots=True)
class Offer:
    id: str
    recruitment_id: str
    sender_id: str
    receiver_id: str
    message: str | None
    status: OfferStatus
    created_at: datetime
    responded_at: datetime | None = None
    # Populated only for the receiver's own listing
    recruitment: RecruitmentRef | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "recruitment_id": self.recruitment_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "message": self.message,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "responded_at": self.responded_at.isoformat() if self.responded_at else None,
        }
        if self.recruitment is not None:
            data["recruitment"] = self.recruitment.to_dict()
        return data


@dataclass(slots=True)
class Group:
    id: str
    recruitment_id: str
    name: str
    created_at: datetime
