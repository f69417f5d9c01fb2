"""
Domain events emitted by the recruitment lifecycle.

Each event names its recipients and carries just enough payload for a
notification to be rendered without another lookup. DomainEvent is the
union the NotificationDispatcher accepts.
"""

from dataclasses import asdict, dataclass
from typing import ClassVar


@dataclass(slots=True, frozen=True, kw_only=True)
class _RecruitmentEvent:
    event_type: ClassVar[str] = ""

    recipient_ids: tuple[str, ...]
    recruitment_id: str
    recruitment_title: str
    actor_id: str | None = None
    actor_nickname: str | None = None

    def payload(self) -> dict:
        data = asdict(self)
        data.pop("recipient_ids")
        data["type"] = self.event_type
        return {key: value for key, value in data.items() if value is not None}


@dataclass(slots=True, frozen=True, kw_only=True)
class ApplicationReceived(_RecruitmentEvent):
    event_type: ClassVar[str] = "APPLICATION_RECEIVED"

    application_id: str


@dataclass(slots=True, frozen=True, kw_only=True)
class ApplicationApproved(_RecruitmentEvent):
    event_type: ClassVar[str] = "APPLICATION_APPROVED"

    application_id: str
    group_id: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class ApplicationRejected(_RecruitmentEvent):
    event_type: ClassVar[str] = "APPLICATION_REJECTED"

    application_id: str


@dataclass(slots=True, frozen=True, kw_only=True)
class OfferReceived(_RecruitmentEvent):
    event_type: ClassVar[str] = "OFFER_RECEIVED"

    offer_id: str


@dataclass(slots=True, frozen=True, kw_only=True)
class OfferAccepted(_RecruitmentEvent):
    event_type: ClassVar[str] = "OFFER_ACCEPTED"

    offer_id: str
    group_id: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class OfferDeclined(_RecruitmentEvent):
    event_type: ClassVar[str] = "OFFER_DECLINED"

    offer_id: str


@dataclass(slots=True, frozen=True, kw_only=True)
class GroupCreated(_RecruitmentEvent):
    event_type: ClassVar[str] = "GROUP_CREATED"

    group_id: str
    group_name: str


@dataclass(slots=True, frozen=True, kw_only=True)
class MemberJoined(_RecruitmentEvent):
    event_type: ClassVar[str] = "MEMBER_JOINED"

    group_id: str
    group_name: str
    new_member_id: str


DomainEvent = (
    ApplicationReceived
    | ApplicationApproved
    | ApplicationRejected
    | OfferReceived
    | OfferAccepted
    | OfferDeclined
    | GroupCreated
    | MemberJoined
)
