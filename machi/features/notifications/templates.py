"""Title/body rendering for each domain event."""

from dataclasses import dataclass

from machi.features.notifications.events import (
    ApplicationApproved,
    ApplicationReceived,
    ApplicationRejected,
    DomainEvent,
    GroupCreated,
    MemberJoined,
    OfferAccepted,
    OfferDeclined,
    OfferReceived,
)

UNKNOWN_NICKNAME = "Someone"


@dataclass(slots=True, frozen=True)
class RenderedNotification:
    type: str
    title: str
    body: str
    data: dict


def render_notification(event: DomainEvent) -> RenderedNotification:
    actor = event.actor_nickname or UNKNOWN_NICKNAME
    title_ref = f'"{event.recruitment_title}"'

    match event:
        case ApplicationReceived():
            title = "New application"
            body = f"{actor} applied to {title_ref}"
        case ApplicationApproved():
            title = "Application approved"
            body = f"Your application to {title_ref} was approved. Say hello in the group chat!"
        case ApplicationRejected():
            title = "Application declined"
            body = f"Your application to {title_ref} was not accepted this time"
        case OfferReceived():
            title = "You have an invitation"
            body = f"{actor} invited you to {title_ref}"
        case OfferAccepted():
            title = "Invitation accepted"
            body = f"{actor} accepted your invitation to {title_ref}"
        case OfferDeclined():
            title = "Invitation declined"
            body = f"{actor} declined your invitation to {title_ref}"
        case GroupCreated():
            title = "Group created"
            body = f'The group "{event.group_name}" is ready. Plan the details in the chat!'
        case MemberJoined():
            title = "New member"
            body = f'{actor} joined "{event.group_name}"'
        case _:
            raise TypeError(f"Unsupported event: {type(event).__name__}")

    return RenderedNotification(
        type=event.event_type, title=title, body=body, data=event.payload()
    )
