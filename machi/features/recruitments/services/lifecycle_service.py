"""
Recruitment lifecycle: creation, applications, offers and terminal states.

State machine per recruitment:

    OPEN -> CLOSED | COMPLETED | CANCELLED     (all but OPEN are terminal)

Every mutation runs inside one repository transaction that locks the
recruitment row first, so the capacity check and the current_people
increment cannot interleave with a concurrent approval. Domain events are
collected during the transaction and dispatched only after it commits;
a dispatch failure is logged and never reaches the caller.
"""

from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

from machi.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from machi.features.nearby.domain.geo import is_valid_coordinate
from machi.features.notifications.dispatcher import NotificationDispatcher
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
from machi.features.recruitments.domain.models import (
    UPDATABLE_FIELDS,
    Application,
    ApplicationAction,
    ApplicationStatus,
    Group,
    GroupRole,
    Offer,
    OfferAction,
    OfferStatus,
    Recruitment,
    RecruitmentDraft,
    RecruitmentQuery,
    RecruitmentStatus,
)
from machi.features.recruitments.repository.recruitment_repository import (
    RecruitmentRepository,
    RecruitmentTransaction,
)
from machi.infrastructure.observability.logging import get_logger
from machi.models.domain.pagination import Page

logger = get_logger(__name__)

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
FLEXIBLE_TIME_MAX_LENGTH = 100
LOCATION_NAME_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 500
MAX_PEOPLE_LIMIT = 100
BROWSE_LIMIT_MAX = 100


class RecruitmentLifecycleService:
    """Owns every state transition of recruitments, applications and offers."""

    def __init__(self, repository: RecruitmentRepository, dispatcher: NotificationDispatcher):
        self.repository = repository
        self.dispatcher = dispatcher

    # =======================================================================
    # RECRUITMENTS
    # =======================================================================

    async def create(self, draft: RecruitmentDraft) -> Recruitment:
        """Create an OPEN recruitment with the creator as its only participant."""
        _validate_recruitment_fields(asdict(draft))

        if await self.repository.get_category(draft.category_id) is None:
            raise NotFoundError("Category", draft.category_id)

        recruitment = await self.repository.create_recruitment(draft)
        logger.info(
            "Recruitment created",
            recruitment_id=recruitment.id,
            creator_id=recruitment.creator_id,
            max_people=recruitment.max_people,
        )
        return recruitment

    async def get_recruitment(self, recruitment_id: str) -> Recruitment:
        recruitment = await self.repository.get_recruitment(recruitment_id)
        if recruitment is None:
            raise NotFoundError("Recruitment", recruitment_id)
        return recruitment

    async def browse(self, query: RecruitmentQuery) -> Page[Recruitment]:
        if query.page < 1 or not 1 <= query.limit <= BROWSE_LIMIT_MAX:
            raise ValidationError(
                f"page must be positive and limit between 1 and {BROWSE_LIMIT_MAX}"
            )
        return await self.repository.browse(query)

    async def list_mine(self, creator_id: str) -> list[Recruitment]:
        return await self.repository.list_by_creator(creator_id)

    async def list_received_offers(self, receiver_id: str) -> list[Offer]:
        return await self.repository.list_offers_for_receiver(receiver_id)

    async def list_my_applications(self, applicant_id: str) -> list[Application]:
        return await self.repository.list_applications_for_applicant(applicant_id)

    async def update(
        self, recruitment_id: str, actor_id: str, fields: dict[str, Any]
    ) -> Recruitment:
        """
        Apply a partial update while the recruitment is OPEN.

        Args:
            fields: subset of UPDATABLE_FIELDS; a None value clears optional
                fields.

        Raises:
            ValidationError: unknown field or merged values fail validation
            ForbiddenError: actor is not the creator
            ConflictError(INVALID_STATE): recruitment is not OPEN
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        if "category_id" in fields and await self.repository.get_category(
            fields["category_id"]
        ) is None:
            raise NotFoundError("Category", fields["category_id"])

        async with self.repository.transaction() as tx:
            recruitment = await self._lock(tx, recruitment_id)
            if recruitment.creator_id != actor_id:
                raise ForbiddenError()
            if not recruitment.is_open:
                raise ConflictError(
                    "Only open recruitments can be edited", ConflictError.INVALID_STATE
                )

            merged = {field: getattr(recruitment, field) for field in UPDATABLE_FIELDS}
            merged.update(fields)
            _validate_recruitment_fields(merged)
            if merged["max_people"] < recruitment.current_people:
                raise ValidationError(
                    "max_people cannot be lower than the current number of participants"
                )

            if not fields:
                return recruitment

            changes = dict(fields)
            if merged["max_people"] <= recruitment.current_people:
                changes["status"] = RecruitmentStatus.COMPLETED
            updated = await tx.update_recruitment(recruitment_id, changes)

        logger.info(
            "Recruitment updated",
            recruitment_id=recruitment_id,
            fields=sorted(fields),
            status=updated.status.value,
        )
        return updated

    async def cancel(self, recruitment_id: str, actor_id: str) -> Recruitment:
        """Cancel an OPEN recruitment; pending offers expire with it."""
        now = _now()
        async with self.repository.transaction() as tx:
            recruitment = await self._lock(tx, recruitment_id)
            if recruitment.creator_id != actor_id:
                raise ForbiddenError()
            if recruitment.is_terminal:
                raise ConflictError(
                    f"Recruitment is already {recruitment.status.value}",
                    ConflictError.INVALID_STATE,
                )

            updated = await tx.update_recruitment(
                recruitment_id, {"status": RecruitmentStatus.CANCELLED, "closed_at": now}
            )
            expired = await tx.expire_pending_offers(recruitment_id, now)

        logger.info("Recruitment cancelled", recruitment_id=recruitment_id, expired_offers=expired)
        return updated

    async def close(self, recruitment_id: str, actor_id: str) -> Recruitment:
        """Stop accepting participants before the scheduled time."""
        now = _now()
        async with self.repository.transaction() as tx:
            recruitment = await self._lock(tx, recruitment_id)
            if recruitment.creator_id != actor_id:
                raise ForbiddenError()
            if recruitment.is_terminal:
                raise ConflictError(
                    f"Recruitment is already {recruitment.status.value}",
                    ConflictError.INVALID_STATE,
                )

            updated = await tx.update_recruitment(
                recruitment_id, {"status": RecruitmentStatus.CLOSED, "closed_at": now}
            )

        logger.info("Recruitment closed", recruitment_id=recruitment_id)
        return updated

    # =======================================================================
    # APPLICATIONS
    # =======================================================================

    async def apply(
        self, recruitment_id: str, applicant_id: str, message: str | None = None
    ) -> Application:
        _validate_message(message)

        async with self.repository.transaction() as tx:
            recruitment = await self._lock(tx, recruitment_id)
            if recruitment.creator_id == applicant_id:
                raise ConflictError(
                    "You cannot apply to your own recruitment", ConflictError.SELF_APPLICATION
                )
            _ensure_accepting(recruitment)

            if await tx.find_active_application(recruitment_id, applicant_id) is not None:
                raise ConflictError(
                    "You have already applied to this recruitment",
                    ConflictError.DUPLICATE_APPLICATION,
                )
            if await tx.is_participant(recruitment_id, applicant_id):
                raise ConflictError(
                    "You are already participating in this recruitment",
                    ConflictError.ALREADY_PARTICIPANT,
                )

            application = await tx.insert_application(recruitment_id, applicant_id, message)
            applicant = await tx.get_profile(applicant_id)

        logger.info(
            "Application submitted",
            recruitment_id=recruitment_id,
            application_id=application.id,
            applicant_id=applicant_id,
        )

        await self._emit(
            [
                ApplicationReceived(
                    recipient_ids=(recruitment.creator_id,),
                    recruitment_id=recruitment.id,
                    recruitment_title=recruitment.title,
                    actor_id=applicant_id,
                    actor_nickname=applicant.nickname if applicant else None,
                    application_id=application.id,
                )
            ]
        )
        return application

    async def list_applications(self, recruitment_id: str, actor_id: str) -> list[Application]:
        recruitment = await self.get_recruitment(recruitment_id)
        if recruitment.creator_id != actor_id:
            raise ForbiddenError()
        return await self.repository.list_applications(recruitment_id)

    async def respond_to_application(
        self,
        recruitment_id: str,
        application_id: str,
        actor_id: str,
        action: ApplicationAction,
    ) -> Application:
        """
        Approve or reject a PENDING application.

        Approval re-checks capacity under the row lock, takes a slot and
        joins the applicant to the recruitment's group.
        """
        now = _now()
        async with self.repository.transaction() as tx:
            recruitment = await self._lock(tx, recruitment_id)
            if recruitment.creator_id != actor_id:
                raise ForbiddenError()

            application = await tx.get_application(application_id)
            if application is None or application.recruitment_id != recruitment_id:
                raise NotFoundError("Application", application_id)
            if application.status != ApplicationStatus.PENDING:
                raise ConflictError(
                    f"Application is already {application.status.value}",
                    ConflictError.INVALID_STATE,
                )

            if action == ApplicationAction.REJECT:
                application = await tx.set_application_status(
                    application_id, ApplicationStatus.REJECTED, now
                )
                group = None
                group_events: list[DomainEvent] = []
            else:
                group, group_events = await self._admit(tx, recruitment, application.applicant_id)
                application = await tx.set_application_status(
                    application_id, ApplicationStatus.APPROVED, now
                )

        logger.info(
            "Application responded",
            recruitment_id=recruitment_id,
            application_id=application_id,
            action=action.value,
        )

        if action == ApplicationAction.REJECT:
            event: DomainEvent = ApplicationRejected(
                recipient_ids=(application.applicant_id,),
                recruitment_id=recruitment.id,
                recruitment_title=recruitment.title,
                actor_id=actor_id,
                application_id=application.id,
            )
        else:
            event = ApplicationApproved(
                recipient_ids=(application.applicant_id,),
                recruitment_id=recruitment.id,
                recruitment_title=recruitment.title,
                actor_id=actor_id,
                application_id=application.id,
                group_id=group.id if group else None,
            )

        await self._emit([event, *group_events])
        return application

    # =======================================================================
    # OFFERS
    # =======================================================================

    async def send_offer(
        self,
        recruitment_id: str,
        sender_id: str,
        receiver_id: str,
        message: str | None = None,
    ) -> Offer:
        _validate_message(message)

        async with self.repository.transaction() as tx:
            recruitment = await self._lock(tx, recruitment_id)
            if recruitment.creator_id != sender_id:
                raise ForbiddenError("Only the recruitment creator can send offers")
            if receiver_id == recruitment.creator_id:
                raise ConflictError("You cannot send an offer to yourself", ConflictError.SELF_OFFER)
            _ensure_accepting(recruitment)

            if await tx.get_profile(receiver_id) is None:
                raise NotFoundError("User", receiver_id)
            if await tx.find_open_offer(recruitment_id, receiver_id) is not None:
                raise ConflictError(
                    "An offer has already been sent to this user", ConflictError.DUPLICATE_OFFER
                )
            if await tx.is_participant(recruitment_id, receiver_id):
                raise ConflictError(
                    "This user is already participating", ConflictError.ALREADY_PARTICIPANT
                )

            offer = await tx.insert_offer(recruitment_id, sender_id, receiver_id, message)
            sender = await tx.get_profile(sender_id)

        logger.info(
            "Offer sent",
            recruitment_id=recruitment_id,
            offer_id=offer.id,
            receiver_id=receiver_id,
        )

        await self._emit(
            [
                OfferReceived(
                    recipient_ids=(receiver_id,),
                    recruitment_id=recruitment.id,
                    recruitment_title=recruitment.title,
                    actor_id=sender_id,
                    actor_nickname=sender.nickname if sender else None,
                    offer_id=offer.id,
                )
            ]
        )
        return offer

    async def respond_to_offer(
        self,
        recruitment_id: str,
        offer_id: str,
        actor_id: str,
        action: OfferAction,
    ) -> Offer:
        """Accept or decline a PENDING offer. Acceptance takes a slot like an approval."""
        now = _now()
        async with self.repository.transaction() as tx:
            recruitment = await self._lock(tx, recruitment_id)

            offer = await tx.get_offer(offer_id)
            if offer is None or offer.recruitment_id != recruitment_id:
                raise NotFoundError("Offer", offer_id)
            if offer.receiver_id != actor_id:
                raise ForbiddenError()
            if offer.status != OfferStatus.PENDING:
                raise ConflictError(
                    f"Offer is already {offer.status.value}", ConflictError.INVALID_STATE
                )

            if action == OfferAction.DECLINE:
                offer = await tx.set_offer_status(offer_id, OfferStatus.DECLINED, now)
                group = None
                group_events: list[DomainEvent] = []
            else:
                group, group_events = await self._admit(tx, recruitment, actor_id)
                offer = await tx.set_offer_status(offer_id, OfferStatus.ACCEPTED, now)
                # The receiver now holds an APPROVED application like any other member
                await tx.approve_application_for(recruitment_id, actor_id, now)

            receiver = await tx.get_profile(actor_id)

        logger.info(
            "Offer responded",
            recruitment_id=recruitment_id,
            offer_id=offer_id,
            action=action.value,
        )

        nickname = receiver.nickname if receiver else None
        if action == OfferAction.DECLINE:
            event: DomainEvent = OfferDeclined(
                recipient_ids=(offer.sender_id,),
                recruitment_id=recruitment.id,
                recruitment_title=recruitment.title,
                actor_id=actor_id,
                actor_nickname=nickname,
                offer_id=offer.id,
            )
        else:
            event = OfferAccepted(
                recipient_ids=(offer.sender_id,),
                recruitment_id=recruitment.id,
                recruitment_title=recruitment.title,
                actor_id=actor_id,
                actor_nickname=nickname,
                offer_id=offer.id,
                group_id=group.id if group else None,
            )

        await self._emit([event, *group_events])
        return offer

    # =======================================================================
    # INTERNALS
    # =======================================================================

    @staticmethod
    async def _lock(tx: RecruitmentTransaction, recruitment_id: str) -> Recruitment:
        recruitment = await tx.lock_recruitment(recruitment_id)
        if recruitment is None:
            raise NotFoundError("Recruitment", recruitment_id)
        return recruitment

    async def _admit(
        self, tx: RecruitmentTransaction, recruitment: Recruitment, user_id: str
    ) -> tuple[Group, list[DomainEvent]]:
        """
        Take one slot for user_id and add them to the group.

        A user who is already a member keeps their slot and takes no
        other. Must run inside the transaction that locked the recruitment.
        """
        group = await tx.get_group(recruitment.id)
        if group is not None and user_id in await tx.list_group_member_ids(group.id):
            logger.warning(
                "Participant already admitted", recruitment_id=recruitment.id, user_id=user_id
            )
            return group, []

        _ensure_accepting(recruitment)

        current_people = recruitment.current_people + 1
        changes: dict[str, Any] = {"current_people": current_people}
        if current_people >= recruitment.max_people:
            changes["status"] = RecruitmentStatus.COMPLETED
        await tx.update_recruitment(recruitment.id, changes)

        events: list[DomainEvent] = []
        if group is None:
            group = await tx.create_group(recruitment.id, recruitment.title)
            await tx.add_group_member(group.id, recruitment.creator_id, GroupRole.OWNER)
            await tx.add_group_member(group.id, user_id, GroupRole.MEMBER)
            events.append(
                GroupCreated(
                    recipient_ids=(recruitment.creator_id, user_id),
                    recruitment_id=recruitment.id,
                    recruitment_title=recruitment.title,
                    group_id=group.id,
                    group_name=group.name,
                )
            )
        else:
            existing = [
                member_id
                for member_id in await tx.list_group_member_ids(group.id)
                if member_id != user_id
            ]
            await tx.add_group_member(group.id, user_id, GroupRole.MEMBER)
            if existing:
                newcomer = await tx.get_profile(user_id)
                events.append(
                    MemberJoined(
                        recipient_ids=tuple(existing),
                        recruitment_id=recruitment.id,
                        recruitment_title=recruitment.title,
                        actor_id=user_id,
                        actor_nickname=newcomer.nickname if newcomer else None,
                        group_id=group.id,
                        group_name=group.name,
                        new_member_id=user_id,
                    )
                )

        logger.info(
            "Participant admitted",
            recruitment_id=recruitment.id,
            user_id=user_id,
            current_people=current_people,
            max_people=recruitment.max_people,
            completed=current_people >= recruitment.max_people,
        )
        return group, events

    async def _emit(self, events: list[DomainEvent]) -> None:
        for event in events:
            try:
                await self.dispatcher.dispatch(event)
            except Exception as e:
                logger.error(
                    "Notification dispatch failed",
                    event_type=event.event_type,
                    recruitment_id=event.recruitment_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )


def _now() -> datetime:
    return datetime.now(UTC)


def _ensure_accepting(recruitment: Recruitment) -> None:
    if recruitment.status == RecruitmentStatus.COMPLETED or recruitment.is_full:
        raise ConflictError("This recruitment is full", ConflictError.RECRUITMENT_FULL)
    if not recruitment.is_open:
        raise ConflictError("This recruitment is closed", ConflictError.RECRUITMENT_CLOSED)


def _validate_message(message: str | None) -> None:
    if message is not None and len(message) > MESSAGE_MAX_LENGTH:
        raise ValidationError(f"message must be at most {MESSAGE_MAX_LENGTH} characters")


def _validate_recruitment_fields(values: dict[str, Any]) -> None:
    title = values.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"title must be at most {TITLE_MAX_LENGTH} characters")

    for field, limit in (
        ("description", DESCRIPTION_MAX_LENGTH),
        ("flexible_time", FLEXIBLE_TIME_MAX_LENGTH),
        ("location_name", LOCATION_NAME_MAX_LENGTH),
    ):
        value = values.get(field)
        if value is not None and len(value) > limit:
            raise ValidationError(f"{field} must be at most {limit} characters")

    if not values.get("category_id"):
        raise ValidationError("category_id is required")

    min_people = values.get("min_people")
    max_people = values.get("max_people")
    if not isinstance(min_people, int) or min_people < 1:
        raise ValidationError("min_people must be a positive integer")
    if not isinstance(max_people, int) or not 1 <= max_people <= MAX_PEOPLE_LIMIT:
        raise ValidationError(f"max_people must be between 1 and {MAX_PEOPLE_LIMIT}")
    if min_people > max_people:
        raise ValidationError("min_people must not exceed max_people")

    latitude = values.get("latitude")
    longitude = values.get("longitude")
    if (latitude is None) != (longitude is None):
        raise ValidationError("latitude and longitude must be provided together")
    if latitude is not None and not is_valid_coordinate(latitude, longitude):
        raise ValidationError("Invalid coordinates")
