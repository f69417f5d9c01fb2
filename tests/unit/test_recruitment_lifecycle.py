"""
Tests for RecruitmentLifecycleService against the in-memory repository.
"""

import asyncio

import pytest

from machi.errors import (
    ConflictError,
    ForbiddenError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from machi.features.notifications.events import (
    ApplicationApproved,
    ApplicationReceived,
    ApplicationRejected,
    GroupCreated,
    MemberJoined,
    OfferAccepted,
    OfferDeclined,
    OfferReceived,
)
from machi.features.recruitments.domain.models import (
    ApplicationAction,
    ApplicationStatus,
    GroupRole,
    OfferAction,
    OfferStatus,
    RecruitmentDraft,
    RecruitmentQuery,
    RecruitmentStatus,
)
from machi.features.recruitments.services.lifecycle_service import RecruitmentLifecycleService
from machi.models.domain.user_domain import CategorySummary
from tests.conftest import CREATOR_ID, FakeRecruitmentTransaction, RecordingDispatcher


@pytest.fixture
def service(recruitment_repo, dispatcher):
    return RecruitmentLifecycleService(recruitment_repo, dispatcher)


async def _create(service, **overrides):
    values = {"creator_id": CREATOR_ID, "category_id": "cafe", "title": "Coffee walk"}
    values.update(overrides)
    return await service.create(RecruitmentDraft(**values))


# ===========================================================================
# CREATE / UPDATE / CANCEL / CLOSE
# ===========================================================================


@pytest.mark.asyncio
async def test_create_starts_open_with_creator_counted(service):
    recruitment = await _create(service, max_people=4, latitude=35.68, longitude=139.76)

    assert recruitment.status == RecruitmentStatus.OPEN
    assert recruitment.current_people == 1
    assert recruitment.max_people == 4


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"title": ""},
        {"title": "   "},
        {"title": "x" * 101},
        {"min_people": 5, "max_people": 3},
        {"min_people": 0},
        {"max_people": 101},
        {"latitude": 35.0},
        {"latitude": 91.0, "longitude": 139.0},
        {"description": "d" * 1001},
    ],
)
async def test_create_rejects_invalid_fields(service, recruitment_repo, overrides):
    with pytest.raises(ValidationError):
        await _create(service, **overrides)

    assert recruitment_repo.recruitments == {}


@pytest.mark.asyncio
async def test_create_requires_existing_category(service):
    with pytest.raises(NotFoundError):
        await _create(service, category_id="unknown")


@pytest.mark.asyncio
async def test_update_applies_partial_fields(service):
    recruitment = await _create(service, description="old")

    updated = await service.update(
        recruitment.id, CREATOR_ID, {"title": "Tea walk", "description": None}
    )

    assert updated.title == "Tea walk"
    assert updated.description is None
    assert updated.max_people == recruitment.max_people


@pytest.mark.asyncio
async def test_update_requires_creator_and_open_state(service):
    recruitment = await _create(service)

    with pytest.raises(ForbiddenError):
        await service.update(recruitment.id, "someone-else", {"title": "Mine now"})

    await service.cancel(recruitment.id, CREATOR_ID)
    with pytest.raises(ConflictError) as exc_info:
        await service.update(recruitment.id, CREATOR_ID, {"title": "Too late"})
    assert exc_info.value.code == ConflictError.INVALID_STATE


@pytest.mark.asyncio
async def test_update_validates_merged_capacity(service):
    recruitment = await _create(service, min_people=2, max_people=5)

    with pytest.raises(ValidationError):
        await service.update(recruitment.id, CREATOR_ID, {"max_people": 1})
    with pytest.raises(ValidationError):
        await service.update(recruitment.id, CREATOR_ID, {"unknown_field": 1})


@pytest.mark.asyncio
async def test_update_cannot_shrink_below_participants(service, recruitment_repo):
    recruitment = await _create(service, max_people=5)
    for applicant in ("a", "b"):
        application = await service.apply(recruitment.id, applicant)
        await service.respond_to_application(
            recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
        )

    with pytest.raises(ValidationError):
        await service.update(recruitment.id, CREATOR_ID, {"max_people": 2})

    updated = await service.update(recruitment.id, CREATOR_ID, {"max_people": 3})
    assert updated.status == RecruitmentStatus.COMPLETED


@pytest.mark.asyncio
async def test_cancel_is_terminal_and_expires_pending_offers(service, recruitment_repo):
    recruitment = await _create(service)
    offer = await service.send_offer(recruitment.id, CREATOR_ID, "guest")

    cancelled = await service.cancel(recruitment.id, CREATOR_ID)

    assert cancelled.status == RecruitmentStatus.CANCELLED
    assert cancelled.closed_at is not None
    assert recruitment_repo.offers[offer.id].status == OfferStatus.EXPIRED

    with pytest.raises(ConflictError) as exc_info:
        await service.cancel(recruitment.id, CREATOR_ID)
    assert exc_info.value.code == ConflictError.INVALID_STATE

    with pytest.raises(ConflictError) as exc_info:
        await service.apply(recruitment.id, "late")
    assert exc_info.value.code == ConflictError.RECRUITMENT_CLOSED


@pytest.mark.asyncio
async def test_cancel_requires_creator(service):
    recruitment = await _create(service)

    with pytest.raises(ForbiddenError):
        await service.cancel(recruitment.id, "intruder")


@pytest.mark.asyncio
async def test_close_stops_new_applications(service):
    recruitment = await _create(service)

    closed = await service.close(recruitment.id, CREATOR_ID)

    assert closed.status == RecruitmentStatus.CLOSED
    with pytest.raises(ConflictError) as exc_info:
        await service.apply(recruitment.id, "late")
    assert exc_info.value.code == ConflictError.RECRUITMENT_CLOSED


@pytest.mark.asyncio
async def test_unknown_recruitment_is_not_found(service):
    with pytest.raises(NotFoundError):
        await service.apply("missing", "someone")
    with pytest.raises(NotFoundError):
        await service.get_recruitment("missing")


# ===========================================================================
# APPLICATIONS
# ===========================================================================


@pytest.mark.asyncio
async def test_apply_creates_pending_application_and_notifies_creator(
    service, recruitment_repo, dispatcher
):
    recruitment_repo.add_profile("alice", "Alice")
    recruitment = await _create(service)

    application = await service.apply(recruitment.id, "alice", "Count me in")

    assert application.status == ApplicationStatus.PENDING
    (event,) = dispatcher.of_type(ApplicationReceived)
    assert event.recipient_ids == (CREATOR_ID,)
    assert event.actor_nickname == "Alice"
    assert event.application_id == application.id
    assert event.recruitment_title == "Coffee walk"


@pytest.mark.asyncio
async def test_apply_to_own_recruitment_is_rejected(service):
    recruitment = await _create(service)

    with pytest.raises(ConflictError) as exc_info:
        await service.apply(recruitment.id, CREATOR_ID)

    assert exc_info.value.code == ConflictError.SELF_APPLICATION


@pytest.mark.asyncio
async def test_second_application_is_rejected_as_duplicate(service, recruitment_repo):
    recruitment = await _create(service)
    await service.apply(recruitment.id, "alice")

    with pytest.raises(ConflictError) as exc_info:
        await service.apply(recruitment.id, "alice")

    assert exc_info.value.code == ConflictError.DUPLICATE_APPLICATION
    assert len(recruitment_repo.applications) == 1


@pytest.mark.asyncio
async def test_full_scenario_two_person_recruitment(service, recruitment_repo, dispatcher):
    recruitment = await _create(service, max_people=2)
    application = await service.apply(recruitment.id, "alice")

    approved = await service.respond_to_application(
        recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
    )

    assert approved.status == ApplicationStatus.APPROVED
    assert approved.responded_at is not None
    stored = recruitment_repo.recruitments[recruitment.id]
    assert stored.current_people == 2
    assert stored.status == RecruitmentStatus.COMPLETED
    assert sorted(recruitment_repo.member_ids(recruitment.id)) == sorted([CREATOR_ID, "alice"])

    group = recruitment_repo.groups[recruitment.id]
    assert (CREATOR_ID, GroupRole.OWNER) in recruitment_repo.members[group.id]

    (created,) = dispatcher.of_type(GroupCreated)
    assert set(created.recipient_ids) == {CREATOR_ID, "alice"}
    (approved_event,) = dispatcher.of_type(ApplicationApproved)
    assert approved_event.recipient_ids == ("alice",)
    assert approved_event.group_id == group.id

    with pytest.raises(ConflictError) as exc_info:
        await service.apply(recruitment.id, "bob")
    assert exc_info.value.code == ConflictError.RECRUITMENT_FULL


@pytest.mark.asyncio
async def test_later_approvals_join_existing_group(service, recruitment_repo, dispatcher):
    recruitment_repo.add_profile("bob", "Bob")
    recruitment = await _create(service, max_people=5)
    first = await service.apply(recruitment.id, "alice")
    second = await service.apply(recruitment.id, "bob")

    await service.respond_to_application(
        recruitment.id, first.id, CREATOR_ID, ApplicationAction.APPROVE
    )
    await service.respond_to_application(
        recruitment.id, second.id, CREATOR_ID, ApplicationAction.APPROVE
    )

    assert len(recruitment_repo.groups) == 1
    assert recruitment_repo.recruitments[recruitment.id].current_people == 3
    assert recruitment_repo.recruitments[recruitment.id].status == RecruitmentStatus.OPEN
    (joined,) = dispatcher.of_type(MemberJoined)
    assert set(joined.recipient_ids) == {CREATOR_ID, "alice"}
    assert joined.new_member_id == "bob"
    assert joined.actor_nickname == "Bob"


@pytest.mark.asyncio
async def test_reject_sets_status_without_taking_a_slot(service, recruitment_repo, dispatcher):
    recruitment = await _create(service)
    application = await service.apply(recruitment.id, "alice")

    rejected = await service.respond_to_application(
        recruitment.id, application.id, CREATOR_ID, ApplicationAction.REJECT
    )

    assert rejected.status == ApplicationStatus.REJECTED
    assert recruitment_repo.recruitments[recruitment.id].current_people == 1
    assert recruitment_repo.groups == {}
    (event,) = dispatcher.of_type(ApplicationRejected)
    assert event.recipient_ids == ("alice",)


@pytest.mark.asyncio
async def test_respond_requires_creator_and_pending_application(service):
    recruitment = await _create(service)
    application = await service.apply(recruitment.id, "alice")

    with pytest.raises(ForbiddenError):
        await service.respond_to_application(
            recruitment.id, application.id, "alice", ApplicationAction.APPROVE
        )

    await service.respond_to_application(
        recruitment.id, application.id, CREATOR_ID, ApplicationAction.REJECT
    )
    with pytest.raises(ConflictError) as exc_info:
        await service.respond_to_application(
            recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
        )
    assert exc_info.value.code == ConflictError.INVALID_STATE

    with pytest.raises(NotFoundError):
        await service.respond_to_application(
            recruitment.id, "app-missing", CREATOR_ID, ApplicationAction.APPROVE
        )


@pytest.mark.asyncio
async def test_approval_rechecks_capacity(service, recruitment_repo):
    recruitment = await _create(service, max_people=2)
    first = await service.apply(recruitment.id, "alice")
    second = await service.apply(recruitment.id, "bob")

    await service.respond_to_application(
        recruitment.id, first.id, CREATOR_ID, ApplicationAction.APPROVE
    )
    with pytest.raises(ConflictError) as exc_info:
        await service.respond_to_application(
            recruitment.id, second.id, CREATOR_ID, ApplicationAction.APPROVE
        )

    assert exc_info.value.code == ConflictError.RECRUITMENT_FULL
    assert recruitment_repo.applications[second.id].status == ApplicationStatus.PENDING
    assert recruitment_repo.recruitments[recruitment.id].current_people == 2


@pytest.mark.asyncio
async def test_concurrent_approvals_never_overbook(service, recruitment_repo):
    recruitment = await _create(service, max_people=3)
    applications = [await service.apply(recruitment.id, f"user-{i}") for i in range(6)]

    results = await asyncio.gather(
        *(
            service.respond_to_application(
                recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
            )
            for application in applications
        ),
        return_exceptions=True,
    )

    approved = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(approved) == 2
    assert all(
        isinstance(f, ConflictError) and f.code == ConflictError.RECRUITMENT_FULL for f in failures
    )
    stored = recruitment_repo.recruitments[recruitment.id]
    assert stored.current_people == 3
    assert stored.current_people <= stored.max_people
    assert len(recruitment_repo.member_ids(recruitment.id)) == 3


@pytest.mark.asyncio
async def test_list_applications_is_creator_only(service):
    recruitment = await _create(service)
    await service.apply(recruitment.id, "alice")

    applications = await service.list_applications(recruitment.id, CREATOR_ID)
    assert [a.applicant_id for a in applications] == ["alice"]

    with pytest.raises(ForbiddenError):
        await service.list_applications(recruitment.id, "alice")


# ===========================================================================
# OFFERS
# ===========================================================================


@pytest.mark.asyncio
async def test_send_offer_to_self_is_rejected(service):
    recruitment = await _create(service)

    with pytest.raises(ConflictError) as exc_info:
        await service.send_offer(recruitment.id, CREATOR_ID, CREATOR_ID)

    assert exc_info.value.code == ConflictError.SELF_OFFER


@pytest.mark.asyncio
async def test_send_offer_requires_creator(service):
    recruitment = await _create(service)

    with pytest.raises(ForbiddenError):
        await service.send_offer(recruitment.id, "stranger", "guest")


@pytest.mark.asyncio
async def test_duplicate_offer_is_rejected(service):
    recruitment = await _create(service)
    await service.send_offer(recruitment.id, CREATOR_ID, "guest")

    with pytest.raises(ConflictError) as exc_info:
        await service.send_offer(recruitment.id, CREATOR_ID, "guest")

    assert exc_info.value.code == ConflictError.DUPLICATE_OFFER


@pytest.mark.asyncio
async def test_offer_accept_by_non_receiver_is_forbidden(service):
    recruitment = await _create(service)
    offer = await service.send_offer(recruitment.id, CREATOR_ID, "guest")

    with pytest.raises(ForbiddenError):
        await service.respond_to_offer(recruitment.id, offer.id, "impostor", OfferAction.ACCEPT)


@pytest.mark.asyncio
async def test_offer_accept_takes_slot_and_notifies_sender(service, recruitment_repo, dispatcher):
    recruitment_repo.add_profile("guest", "Guest")
    recruitment = await _create(service, max_people=3)
    offer = await service.send_offer(recruitment.id, CREATOR_ID, "guest", "Join us?")

    (received,) = dispatcher.of_type(OfferReceived)
    assert received.recipient_ids == ("guest",)
    assert received.actor_nickname == "Creator"

    accepted = await service.respond_to_offer(recruitment.id, offer.id, "guest", OfferAction.ACCEPT)

    assert accepted.status == OfferStatus.ACCEPTED
    assert recruitment_repo.recruitments[recruitment.id].current_people == 2
    assert "guest" in recruitment_repo.member_ids(recruitment.id)
    (event,) = dispatcher.of_type(OfferAccepted)
    assert event.recipient_ids == (CREATOR_ID,)
    assert event.actor_nickname == "Guest"
    assert len(dispatcher.of_type(GroupCreated)) == 1

    with pytest.raises(ConflictError) as exc_info:
        await service.respond_to_offer(recruitment.id, offer.id, "guest", OfferAction.DECLINE)
    assert exc_info.value.code == ConflictError.INVALID_STATE


@pytest.mark.asyncio
async def test_offer_decline_leaves_capacity_untouched(service, recruitment_repo, dispatcher):
    recruitment = await _create(service)
    offer = await service.send_offer(recruitment.id, CREATOR_ID, "guest")

    declined = await service.respond_to_offer(
        recruitment.id, offer.id, "guest", OfferAction.DECLINE
    )

    assert declined.status == OfferStatus.DECLINED
    assert recruitment_repo.recruitments[recruitment.id].current_people == 1
    assert dispatcher.of_type(OfferDeclined)


@pytest.mark.asyncio
async def test_offer_accept_on_full_recruitment_is_rejected(service, recruitment_repo):
    recruitment = await _create(service, max_people=2)
    offer = await service.send_offer(recruitment.id, CREATOR_ID, "guest")
    application = await service.apply(recruitment.id, "alice")
    await service.respond_to_application(
        recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
    )

    with pytest.raises(ConflictError) as exc_info:
        await service.respond_to_offer(recruitment.id, offer.id, "guest", OfferAction.ACCEPT)

    assert exc_info.value.code == ConflictError.RECRUITMENT_FULL
    assert recruitment_repo.offers[offer.id].status == OfferStatus.PENDING


# ===========================================================================
# NOTIFICATIONS ARE BEST EFFORT
# ===========================================================================


@pytest.mark.asyncio
async def test_dispatch_failure_does_not_roll_back_transition(recruitment_repo):
    failing = RecordingDispatcher(fail=True)
    service = RecruitmentLifecycleService(recruitment_repo, failing)
    recruitment = await _create(service, max_people=2)
    application = await service.apply(recruitment.id, "alice")

    approved = await service.respond_to_application(
        recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
    )

    assert approved.status == ApplicationStatus.APPROVED
    assert recruitment_repo.recruitments[recruitment.id].current_people == 2
    # Every event was still attempted
    assert failing.of_type(ApplicationApproved)
    assert failing.of_type(GroupCreated)


# ===========================================================================
# A PARTICIPANT IS ADMITTED ONCE
# ===========================================================================


@pytest.mark.asyncio
async def test_offer_accept_after_approval_takes_no_second_slot(
    service, recruitment_repo, dispatcher
):
    recruitment = await _create(service, max_people=3)
    offer = await service.send_offer(recruitment.id, CREATOR_ID, "guest")
    application = await service.apply(recruitment.id, "guest")
    await service.respond_to_application(
        recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
    )

    accepted = await service.respond_to_offer(recruitment.id, offer.id, "guest", OfferAction.ACCEPT)

    assert accepted.status == OfferStatus.ACCEPTED
    stored = recruitment_repo.recruitments[recruitment.id]
    assert stored.current_people == 2
    assert stored.status == RecruitmentStatus.OPEN
    assert recruitment_repo.member_ids(recruitment.id) == [CREATOR_ID, "guest"]
    assert recruitment_repo.applications[application.id].status == ApplicationStatus.APPROVED
    assert not dispatcher.of_type(MemberJoined)


@pytest.mark.asyncio
async def test_offer_to_approved_participant_is_rejected(service, recruitment_repo):
    recruitment = await _create(service, max_people=3)
    application = await service.apply(recruitment.id, "guest")
    await service.respond_to_application(
        recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
    )

    with pytest.raises(ConflictError) as exc_info:
        await service.send_offer(recruitment.id, CREATOR_ID, "guest")

    assert exc_info.value.code == ConflictError.ALREADY_PARTICIPANT
    assert recruitment_repo.offers == {}


@pytest.mark.asyncio
async def test_offer_accept_records_an_approved_application(service, recruitment_repo):
    recruitment = await _create(service, max_people=3)
    offer = await service.send_offer(recruitment.id, CREATOR_ID, "guest")

    await service.respond_to_offer(recruitment.id, offer.id, "guest", OfferAction.ACCEPT)

    (application,) = await recruitment_repo.list_applications(recruitment.id)
    assert application.applicant_id == "guest"
    assert application.status == ApplicationStatus.APPROVED
    assert application.responded_at is not None

    with pytest.raises(ConflictError) as exc_info:
        await service.apply(recruitment.id, "guest")
    assert exc_info.value.code == ConflictError.DUPLICATE_APPLICATION


@pytest.mark.asyncio
async def test_offer_accept_settles_pending_application(service, recruitment_repo):
    recruitment = await _create(service, max_people=4)
    offer = await service.send_offer(recruitment.id, CREATOR_ID, "guest")
    application = await service.apply(recruitment.id, "guest", "Count me in")

    await service.respond_to_offer(recruitment.id, offer.id, "guest", OfferAction.ACCEPT)

    assert recruitment_repo.applications[application.id].status == ApplicationStatus.APPROVED
    with pytest.raises(ConflictError) as exc_info:
        await service.respond_to_application(
            recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
        )
    assert exc_info.value.code == ConflictError.INVALID_STATE
    assert recruitment_repo.recruitments[recruitment.id].current_people == 2


@pytest.mark.asyncio
async def test_apply_as_group_member_is_rejected(service, recruitment_repo):
    recruitment = await _create(service, max_people=3)
    application = await service.apply(recruitment.id, "guest")
    await service.respond_to_application(
        recruitment.id, application.id, CREATOR_ID, ApplicationAction.APPROVE
    )
    # Only the membership is left behind, as after a cancelled application
    recruitment_repo.applications[application.id].status = ApplicationStatus.CANCELLED

    with pytest.raises(ConflictError) as exc_info:
        await service.apply(recruitment.id, "guest")

    assert exc_info.value.code == ConflictError.ALREADY_PARTICIPANT


@pytest.mark.asyncio
async def test_offer_to_unknown_user_is_not_found(service, recruitment_repo):
    recruitment = await _create(service)

    with pytest.raises(NotFoundError) as exc_info:
        await service.send_offer(recruitment.id, CREATOR_ID, "nobody")

    assert exc_info.value.resource == "User"
    assert recruitment_repo.offers == {}


# ===========================================================================
# PROFILE LOOKUPS SHARE THE TRANSACTION
# ===========================================================================


async def _failing_profile(self, user_id):
    raise InfrastructureError("users table unavailable", operation="get_profile")


@pytest.mark.asyncio
async def test_profile_failure_on_apply_rolls_back(
    service, recruitment_repo, dispatcher, monkeypatch
):
    recruitment = await _create(service)
    monkeypatch.setattr(FakeRecruitmentTransaction, "get_profile", _failing_profile)

    with pytest.raises(InfrastructureError):
        await service.apply(recruitment.id, "alice")

    assert recruitment_repo.applications == {}
    assert dispatcher.events == []


@pytest.mark.asyncio
async def test_profile_failure_on_offer_accept_rolls_back(
    service, recruitment_repo, dispatcher, monkeypatch
):
    recruitment = await _create(service, max_people=3)
    offer = await service.send_offer(recruitment.id, CREATOR_ID, "guest")
    dispatcher.events.clear()
    monkeypatch.setattr(FakeRecruitmentTransaction, "get_profile", _failing_profile)

    with pytest.raises(InfrastructureError):
        await service.respond_to_offer(recruitment.id, offer.id, "guest", OfferAction.ACCEPT)

    assert recruitment_repo.offers[offer.id].status == OfferStatus.PENDING
    assert recruitment_repo.recruitments[recruitment.id].current_people == 1
    assert recruitment_repo.member_ids(recruitment.id) == []
    assert dispatcher.events == []


# ===========================================================================
# READS
# ===========================================================================


@pytest.mark.asyncio
async def test_browse_filters_and_paginates(service, recruitment_repo):
    recruitment_repo.categories["walk"] = CategorySummary(id="walk", name="Walk", icon="shoe")
    first = await _create(service, title="First")
    second = await _create(service, title="Second")
    await _create(service, title="Elsewhere", category_id="walk")
    closed = await _create(service, title="Closed")
    await service.close(closed.id, CREATOR_ID)

    page = await service.browse(RecruitmentQuery(category_id="cafe", page=2, limit=1))

    assert page.total == 2
    assert page.total_pages == 2
    (item,) = page.items
    assert item.id in (first.id, second.id)
    assert item.status == RecruitmentStatus.OPEN

    closed_page = await service.browse(RecruitmentQuery(status=RecruitmentStatus.CLOSED))
    assert [recruitment.id for recruitment in closed_page.items] == [closed.id]


@pytest.mark.asyncio
@pytest.mark.parametrize("page, limit", [(0, 20), (1, 0), (1, 101)])
async def test_browse_rejects_bad_paging(service, page, limit):
    with pytest.raises(ValidationError):
        await service.browse(RecruitmentQuery(page=page, limit=limit))


@pytest.mark.asyncio
async def test_list_mine_returns_only_own_recruitments(service, recruitment_repo):
    mine = await _create(service)
    recruitment_repo.add_profile("other", "Other")
    await _create(service, creator_id="other")

    assert [recruitment.id for recruitment in await service.list_mine(CREATOR_ID)] == [mine.id]


@pytest.mark.asyncio
async def test_received_offers_carry_recruitment_summary(service):
    recruitment = await _create(service, title="Board games")
    await service.send_offer(recruitment.id, CREATOR_ID, "guest")

    (offer,) = await service.list_received_offers("guest")

    assert offer.recruitment.title == "Board games"
    assert offer.recruitment.creator.nickname == "Creator"
    assert offer.to_dict()["recruitment"]["category"]["id"] == "cafe"
    assert await service.list_received_offers(CREATOR_ID) == []


@pytest.mark.asyncio
async def test_my_applications_carry_recruitment_summary(service):
    recruitment = await _create(service, title="Morning run")
    await service.apply(recruitment.id, "guest")

    (application,) = await service.list_my_applications("guest")

    assert application.recruitment.id == recruitment.id
    assert application.recruitment.status == RecruitmentStatus.OPEN
    assert application.to_dict()["recruitment"]["title"] == "Morning run"
