"""
Recruitment routes.

Handlers only translate HTTP to lifecycle calls; every rule lives in
RecruitmentLifecycleService and surfaces as a MachiError. Ids are uuids,
so a malformed id is rejected here before it reaches the store.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from machi.auth.verify import current_user_id
from machi.features.recruitments.domain.models import (
    RecruitmentDraft,
    RecruitmentQuery,
    RecruitmentStatus,
)
from machi.features.recruitments.services.lifecycle_service import (
    BROWSE_LIMIT_MAX,
    RecruitmentLifecycleService,
)
from machi.models.api.recruitment_request import (
    ApplyRequest,
    CreateRecruitmentRequest,
    RespondToApplicationRequest,
    RespondToOfferRequest,
    SendOfferRequest,
    UpdateRecruitmentRequest,
)

router = APIRouter(prefix="/recruitments", tags=["recruitments"])


def get_lifecycle_service(request: Request) -> RecruitmentLifecycleService:
    return request.app.state.lifecycle_service


@router.get("")
async def browse_recruitments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=BROWSE_LIMIT_MAX),
    category_id: str | None = Query(None, alias="categoryId"),
    status_filter: RecruitmentStatus = Query(RecruitmentStatus.OPEN, alias="status"),
    _user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    result = await service.browse(
        RecruitmentQuery(status=status_filter, category_id=category_id, page=page, limit=limit)
    )
    return {
        "success": True,
        "data": {
            "items": [recruitment.to_dict() for recruitment in result.items],
            "pagination": result.pagination(),
        },
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_recruitment(
    body: CreateRecruitmentRequest,
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    recruitment = await service.create(RecruitmentDraft(creator_id=user_id, **body.model_dump()))
    return {"success": True, "data": recruitment.to_dict()}


@router.get("/me")
async def list_my_recruitments(
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    recruitments = await service.list_mine(user_id)
    return {"success": True, "data": [recruitment.to_dict() for recruitment in recruitments]}


@router.get("/me/offers")
async def list_received_offers(
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    offers = await service.list_received_offers(user_id)
    return {"success": True, "data": [offer.to_dict() for offer in offers]}


@router.get("/me/applications")
async def list_my_applications(
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    applications = await service.list_my_applications(user_id)
    return {"success": True, "data": [application.to_dict() for application in applications]}


@router.get("/{recruitment_id}")
async def get_recruitment(
    recruitment_id: UUID,
    _user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    recruitment = await service.get_recruitment(str(recruitment_id))
    return {"success": True, "data": recruitment.to_dict()}


@router.put("/{recruitment_id}")
async def update_recruitment(
    recruitment_id: UUID,
    body: UpdateRecruitmentRequest,
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    recruitment = await service.update(
        str(recruitment_id), user_id, body.model_dump(exclude_unset=True)
    )
    return {"success": True, "data": recruitment.to_dict()}


@router.delete("/{recruitment_id}")
async def cancel_recruitment(
    recruitment_id: UUID,
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    recruitment = await service.cancel(str(recruitment_id), user_id)
    return {"success": True, "data": {"id": recruitment.id, "status": recruitment.status.value}}


@router.put("/{recruitment_id}/close")
async def close_recruitment(
    recruitment_id: UUID,
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    recruitment = await service.close(str(recruitment_id), user_id)
    return {"success": True, "data": {"id": recruitment.id, "status": recruitment.status.value}}


@router.post("/{recruitment_id}/apply", status_code=status.HTTP_201_CREATED)
async def apply_to_recruitment(
    recruitment_id: UUID,
    body: ApplyRequest,
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    application = await service.apply(str(recruitment_id), user_id, body.message)
    return {"success": True, "data": application.to_dict()}


@router.get("/{recruitment_id}/applications")
async def list_applications(
    recruitment_id: UUID,
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    applications = await service.list_applications(str(recruitment_id), user_id)
    return {"success": True, "data": [application.to_dict() for application in applications]}


@router.put("/{recruitment_id}/applications/{application_id}")
async def respond_to_application(
    recruitment_id: UUID,
    application_id: UUID,
    body: RespondToApplicationRequest,
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    application = await service.respond_to_application(
        str(recruitment_id), str(application_id), user_id, body.action
    )
    return {"success": True, "data": application.to_dict()}


@router.post("/{recruitment_id}/offer", status_code=status.HTTP_201_CREATED)
async def send_offer(
    recruitment_id: UUID,
    body: SendOfferRequest,
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    offer = await service.send_offer(
        str(recruitment_id), user_id, str(body.receiver_id), body.message
    )
    return {"success": True, "data": offer.to_dict()}


@router.put("/{recruitment_id}/offers/{offer_id}")
async def respond_to_offer(
    recruitment_id: UUID,
    offer_id: UUID,
    body: RespondToOfferRequest,
    user_id: str = Depends(current_user_id),
    service: RecruitmentLifecycleService = Depends(get_lifecycle_service),
) -> dict:
    offer = await service.respond_to_offer(
        str(recruitment_id), str(offer_id), user_id, body.action
    )
    return {"success": True, "data": offer.to_dict()}
