"""
Want-to-do routes.

    GET    /want-to-dos                      - browse everyone's active declarations
    POST   /want-to-dos                      - declare
    GET    /want-to-dos/me                   - own declarations
    GET    /want-to-dos/matching/suggestions - other users' matching declarations
    GET    /want-to-dos/{id}                 - one declaration
    PUT    /want-to-dos/{id}                 - change timing/comment
    DELETE /want-to-dos/{id}                 - soft delete
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from machi.auth.verify import current_user_id
from machi.features.want_to_dos.domain.models import Timing, WantToDoDraft
from machi.features.want_to_dos.services.want_to_do_service import (
    BROWSE_LIMIT,
    BROWSE_LIMIT_MAX,
    WantToDoService,
)
from machi.models.api.want_to_do_request import CreateWantToDoRequest, UpdateWantToDoRequest

router = APIRouter(prefix="/want-to-dos", tags=["want-to-dos"])


def get_want_to_do_service(request: Request) -> WantToDoService:
    return request.app.state.want_to_do_service


@router.get("")
async def browse_want_to_dos(
    page: int = Query(1, ge=1),
    limit: int = Query(BROWSE_LIMIT, ge=1, le=BROWSE_LIMIT_MAX),
    category_id: str | None = Query(None, alias="categoryId"),
    area: str | None = Query(None),
    timing: Timing | None = Query(None),
    _user_id: str = Depends(current_user_id),
    service: WantToDoService = Depends(get_want_to_do_service),
) -> dict:
    result = await service.browse(
        category_id=category_id, area=area, timing=timing, page=page, limit=limit
    )
    return {
        "success": True,
        "data": {
            "items": [item.to_dict() for item in result.items],
            "pagination": result.pagination(),
        },
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_want_to_do(
    body: CreateWantToDoRequest,
    user_id: str = Depends(current_user_id),
    service: WantToDoService = Depends(get_want_to_do_service),
) -> dict:
    want_to_do = await service.create(WantToDoDraft(user_id=user_id, **body.model_dump()))
    return {"success": True, "data": want_to_do.to_dict()}


@router.get("/me")
async def list_my_want_to_dos(
    user_id: str = Depends(current_user_id),
    service: WantToDoService = Depends(get_want_to_do_service),
) -> dict:
    want_to_dos = await service.list_mine(user_id)
    return {"success": True, "data": [item.to_dict() for item in want_to_dos]}


@router.get("/matching/suggestions")
async def matching_suggestions(
    user_id: str = Depends(current_user_id),
    service: WantToDoService = Depends(get_want_to_do_service),
) -> dict:
    suggestions = await service.suggestions(user_id)
    return {"success": True, "data": {"items": [item.to_dict() for item in suggestions]}}


@router.get("/{want_to_do_id}")
async def get_want_to_do(
    want_to_do_id: UUID,
    _user_id: str = Depends(current_user_id),
    service: WantToDoService = Depends(get_want_to_do_service),
) -> dict:
    want_to_do = await service.get(str(want_to_do_id))
    return {"success": True, "data": want_to_do.to_dict()}


@router.put("/{want_to_do_id}")
async def update_want_to_do(
    want_to_do_id: UUID,
    body: UpdateWantToDoRequest,
    user_id: str = Depends(current_user_id),
    service: WantToDoService = Depends(get_want_to_do_service),
) -> dict:
    want_to_do = await service.update(
        str(want_to_do_id), user_id, body.model_dump(exclude_unset=True)
    )
    return {"success": True, "data": want_to_do.to_dict()}


@router.delete("/{want_to_do_id}")
async def delete_want_to_do(
    want_to_do_id: UUID,
    user_id: str = Depends(current_user_id),
    service: WantToDoService = Depends(get_want_to_do_service),
) -> dict:
    await service.delete(str(want_to_do_id), user_id)
    return {"success": True, "data": {"message": "Want-to-do deleted"}}
