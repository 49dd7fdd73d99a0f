"""Profile API routes."""

import logging
from typing import Annotated, Any, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from readshare.api.schemas import DataResponse, ListResponse, PageMeta, ProfileResponse, ProfileSummary
from readshare.core.dependencies import get_current_actor, get_profile_service
from readshare.domain.commands import ProfileUpdate, parse_command
from readshare.domain.services import IProfileService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=DataResponse[ProfileResponse])
async def get_my_profile(
    service: Annotated[IProfileService, Depends(get_profile_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[ProfileResponse]:
    profile = await service.get_own(actor_id)
    return DataResponse[ProfileResponse](data=ProfileResponse.model_validate(profile))


@router.put("/me", response_model=DataResponse[ProfileResponse])
async def update_my_profile(
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[IProfileService, Depends(get_profile_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[ProfileResponse]:
    """Update nickname, avatar_url or bio."""
    profile = await service.update(actor_id, parse_command(ProfileUpdate, payload))
    return DataResponse[ProfileResponse](data=ProfileResponse.model_validate(profile))


@router.get("", response_model=ListResponse[ProfileSummary])
async def search_profiles(
    service: Annotated[IProfileService, Depends(get_profile_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
    search: Annotated[str, Query()] = "",
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> ListResponse[ProfileSummary]:
    """Find users by nickname (case-insensitive, at least two characters)."""
    page = await service.search(actor_id, search, limit, offset)
    return ListResponse[ProfileSummary](
        data=[ProfileSummary.model_validate(p) for p in page.items],
        meta=PageMeta(total=page.total, count=page.count, offset=page.offset, limit=page.limit),
    )


@router.get("/{user_id}", response_model=DataResponse[ProfileResponse])
async def get_profile(
    user_id: UUID,
    service: Annotated[IProfileService, Depends(get_profile_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[ProfileResponse]:
    profile = await service.get_public(actor_id, user_id)
    return DataResponse[ProfileResponse](data=ProfileResponse.model_validate(profile))
