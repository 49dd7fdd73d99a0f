"""Review API routes."""

import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status

from readshare.api.schemas import DataResponse, DeletedResponse, ReviewResponse
from readshare.core.dependencies import get_current_actor, get_review_service
from readshare.domain.commands import ReviewCreate, ReviewUpdate, parse_command
from readshare.domain.services import IReviewService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("", response_model=DataResponse[list[ReviewResponse]])
async def list_reviews(
    reading_log_id: UUID,
    service: Annotated[IReviewService, Depends(get_review_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[list[ReviewResponse]]:
    """Reviews of one of the caller's reading logs, newest first."""
    reviews = await service.list_reviews(actor_id, reading_log_id)
    return DataResponse[list[ReviewResponse]](
        data=[ReviewResponse.model_validate(r) for r in reviews]
    )


@router.get("/{review_id}", response_model=DataResponse[ReviewResponse])
async def get_review(
    review_id: UUID,
    service: Annotated[IReviewService, Depends(get_review_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[ReviewResponse]:
    review = await service.get_review(actor_id, review_id)
    return DataResponse[ReviewResponse](data=ReviewResponse.model_validate(review))


@router.post("", response_model=DataResponse[ReviewResponse], status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[IReviewService, Depends(get_review_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[ReviewResponse]:
    review = await service.create_review(actor_id, parse_command(ReviewCreate, payload))
    return DataResponse[ReviewResponse](data=ReviewResponse.model_validate(review))


@router.put("/{review_id}", response_model=DataResponse[ReviewResponse])
async def update_review(
    review_id: UUID,
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[IReviewService, Depends(get_review_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[ReviewResponse]:
    review = await service.update_review(actor_id, review_id, parse_command(ReviewUpdate, payload))
    return DataResponse[ReviewResponse](data=ReviewResponse.model_validate(review))


@router.delete("/{review_id}", response_model=DataResponse[DeletedResponse])
async def delete_review(
    review_id: UUID,
    service: Annotated[IReviewService, Depends(get_review_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[DeletedResponse]:
    await service.delete_review(actor_id, review_id)
    return DataResponse[DeletedResponse](data=DeletedResponse(id=review_id))
