"""Quote API routes."""

import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status

from readshare.api.schemas import DataResponse, DeletedResponse, QuoteResponse
from readshare.core.dependencies import get_current_actor, get_quote_service
from readshare.domain.commands import QuoteCreate, QuoteUpdate, parse_command
from readshare.domain.services import IQuoteService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=DataResponse[QuoteResponse], status_code=status.HTTP_201_CREATED)
async def create_quote(
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[IQuoteService, Depends(get_quote_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[QuoteResponse]:
    quote = await service.create_quote(actor_id, parse_command(QuoteCreate, payload))
    return DataResponse[QuoteResponse](data=QuoteResponse.model_validate(quote))


@router.put("/{quote_id}", response_model=DataResponse[QuoteResponse])
async def update_quote(
    quote_id: UUID,
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[IQuoteService, Depends(get_quote_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[QuoteResponse]:
    quote = await service.update_quote(actor_id, quote_id, parse_command(QuoteUpdate, payload))
    return DataResponse[QuoteResponse](data=QuoteResponse.model_validate(quote))


@router.delete("/{quote_id}", response_model=DataResponse[DeletedResponse])
async def delete_quote(
    quote_id: UUID,
    service: Annotated[IQuoteService, Depends(get_quote_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[DeletedResponse]:
    await service.delete_quote(actor_id, quote_id)
    return DataResponse[DeletedResponse](data=DeletedResponse(id=quote_id))
