"""Reading record API routes (list, get, quick create, upsert, delete)."""

import logging
from typing import Annotated, Any, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response, status

from readshare.api.schemas import (
    BookResponse,
    DataResponse,
    DeleteRecordResponse,
    QuickCreateResponse,
    ReadingLogResponse,
    ReadingRecordListResponse,
    ReadingRecordResponse,
    RecordPageMeta,
    UpsertResponse,
)
from readshare.core.dependencies import (
    get_current_actor,
    get_reading_record_service,
    get_record_write_service,
)
from readshare.domain.commands import (
    QuickCreateCommand,
    RecordListQuery,
    UpsertCommand,
    parse_command,
)
from readshare.domain.services import IReadingRecordService, IRecordWriteService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reading-records", tags=["reading-records"])


def _list_query(
    scope: Optional[str],
    status_filter: Optional[str],
    start_date_from: Optional[str],
    start_date_to: Optional[str],
    end_date_from: Optional[str],
    end_date_to: Optional[str],
    search: Optional[str],
    sort: Optional[str],
    direction: Optional[str],
    limit: Optional[int],
    offset: Optional[int],
) -> RecordListQuery:
    """Build the validated listing query from raw query-string values."""
    filters: dict[str, Any] = {
        "start_date_from": start_date_from,
        "start_date_to": start_date_to,
        "end_date_from": end_date_from,
        "end_date_to": end_date_to,
        "search": search,
    }
    if status_filter:
        filters["status"] = [s.strip() for s in status_filter.split(",") if s.strip()]
    data: dict[str, Any] = {
        "filters": {k: v for k, v in filters.items() if v is not None},
        "limit": limit,
        "offset": offset,
    }
    if scope is not None:
        data["scope"] = scope
    if sort is not None:
        data["sort"] = {"field": sort, "direction": direction or "desc"}
    elif direction is not None:
        data["sort"] = {"direction": direction}
    return parse_command(RecordListQuery, data)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------
@router.get("", response_model=ReadingRecordListResponse)
async def list_reading_records(
    service: Annotated[IReadingRecordService, Depends(get_reading_record_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
    scope: Optional[str] = None,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    start_date_from: Optional[str] = None,
    start_date_to: Optional[str] = None,
    end_date_from: Optional[str] = None,
    end_date_to: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    direction: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> ReadingRecordListResponse:
    """List reading records visible to the caller.

    ``status`` takes a comma-separated list; ``sort`` is one of
    ``updated_at``, ``start_date``, ``end_date``, ``created_at``.
    """
    query = _list_query(
        scope,
        status_filter,
        start_date_from,
        start_date_to,
        end_date_from,
        end_date_to,
        search,
        sort,
        direction,
        limit,
        offset,
    )
    page = await service.list_records(actor_id, query)
    logger.debug(f"Listed {page.count}/{page.total} records for {actor_id} (scope={query.scope})")
    return ReadingRecordListResponse(
        data=[ReadingRecordResponse.model_validate(r) for r in page.items],
        meta=RecordPageMeta(
            total=page.total,
            count=page.count,
            offset=page.offset,
            limit=page.limit,
            scope=query.scope,
        ),
    )


@router.get("/{reading_log_id}", response_model=DataResponse[ReadingRecordResponse])
async def get_reading_record(
    reading_log_id: UUID,
    service: Annotated[IReadingRecordService, Depends(get_reading_record_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[ReadingRecordResponse]:
    record = await service.get_record(actor_id, reading_log_id)
    return DataResponse[ReadingRecordResponse](data=ReadingRecordResponse.model_validate(record))


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------
@router.post(
    "",
    response_model=DataResponse[QuickCreateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_reading_record(
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[IRecordWriteService, Depends(get_record_write_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[QuickCreateResponse]:
    """Create a book and a ``want_to_read`` reading log for it."""
    command = parse_command(QuickCreateCommand, payload)
    book, reading_log = await service.create_record(actor_id, command)
    return DataResponse[QuickCreateResponse](
        data=QuickCreateResponse(
            book=BookResponse.model_validate(book),
            reading_log=ReadingLogResponse.model_validate(reading_log),
        )
    )


@router.put("", response_model=DataResponse[UpsertResponse])
async def upsert_reading_record(
    payload: Annotated[dict[str, Any], Body()],
    response: Response,
    service: Annotated[IRecordWriteService, Depends(get_record_write_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[UpsertResponse]:
    """Create or update a book, its reading log, quotes and reviews in one go.

    Responds 201 when both the book and the reading log were created.
    """
    command = parse_command(UpsertCommand, payload)
    result = await service.upsert(actor_id, command)
    if result.created:
        response.status_code = status.HTTP_201_CREATED
    return DataResponse[UpsertResponse](
        data=UpsertResponse(book_id=result.book_id, reading_log_id=result.reading_log_id)
    )


@router.delete("/{reading_log_id}", response_model=DataResponse[DeleteRecordResponse])
async def delete_reading_record(
    reading_log_id: UUID,
    service: Annotated[IRecordWriteService, Depends(get_record_write_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> DataResponse[DeleteRecordResponse]:
    result = await service.delete(actor_id, reading_log_id)
    return DataResponse[DeleteRecordResponse](
        data=DeleteRecordResponse(
            deleted=result.deleted,
            reading_log_id=result.reading_log_id,
            book_id=result.book_id,
            book_deleted=result.book_deleted,
        )
    )
