"""Reading record composer.

Assembles ``{book, reading_log, quotes, reviews, profile}`` records for a
viewer. The store query is narrowed by scope and visibility; ``is_visible``
is applied again per row before anything is returned.
"""

import logging
from collections import defaultdict
from uuid import UUID

from readshare.domain.commands import RecordListQuery, sanitize_pagination
from readshare.domain.entities import Page, ReadingRecord
from readshare.domain.errors import NotFoundError
from readshare.domain.repositories import IUnitOfWork, ReadingLogQuery, ReadingLogRow
from readshare.domain.services import IFriendshipService, IReadingRecordService
from readshare.services.visibility import is_visible, scope_to_owner_filter

logger = logging.getLogger(__name__)


class ReadingRecordService(IReadingRecordService):

    def __init__(
        self,
        uow: IUnitOfWork,
        friendship_service: IFriendshipService,
        default_limit: int = 50,
        max_limit: int = 100,
    ):
        self.uow = uow
        self.friendship_service = friendship_service
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def list_records(self, viewer_id: UUID, query: RecordListQuery) -> Page[ReadingRecord]:
        limit, offset = sanitize_pagination(
            query.limit, query.offset, self.default_limit, self.max_limit
        )
        async with self.uow.snapshot():
            friend_ids = await self.friendship_service.friend_ids_of(viewer_id)
            blocked_ids = await self.friendship_service.blocked_ids_of(viewer_id)
            owner_filter = scope_to_owner_filter(viewer_id, query.scope, friend_ids, blocked_ids)

            filters = query.filters
            rows, total = await self.uow.reading_logs.list_rows(
                ReadingLogQuery(
                    viewer_id=viewer_id,
                    friend_ids=friend_ids,
                    owner_ids=owner_filter.owner_ids,
                    excluded_owner_ids=owner_filter.excluded_owner_ids,
                    statuses=list(filters.status or []),
                    start_date_from=filters.start_date_from,
                    start_date_to=filters.start_date_to,
                    end_date_from=filters.end_date_from,
                    end_date_to=filters.end_date_to,
                    search=filters.search,
                    sort_field=query.sort.field,
                    sort_direction=query.sort.direction,
                    offset=offset,
                    limit=limit,
                )
            )

            visible = []
            for row in rows:
                log = row.reading_log
                if is_visible(viewer_id, log.owner_id, log.visibility, friend_ids, blocked_ids):
                    visible.append(row)
                else:
                    logger.warning(
                        "Store returned reading log %s not visible to %s; dropped", log.id, viewer_id
                    )

            records = await self._compose(visible)
        return Page(items=records, total=total, offset=offset, limit=limit)

    async def get_record(self, viewer_id: UUID, reading_log_id: UUID) -> ReadingRecord:
        async with self.uow.snapshot():
            row = await self.uow.reading_logs.get_row(reading_log_id)
            if row is None:
                raise NotFoundError("Reading record not found")

            log = row.reading_log
            if log.owner_id != viewer_id:
                friend_ids = await self.friendship_service.friend_ids_of(viewer_id)
                blocked_ids = await self.friendship_service.blocked_ids_of(viewer_id)
                if not is_visible(viewer_id, log.owner_id, log.visibility, friend_ids, blocked_ids):
                    # Same answer as a missing record.
                    raise NotFoundError("Reading record not found")

            records = await self._compose([row])
        return records[0]

    async def _compose(self, rows: list[ReadingLogRow]) -> list[ReadingRecord]:
        log_ids = [row.reading_log.id for row in rows]
        quotes_by_log: dict[UUID, list] = defaultdict(list)
        reviews_by_log: dict[UUID, list] = defaultdict(list)
        if log_ids:
            for quote in await self.uow.quotes.list_by_reading_logs(log_ids):
                quotes_by_log[quote.reading_log_id].append(quote)
            for review in await self.uow.reviews.list_by_reading_logs(log_ids):
                reviews_by_log[review.reading_log_id].append(review)

        return [
            ReadingRecord(
                book=row.book,
                reading_log=row.reading_log,
                quotes=quotes_by_log[row.reading_log.id],
                reviews=reviews_by_log[row.reading_log.id],
                profile=row.profile,
            )
            for row in rows
        ]
