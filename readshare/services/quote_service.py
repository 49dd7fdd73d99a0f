"""Quote service with business logic."""

import logging
from dataclasses import replace
from uuid import UUID, uuid4

from readshare.domain.commands import QuoteCreate, QuoteUpdate
from readshare.domain.entities import Quote
from readshare.domain.repositories import IUnitOfWork
from readshare.domain.services import IQuoteService
from readshare.services.ownership import require_owned_log, require_owned_quote

logger = logging.getLogger(__name__)


class QuoteService(IQuoteService):

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    async def create_quote(self, actor_id: UUID, command: QuoteCreate) -> Quote:
        async with self.uow.transaction():
            await require_owned_log(self.uow, actor_id, command.reading_log_id, for_update=True)
            quote = await self.uow.quotes.create(
                Quote(
                    id=uuid4(),
                    reading_log_id=command.reading_log_id,
                    owner_id=actor_id,
                    text=command.text,
                    page_number=command.page_number,
                    noted_at=command.noted_at,
                )
            )
        logger.info(f"Quote created: {quote.id} for reading log {command.reading_log_id}")
        return quote

    async def update_quote(self, actor_id: UUID, quote_id: UUID, command: QuoteUpdate) -> Quote:
        async with self.uow.transaction():
            quote = await require_owned_quote(self.uow, actor_id, quote_id, for_update=True)
            updated = await self.uow.quotes.update(replace(quote, **command.changes()))
        logger.info(f"Quote updated: {quote_id} by {actor_id}")
        return updated

    async def delete_quote(self, actor_id: UUID, quote_id: UUID) -> None:
        async with self.uow.transaction():
            await require_owned_quote(self.uow, actor_id, quote_id, for_update=True)
            await self.uow.quotes.delete(quote_id)
        logger.info(f"Quote deleted: {quote_id} by {actor_id}")
