"""Composite write coordinator for book + reading log + quotes + reviews.

Every public method runs as one unit of work: a failure at any step rolls
back the steps already applied, so callers never observe a partial write.

A Book is expected to back at most one ReadingLog. ``upsert`` refuses to add
a second log to a book, and ``delete`` only removes the book once no log
references it any more.
"""

import logging
from dataclasses import replace
from typing import Optional
from uuid import UUID, uuid4

from readshare.domain.commands import (
    BookInput,
    QuickCreateCommand,
    QuoteInput,
    ReadingLogInput,
    ReviewInput,
    UpsertCommand,
)
from readshare.domain.entities import Book, DeleteResult, Quote, ReadingLog, Review, UpsertResult
from readshare.domain.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from readshare.domain.repositories import IUnitOfWork
from readshare.domain.services import IRecordWriteService
from readshare.services.ownership import (
    require_owned_log,
    require_owned_quote,
    require_owned_review,
)

logger = logging.getLogger(__name__)


class RecordWriteService(IRecordWriteService):

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    async def create_record(
        self, actor_id: UUID, command: QuickCreateCommand
    ) -> tuple[Book, ReadingLog]:
        """Create a book together with a ``want_to_read`` log for it."""
        async with self.uow.transaction():
            book = await self.uow.books.create(
                Book(
                    id=uuid4(),
                    title=command.title,
                    author=command.author,
                    owner_id=actor_id,
                    cover_image_url=command.cover_image_url,
                    total_pages=command.total_pages,
                )
            )
            reading_log = await self.uow.reading_logs.create(
                ReadingLog(
                    id=uuid4(),
                    book_id=book.id,
                    owner_id=actor_id,
                    status="want_to_read",
                    visibility="public",
                )
            )

        logger.info(
            "Reading record created by %s: book=%s reading_log=%s", actor_id, book.id, reading_log.id
        )
        return book, reading_log

    async def upsert(self, actor_id: UUID, command: UpsertCommand) -> UpsertResult:
        async with self.uow.transaction():
            # ── 1. Book ──────────────────────────────────────────────────────
            book, book_created = await self._upsert_book(actor_id, command.book)

            # ── 2. Reading log ───────────────────────────────────────────────
            reading_log, log_created = await self._upsert_reading_log(
                actor_id, command.reading_log, book
            )
            if book is None and reading_log is not None:
                book_id: Optional[UUID] = reading_log.book_id
            else:
                book_id = book.id if book else None

            # ── 3. Quotes ────────────────────────────────────────────────────
            touched_log_ids: list[UUID] = []
            for item in command.quotes:
                quote = await self._upsert_quote(actor_id, item, reading_log)
                touched_log_ids.append(quote.reading_log_id)

            # ── 4. Reviews ───────────────────────────────────────────────────
            for item in command.reviews:
                review = await self._upsert_review(actor_id, item, reading_log)
                touched_log_ids.append(review.reading_log_id)

            # ── 5. Deletions ─────────────────────────────────────────────────
            for quote_id in command.delete_quote_ids:
                deleted = await self._delete_quote(actor_id, quote_id)
                if deleted is not None:
                    touched_log_ids.append(deleted.reading_log_id)
            for review_id in command.delete_review_ids:
                deleted = await self._delete_review(actor_id, review_id)
                if deleted is not None:
                    touched_log_ids.append(deleted.reading_log_id)

            # Child-only payloads report the parent record of the first child touched.
            if reading_log is None and touched_log_ids:
                reading_log = await self.uow.reading_logs.get_by_id(touched_log_ids[0])
                if reading_log is not None and book_id is None:
                    book_id = reading_log.book_id

        created = book_created and log_created
        logger.info(
            "Upsert by %s: book=%s reading_log=%s created=%s quotes=%d reviews=%d deletions=%d",
            actor_id,
            book_id,
            reading_log.id if reading_log else None,
            created,
            len(command.quotes),
            len(command.reviews),
            len(command.delete_quote_ids) + len(command.delete_review_ids),
        )
        return UpsertResult(
            book_id=book_id,
            reading_log_id=reading_log.id if reading_log else None,
            created=created,
        )

    async def delete(self, actor_id: UUID, reading_log_id: UUID) -> DeleteResult:
        async with self.uow.transaction():
            # Lock order is book, then reading log, same as upsert.
            reading_log = await self.uow.reading_logs.get_by_id(reading_log_id)
            if reading_log is None or reading_log.owner_id != actor_id:
                raise NotFoundError("Reading record not found")
            book = await self.uow.books.get_by_id(reading_log.book_id, for_update=True)
            reading_log = await self.uow.reading_logs.get_by_id(reading_log_id, for_update=True)
            if reading_log is None or reading_log.owner_id != actor_id:
                raise NotFoundError("Reading record not found")

            # Children before the parent log.
            quotes_deleted = await self.uow.quotes.delete_by_reading_log(reading_log.id)
            reviews_deleted = await self.uow.reviews.delete_by_reading_log(reading_log.id)
            await self.uow.reading_logs.delete(reading_log.id)

            book_deleted = False
            remaining = await self.uow.reading_logs.count_by_book(reading_log.book_id)
            if book is not None and remaining == 0:
                if book.owner_id == actor_id:
                    book_deleted = await self.uow.books.delete(book.id)
                else:
                    logger.warning(
                        "Book %s left in place: owned by %s, not %s", book.id, book.owner_id, actor_id
                    )

        logger.info(
            "Reading record %s deleted by %s (quotes=%d reviews=%d book_deleted=%s)",
            reading_log_id, actor_id, quotes_deleted, reviews_deleted, book_deleted,
        )
        return DeleteResult(
            reading_log_id=reading_log.id,
            book_id=reading_log.book_id,
            book_deleted=book_deleted,
        )

    # ── steps ────────────────────────────────────────────────────────────────

    async def _upsert_book(
        self, actor_id: UUID, data: Optional[BookInput]
    ) -> tuple[Optional[Book], bool]:
        if data is None:
            return None, False

        if data.id is None:
            book = await self.uow.books.create(
                Book(
                    id=uuid4(),
                    title=data.title,
                    author=data.author,
                    owner_id=actor_id,
                    cover_image_url=data.cover_image_url,
                    total_pages=data.total_pages,
                )
            )
            return book, True

        book = await self.uow.books.get_by_id(data.id, for_update=True)
        if book is None:
            raise NotFoundError("Book not found")
        if book.owner_id != actor_id:
            raise AuthorizationError("You do not own this book")
        changes = data.changes()
        if changes:
            book = await self.uow.books.update(replace(book, **changes))
        return book, False

    async def _upsert_reading_log(
        self, actor_id: UUID, data: Optional[ReadingLogInput], book: Optional[Book]
    ) -> tuple[Optional[ReadingLog], bool]:
        if data is None:
            return None, False

        if data.id is None:
            if book is None:
                raise ValidationError("book is required to create a reading log")
            if await self.uow.reading_logs.count_by_book(book.id) > 0:
                raise ConflictError("This book already has a reading log")
            fields = data.changes()
            reading_log = await self.uow.reading_logs.create(
                ReadingLog(id=uuid4(), book_id=book.id, owner_id=actor_id, **fields)
            )
            return reading_log, True

        reading_log = await require_owned_log(self.uow, actor_id, data.id, for_update=True)
        if book is not None and reading_log.book_id != book.id:
            raise ValidationError("reading_log does not belong to the given book")
        changes = data.changes()
        if changes:
            reading_log = await self.uow.reading_logs.update(replace(reading_log, **changes))
        return reading_log, False

    async def _upsert_quote(
        self, actor_id: UUID, data: QuoteInput, reading_log: Optional[ReadingLog]
    ) -> Quote:
        if data.id is None:
            if reading_log is None:
                raise ValidationError("reading_log is required to add quotes")
            return await self.uow.quotes.create(
                Quote(
                    id=uuid4(),
                    reading_log_id=reading_log.id,
                    owner_id=actor_id,
                    text=data.text,
                    page_number=data.page_number,
                    noted_at=data.noted_at,
                )
            )

        quote = await require_owned_quote(self.uow, actor_id, data.id, for_update=True)
        changes = data.changes()
        if not changes:
            return quote
        return await self.uow.quotes.update(replace(quote, **changes))

    async def _upsert_review(
        self, actor_id: UUID, data: ReviewInput, reading_log: Optional[ReadingLog]
    ) -> Review:
        if data.id is None:
            if reading_log is None:
                raise ValidationError("reading_log is required to add reviews")
            return await self.uow.reviews.create(
                Review(
                    id=uuid4(),
                    reading_log_id=reading_log.id,
                    owner_id=actor_id,
                    content=data.content,
                    page_number=data.page_number,
                    reviewed_at=data.reviewed_at,
                )
            )

        review = await require_owned_review(self.uow, actor_id, data.id, for_update=True)
        changes = data.changes()
        if not changes:
            return review
        return await self.uow.reviews.update(replace(review, **changes))

    async def _delete_quote(self, actor_id: UUID, quote_id: UUID) -> Optional[Quote]:
        # Already gone: repeating the same payload stays a no-op.
        if await self.uow.quotes.get_by_id(quote_id) is None:
            return None
        quote = await require_owned_quote(self.uow, actor_id, quote_id, for_update=True)
        await self.uow.quotes.delete(quote_id)
        return quote

    async def _delete_review(self, actor_id: UUID, review_id: UUID) -> Optional[Review]:
        if await self.uow.reviews.get_by_id(review_id) is None:
            return None
        review = await require_owned_review(self.uow, actor_id, review_id, for_update=True)
        await self.uow.reviews.delete(review_id)
        return review
