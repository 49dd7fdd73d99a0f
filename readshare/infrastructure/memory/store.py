"""In-process store adapter.

Mirrors the filtering, ordering and uniqueness rules of the SQLAlchemy
repositories over plain dicts. Used for local runs (``store_backend=memory``)
and throughout the service tests.
"""

import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import AsyncIterator, Optional
from uuid import UUID

from readshare.domain.entities import Book, Friendship, Profile, Quote, ReadingLog, Review, utcnow
from readshare.domain.errors import ConflictError
from readshare.domain.repositories import (
    FriendshipRole,
    IBookRepository,
    IFriendshipRepository,
    IProfileRepository,
    IQuoteRepository,
    IReadingLogRepository,
    IReviewRepository,
    IUnitOfWork,
    ReadingLogQuery,
    ReadingLogRow,
)

logger = logging.getLogger(__name__)


@dataclass
class MemoryTables:
    profiles: dict[UUID, Profile] = field(default_factory=dict)
    friendships: dict[UUID, Friendship] = field(default_factory=dict)
    books: dict[UUID, Book] = field(default_factory=dict)
    reading_logs: dict[UUID, ReadingLog] = field(default_factory=dict)
    quotes: dict[UUID, Quote] = field(default_factory=dict)
    reviews: dict[UUID, Review] = field(default_factory=dict)

    def restore(self, snapshot: "MemoryTables") -> None:
        self.profiles = snapshot.profiles
        self.friendships = snapshot.friendships
        self.books = snapshot.books
        self.reading_logs = snapshot.reading_logs
        self.quotes = snapshot.quotes
        self.reviews = snapshot.reviews


def _nulls_last(items: list, key: str, direction: str) -> list:
    """Sort by ``key`` then id, keeping ``None`` values at the end either way."""
    reverse = direction == "desc"
    present = [i for i in items if getattr(i, key) is not None]
    missing = [i for i in items if getattr(i, key) is None]
    present.sort(key=lambda i: (getattr(i, key), str(i.id)), reverse=reverse)
    missing.sort(key=lambda i: str(i.id), reverse=reverse)
    return present + missing


# ---------------------------------------------------------------------------
# Profile Repository
# ---------------------------------------------------------------------------
class MemoryProfileRepository(IProfileRepository):

    def __init__(self, tables: MemoryTables):
        self.tables = tables

    def _check_nickname(self, profile: Profile) -> None:
        for other in self.tables.profiles.values():
            if other.id != profile.id and other.nickname == profile.nickname:
                raise ConflictError("nickname is already taken")

    async def create(self, profile: Profile) -> Profile:
        if profile.id in self.tables.profiles:
            raise ConflictError("Profile already exists")
        self._check_nickname(profile)
        self.tables.profiles[profile.id] = replace(profile)
        return replace(profile)

    async def get_by_id(self, user_id: UUID) -> Optional[Profile]:
        profile = self.tables.profiles.get(user_id)
        return replace(profile) if profile else None

    async def get_by_nickname(self, nickname: str) -> Optional[Profile]:
        for profile in self.tables.profiles.values():
            if profile.nickname == nickname:
                return replace(profile)
        return None

    async def get_many(self, user_ids: list[UUID]) -> dict[UUID, Profile]:
        return {
            uid: replace(self.tables.profiles[uid])
            for uid in user_ids
            if uid in self.tables.profiles
        }

    async def update(self, profile: Profile) -> Profile:
        self._check_nickname(profile)
        stored = replace(profile, updated_at=utcnow())
        self.tables.profiles[profile.id] = stored
        return replace(stored)

    async def search_by_nickname(
        self, term: str, exclude_ids: frozenset[UUID], offset: int, limit: int
    ) -> tuple[list[Profile], int]:
        needle = term.casefold()
        matches = [
            p
            for p in self.tables.profiles.values()
            if needle in p.nickname.casefold() and p.id not in exclude_ids
        ]
        matches.sort(key=lambda p: (p.nickname, str(p.id)))
        return [replace(p) for p in matches[offset:offset + limit]], len(matches)


# ---------------------------------------------------------------------------
# Friendship Repository
# ---------------------------------------------------------------------------
class MemoryFriendshipRepository(IFriendshipRepository):

    def __init__(self, tables: MemoryTables):
        self.tables = tables

    def _check_pair(self, friendship: Friendship) -> None:
        for other in self.tables.friendships.values():
            if other.id != friendship.id and other.pair_key == friendship.pair_key:
                raise ConflictError("A relationship between these users already exists")

    async def create(self, friendship: Friendship) -> Friendship:
        self._check_pair(friendship)
        self.tables.friendships[friendship.id] = replace(friendship)
        return replace(friendship)

    async def get_by_id(self, friendship_id: UUID, for_update: bool = False) -> Optional[Friendship]:
        friendship = self.tables.friendships.get(friendship_id)
        return replace(friendship) if friendship else None

    async def get_between(
        self, user_a: UUID, user_b: UUID, for_update: bool = False
    ) -> Optional[Friendship]:
        for friendship in self.tables.friendships.values():
            if friendship.involves(user_a) and friendship.involves(user_b):
                return replace(friendship)
        return None

    async def update(self, friendship: Friendship) -> Friendship:
        self._check_pair(friendship)
        stored = replace(friendship, updated_at=utcnow())
        self.tables.friendships[friendship.id] = stored
        return replace(stored)

    async def delete(self, friendship_id: UUID) -> bool:
        return self.tables.friendships.pop(friendship_id, None) is not None

    async def list_for_user(
        self,
        user_id: UUID,
        status: str,
        role: FriendshipRole,
        offset: int,
        limit: int,
    ) -> tuple[list[Friendship], int]:
        rows = []
        for f in self.tables.friendships.values():
            if f.status != status:
                continue
            if role == "requester" and f.requester_id != user_id:
                continue
            if role == "addressee" and f.addressee_id != user_id:
                continue
            if role == "any" and not f.involves(user_id):
                continue
            rows.append(f)
        rows = _nulls_last(rows, "created_at", "desc")
        return [replace(f) for f in rows[offset:offset + limit]], len(rows)

    async def counterpart_ids(self, user_id: UUID, status: str) -> set[UUID]:
        return {
            f.counterpart_of(user_id)
            for f in self.tables.friendships.values()
            if f.status == status and f.involves(user_id)
        }


# ---------------------------------------------------------------------------
# Book Repository
# ---------------------------------------------------------------------------
class MemoryBookRepository(IBookRepository):

    def __init__(self, tables: MemoryTables):
        self.tables = tables

    async def create(self, book: Book) -> Book:
        self.tables.books[book.id] = replace(book)
        return replace(book)

    async def get_by_id(self, book_id: UUID, for_update: bool = False) -> Optional[Book]:
        book = self.tables.books.get(book_id)
        return replace(book) if book else None

    async def update(self, book: Book) -> Book:
        stored = replace(book, updated_at=utcnow())
        self.tables.books[book.id] = stored
        return replace(stored)

    async def delete(self, book_id: UUID) -> bool:
        if any(log.book_id == book_id for log in self.tables.reading_logs.values()):
            raise ConflictError("Book is still referenced by a reading log")
        return self.tables.books.pop(book_id, None) is not None


# ---------------------------------------------------------------------------
# Reading Log Repository
# ---------------------------------------------------------------------------
class MemoryReadingLogRepository(IReadingLogRepository):

    def __init__(self, tables: MemoryTables):
        self.tables = tables

    async def create(self, reading_log: ReadingLog) -> ReadingLog:
        if reading_log.book_id not in self.tables.books:
            raise ConflictError("Reading log references a missing book")
        self.tables.reading_logs[reading_log.id] = replace(reading_log)
        return replace(reading_log)

    async def get_by_id(self, reading_log_id: UUID, for_update: bool = False) -> Optional[ReadingLog]:
        log = self.tables.reading_logs.get(reading_log_id)
        return replace(log) if log else None

    async def update(self, reading_log: ReadingLog) -> ReadingLog:
        stored = replace(reading_log, updated_at=utcnow())
        self.tables.reading_logs[reading_log.id] = stored
        return replace(stored)

    async def delete(self, reading_log_id: UUID) -> bool:
        removed = self.tables.reading_logs.pop(reading_log_id, None)
        if removed is None:
            return False
        # Children cascade with their reading log.
        for table in (self.tables.quotes, self.tables.reviews):
            for child_id in [c.id for c in table.values() if c.reading_log_id == reading_log_id]:
                del table[child_id]
        return True

    async def count_by_book(self, book_id: UUID) -> int:
        return sum(1 for log in self.tables.reading_logs.values() if log.book_id == book_id)

    async def get_row(self, reading_log_id: UUID) -> Optional[ReadingLogRow]:
        log = self.tables.reading_logs.get(reading_log_id)
        return self._to_row(log) if log else None

    async def list_rows(self, query: ReadingLogQuery) -> tuple[list[ReadingLogRow], int]:
        matches = [
            log for log in self.tables.reading_logs.values() if self._matches(log, query)
        ]
        ordered = _nulls_last(matches, query.sort_field, query.sort_direction)
        page = ordered[query.offset:query.offset + query.limit]
        return [self._to_row(log) for log in page], len(matches)

    def _matches(self, log: ReadingLog, query: ReadingLogQuery) -> bool:
        visible = (
            log.owner_id == query.viewer_id
            or log.visibility == "public"
            or (log.visibility == "friends" and log.owner_id in query.friend_ids)
        )
        if not visible:
            return False
        if query.owner_ids is not None and log.owner_id not in query.owner_ids:
            return False
        if log.owner_id in query.excluded_owner_ids:
            return False
        if query.statuses and log.status not in query.statuses:
            return False
        if not _within(log.start_date, query.start_date_from, query.start_date_to):
            return False
        if not _within(log.end_date, query.end_date_from, query.end_date_to):
            return False
        if query.search:
            book = self.tables.books[log.book_id]
            needle = query.search.casefold()
            if needle not in book.title.casefold() and needle not in book.author.casefold():
                return False
        return True

    def _to_row(self, log: ReadingLog) -> ReadingLogRow:
        profile = self.tables.profiles.get(log.owner_id)
        return ReadingLogRow(
            reading_log=replace(log),
            book=replace(self.tables.books[log.book_id]),
            profile=replace(profile) if profile else None,
        )


def _within(value, lower, upper) -> bool:
    if lower is None and upper is None:
        return True
    if value is None:
        return False
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


# ---------------------------------------------------------------------------
# Quote Repository
# ---------------------------------------------------------------------------
class MemoryQuoteRepository(IQuoteRepository):

    def __init__(self, tables: MemoryTables):
        self.tables = tables

    async def create(self, quote: Quote) -> Quote:
        if quote.reading_log_id not in self.tables.reading_logs:
            raise ConflictError("Quote references a missing reading log")
        self.tables.quotes[quote.id] = replace(quote)
        return replace(quote)

    async def get_by_id(self, quote_id: UUID, for_update: bool = False) -> Optional[Quote]:
        quote = self.tables.quotes.get(quote_id)
        return replace(quote) if quote else None

    async def update(self, quote: Quote) -> Quote:
        self.tables.quotes[quote.id] = replace(quote)
        return replace(quote)

    async def delete(self, quote_id: UUID) -> bool:
        return self.tables.quotes.pop(quote_id, None) is not None

    async def list_by_reading_logs(self, reading_log_ids: list[UUID]) -> list[Quote]:
        wanted = set(reading_log_ids)
        quotes = [q for q in self.tables.quotes.values() if q.reading_log_id in wanted]
        quotes.sort(key=lambda q: (q.page_number, q.created_at, str(q.id)))
        return [replace(q) for q in quotes]

    async def delete_by_reading_log(self, reading_log_id: UUID) -> int:
        doomed = [q.id for q in self.tables.quotes.values() if q.reading_log_id == reading_log_id]
        for quote_id in doomed:
            del self.tables.quotes[quote_id]
        return len(doomed)


# ---------------------------------------------------------------------------
# Review Repository
# ---------------------------------------------------------------------------
class MemoryReviewRepository(IReviewRepository):

    def __init__(self, tables: MemoryTables):
        self.tables = tables

    async def create(self, review: Review) -> Review:
        if review.reading_log_id not in self.tables.reading_logs:
            raise ConflictError("Review references a missing reading log")
        self.tables.reviews[review.id] = replace(review)
        return replace(review)

    async def get_by_id(self, review_id: UUID, for_update: bool = False) -> Optional[Review]:
        review = self.tables.reviews.get(review_id)
        return replace(review) if review else None

    async def update(self, review: Review) -> Review:
        stored = replace(review, updated_at=utcnow())
        self.tables.reviews[review.id] = stored
        return replace(stored)

    async def delete(self, review_id: UUID) -> bool:
        return self.tables.reviews.pop(review_id, None) is not None

    async def list_by_reading_logs(self, reading_log_ids: list[UUID]) -> list[Review]:
        wanted = set(reading_log_ids)
        reviews = [r for r in self.tables.reviews.values() if r.reading_log_id in wanted]
        return [replace(r) for r in _nulls_last(reviews, "created_at", "desc")]

    async def delete_by_reading_log(self, reading_log_id: UUID) -> int:
        doomed = [r.id for r in self.tables.reviews.values() if r.reading_log_id == reading_log_id]
        for review_id in doomed:
            del self.tables.reviews[review_id]
        return len(doomed)


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------
class InMemoryUnitOfWork(IUnitOfWork):
    """Serializes transactions with one lock; a failed block restores a snapshot."""

    def __init__(self, tables: Optional[MemoryTables] = None):
        self.tables = tables or MemoryTables()
        self._lock = asyncio.Lock()
        self.profiles = MemoryProfileRepository(self.tables)
        self.friendships = MemoryFriendshipRepository(self.tables)
        self.books = MemoryBookRepository(self.tables)
        self.reading_logs = MemoryReadingLogRepository(self.tables)
        self.quotes = MemoryQuoteRepository(self.tables)
        self.reviews = MemoryReviewRepository(self.tables)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryUnitOfWork"]:
        async with self._lock:
            snapshot = copy.deepcopy(self.tables)
            try:
                yield self
            except BaseException:
                self.tables.restore(snapshot)
                logger.debug("In-memory transaction rolled back")
                raise

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator["InMemoryUnitOfWork"]:
        # Writers hold the same lock for their whole block.
        async with self._lock:
            yield self
