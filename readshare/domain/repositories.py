"""Repository interfaces (ports) for dependency inversion."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import AsyncContextManager, Literal, Optional
from uuid import UUID

from readshare.domain.entities import Book, Friendship, Profile, Quote, ReadingLog, Review

FriendshipRole = Literal["any", "requester", "addressee"]


@dataclass
class ReadingLogRow:
    """A reading log joined with its book and its owner's profile."""

    reading_log: ReadingLog
    book: Book
    profile: Optional[Profile] = None


@dataclass
class ReadingLogQuery:
    """Store-level description of a reading record listing.

    ``owner_ids`` of ``None`` means unrestricted. Rows are additionally
    limited to what ``viewer_id`` may see: own rows, ``public`` rows, and
    ``friends`` rows owned by someone in ``friend_ids``.
    """

    viewer_id: UUID
    friend_ids: frozenset[UUID] = frozenset()
    owner_ids: Optional[frozenset[UUID]] = None
    excluded_owner_ids: frozenset[UUID] = frozenset()
    statuses: list[str] = field(default_factory=list)
    start_date_from: Optional[date] = None
    start_date_to: Optional[date] = None
    end_date_from: Optional[date] = None
    end_date_to: Optional[date] = None
    search: Optional[str] = None
    sort_field: str = "updated_at"
    sort_direction: str = "desc"
    offset: int = 0
    limit: int = 50


class IProfileRepository(ABC):

    @abstractmethod
    async def create(self, profile: Profile) -> Profile:
        pass

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[Profile]:
        pass

    @abstractmethod
    async def get_by_nickname(self, nickname: str) -> Optional[Profile]:
        pass

    @abstractmethod
    async def get_many(self, user_ids: list[UUID]) -> dict[UUID, Profile]:
        pass

    @abstractmethod
    async def update(self, profile: Profile) -> Profile:
        pass

    @abstractmethod
    async def search_by_nickname(
        self, term: str, exclude_ids: frozenset[UUID], offset: int, limit: int
    ) -> tuple[list[Profile], int]:
        """Case-insensitive substring match on nickname, ordered by nickname."""
        pass


class IFriendshipRepository(ABC):

    @abstractmethod
    async def create(self, friendship: Friendship) -> Friendship:
        pass

    @abstractmethod
    async def get_by_id(self, friendship_id: UUID, for_update: bool = False) -> Optional[Friendship]:
        pass

    @abstractmethod
    async def get_between(
        self, user_a: UUID, user_b: UUID, for_update: bool = False
    ) -> Optional[Friendship]:
        """Return the single row for the unordered pair, if any."""
        pass

    @abstractmethod
    async def update(self, friendship: Friendship) -> Friendship:
        pass

    @abstractmethod
    async def delete(self, friendship_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_for_user(
        self,
        user_id: UUID,
        status: str,
        role: FriendshipRole,
        offset: int,
        limit: int,
    ) -> tuple[list[Friendship], int]:
        """Rows with ``status`` where ``user_id`` plays ``role``, newest first."""
        pass

    @abstractmethod
    async def counterpart_ids(self, user_id: UUID, status: str) -> set[UUID]:
        """Ids on the other side of every ``status`` row involving ``user_id``."""
        pass


class IBookRepository(ABC):

    @abstractmethod
    async def create(self, book: Book) -> Book:
        pass

    @abstractmethod
    async def get_by_id(self, book_id: UUID, for_update: bool = False) -> Optional[Book]:
        pass

    @abstractmethod
    async def update(self, book: Book) -> Book:
        pass

    @abstractmethod
    async def delete(self, book_id: UUID) -> bool:
        pass


class IReadingLogRepository(ABC):

    @abstractmethod
    async def create(self, reading_log: ReadingLog) -> ReadingLog:
        pass

    @abstractmethod
    async def get_by_id(self, reading_log_id: UUID, for_update: bool = False) -> Optional[ReadingLog]:
        pass

    @abstractmethod
    async def update(self, reading_log: ReadingLog) -> ReadingLog:
        pass

    @abstractmethod
    async def delete(self, reading_log_id: UUID) -> bool:
        pass

    @abstractmethod
    async def count_by_book(self, book_id: UUID) -> int:
        pass

    @abstractmethod
    async def get_row(self, reading_log_id: UUID) -> Optional[ReadingLogRow]:
        pass

    @abstractmethod
    async def list_rows(self, query: ReadingLogQuery) -> tuple[list[ReadingLogRow], int]:
        """Filtered, sorted page of rows plus the total matching count."""
        pass


class IQuoteRepository(ABC):

    @abstractmethod
    async def create(self, quote: Quote) -> Quote:
        pass

    @abstractmethod
    async def get_by_id(self, quote_id: UUID, for_update: bool = False) -> Optional[Quote]:
        pass

    @abstractmethod
    async def update(self, quote: Quote) -> Quote:
        pass

    @abstractmethod
    async def delete(self, quote_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_by_reading_logs(self, reading_log_ids: list[UUID]) -> list[Quote]:
        """Quotes of the given logs ordered by page number."""
        pass

    @abstractmethod
    async def delete_by_reading_log(self, reading_log_id: UUID) -> int:
        pass


class IReviewRepository(ABC):

    @abstractmethod
    async def create(self, review: Review) -> Review:
        pass

    @abstractmethod
    async def get_by_id(self, review_id: UUID, for_update: bool = False) -> Optional[Review]:
        pass

    @abstractmethod
    async def update(self, review: Review) -> Review:
        pass

    @abstractmethod
    async def delete(self, review_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_by_reading_logs(self, reading_log_ids: list[UUID]) -> list[Review]:
        """Reviews of the given logs, newest first."""
        pass

    @abstractmethod
    async def delete_by_reading_log(self, reading_log_id: UUID) -> int:
        pass


class IUnitOfWork(ABC):
    """Groups the repositories over one store session.

    ``transaction()`` commits when its block exits normally and rolls back
    every change made inside it when the block raises. ``snapshot()`` is
    for reads: every query inside it sees the same committed state.
    """

    profiles: IProfileRepository
    friendships: IFriendshipRepository
    books: IBookRepository
    reading_logs: IReadingLogRepository
    quotes: IQuoteRepository
    reviews: IReviewRepository

    @abstractmethod
    def transaction(self) -> AsyncContextManager["IUnitOfWork"]:
        pass

    @abstractmethod
    def snapshot(self) -> AsyncContextManager["IUnitOfWork"]:
        pass
