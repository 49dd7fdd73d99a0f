"""Domain entities for ReadShare."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Generic, Literal, Optional, TypeVar
from uuid import UUID

ReadingStatus = Literal["want_to_read", "reading", "finished", "abandoned"]
Visibility = Literal["public", "friends", "private"]
Scope = Literal["me", "friends", "all"]
SortField = Literal["updated_at", "start_date", "end_date", "created_at"]
SortDirection = Literal["asc", "desc"]

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def pair_key(user_a: UUID, user_b: UUID) -> str:
    """Order-independent key for a friendship pair."""
    low, high = sorted((str(user_a), str(user_b)))
    return f"{low}:{high}"


@dataclass
class Profile:
    id: UUID
    nickname: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Friendship:
    """One row per unordered user pair.

    ``requester_id``/``addressee_id`` keep the direction for audit; for a
    ``blocked`` row the requester is the blocker.
    """

    id: UUID
    requester_id: UUID
    addressee_id: UUID
    status: str = "pending"  # pending | accepted | rejected | blocked
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def pair_key(self) -> str:
        return pair_key(self.requester_id, self.addressee_id)

    def involves(self, user_id: UUID) -> bool:
        return user_id in (self.requester_id, self.addressee_id)

    def counterpart_of(self, user_id: UUID) -> UUID:
        return self.addressee_id if self.requester_id == user_id else self.requester_id


@dataclass
class Book:
    id: UUID
    title: str
    author: str
    owner_id: UUID
    cover_image_url: Optional[str] = None
    total_pages: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ReadingLog:
    id: UUID
    book_id: UUID
    owner_id: UUID
    status: str = "want_to_read"  # want_to_read | reading | finished | abandoned
    current_page: Optional[int] = None
    rating: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    visibility: str = "public"  # public | friends | private
    review: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Quote:
    id: UUID
    reading_log_id: UUID
    owner_id: UUID
    text: str
    page_number: int
    noted_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Review:
    id: UUID
    reading_log_id: UUID
    owner_id: UUID
    content: str
    page_number: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ReadingRecord:
    """Composite, read-only projection assembled per query. Never persisted."""

    book: Book
    reading_log: ReadingLog
    quotes: list[Quote] = field(default_factory=list)
    reviews: list[Review] = field(default_factory=list)
    profile: Optional[Profile] = None


@dataclass
class FriendEntry:
    """A friendship row seen from one participant, with the other side's profile."""

    friendship: Friendship
    counterpart_id: UUID
    profile: Optional[Profile] = None


@dataclass
class FriendshipOutcome:
    friendship: Friendship
    created: bool = False
    auto_accepted: bool = False
    counterpart: Optional[Profile] = None


@dataclass
class UpsertResult:
    book_id: Optional[UUID]
    reading_log_id: Optional[UUID]
    created: bool = False  # True only when both book and log were inserted


@dataclass
class DeleteResult:
    reading_log_id: UUID
    book_id: UUID
    book_deleted: bool = True
    deleted: bool = True


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    offset: int
    limit: int

    @property
    def count(self) -> int:
        return len(self.items)
