"""Domain-level application service interfaces (ports).

These abstract classes define the contracts that the API layer depends on.
Concrete implementations live in ``readshare/services/`` and are wired
together by the composition root in ``readshare/core/dependencies.py``.

Route handlers import from ``readshare.domain`` only, so every service can be
replaced with a test double via FastAPI's ``app.dependency_overrides``.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from readshare.domain.commands import (
    ProfileUpdate,
    QuickCreateCommand,
    QuoteCreate,
    QuoteUpdate,
    RecordListQuery,
    ReviewCreate,
    ReviewUpdate,
    UpsertCommand,
)
from readshare.domain.entities import (
    Book,
    DeleteResult,
    FriendEntry,
    Friendship,
    FriendshipOutcome,
    Page,
    Profile,
    Quote,
    ReadingLog,
    ReadingRecord,
    Review,
    UpsertResult,
)


class IFriendshipService(ABC):

    @abstractmethod
    async def request_friendship(self, actor_id: UUID, target_id: UUID) -> FriendshipOutcome:
        """Send a request, or auto-accept the target's pending request."""
        pass

    @abstractmethod
    async def accept_request(self, actor_id: UUID, friendship_id: UUID) -> FriendshipOutcome:
        pass

    @abstractmethod
    async def reject_request(self, actor_id: UUID, friendship_id: UUID) -> Friendship:
        pass

    @abstractmethod
    async def cancel_request(self, actor_id: UUID, friendship_id: UUID) -> Friendship:
        pass

    @abstractmethod
    async def delete_friendship(self, actor_id: UUID, friendship_id: UUID) -> Friendship:
        pass

    @abstractmethod
    async def block(self, actor_id: UUID, target_id: UUID) -> Friendship:
        pass

    @abstractmethod
    async def unblock(self, actor_id: UUID, target_id: UUID) -> Friendship:
        pass

    @abstractmethod
    async def list_friends(
        self, actor_id: UUID, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> Page[FriendEntry]:
        pass

    @abstractmethod
    async def list_received_requests(
        self, actor_id: UUID, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> Page[FriendEntry]:
        pass

    @abstractmethod
    async def list_sent_requests(
        self, actor_id: UUID, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> Page[FriendEntry]:
        pass

    @abstractmethod
    async def friend_ids_of(self, user_id: UUID) -> frozenset[UUID]:
        pass

    @abstractmethod
    async def blocked_ids_of(self, user_id: UUID) -> frozenset[UUID]:
        pass


class IReadingRecordService(ABC):

    @abstractmethod
    async def list_records(self, viewer_id: UUID, query: RecordListQuery) -> Page[ReadingRecord]:
        pass

    @abstractmethod
    async def get_record(self, viewer_id: UUID, reading_log_id: UUID) -> ReadingRecord:
        """Raise ``NotFoundError`` when absent *or* invisible to the viewer."""
        pass


class IRecordWriteService(ABC):

    @abstractmethod
    async def create_record(
        self, actor_id: UUID, command: QuickCreateCommand
    ) -> tuple[Book, ReadingLog]:
        pass

    @abstractmethod
    async def upsert(self, actor_id: UUID, command: UpsertCommand) -> UpsertResult:
        pass

    @abstractmethod
    async def delete(self, actor_id: UUID, reading_log_id: UUID) -> DeleteResult:
        pass


class IQuoteService(ABC):

    @abstractmethod
    async def create_quote(self, actor_id: UUID, command: QuoteCreate) -> Quote:
        pass

    @abstractmethod
    async def update_quote(self, actor_id: UUID, quote_id: UUID, command: QuoteUpdate) -> Quote:
        pass

    @abstractmethod
    async def delete_quote(self, actor_id: UUID, quote_id: UUID) -> None:
        pass


class IReviewService(ABC):

    @abstractmethod
    async def list_reviews(self, actor_id: UUID, reading_log_id: UUID) -> list[Review]:
        pass

    @abstractmethod
    async def get_review(self, actor_id: UUID, review_id: UUID) -> Review:
        pass

    @abstractmethod
    async def create_review(self, actor_id: UUID, command: ReviewCreate) -> Review:
        pass

    @abstractmethod
    async def update_review(
        self, actor_id: UUID, review_id: UUID, command: ReviewUpdate
    ) -> Review:
        pass

    @abstractmethod
    async def delete_review(self, actor_id: UUID, review_id: UUID) -> None:
        pass


class IProfileService(ABC):

    @abstractmethod
    async def get_own(self, actor_id: UUID) -> Profile:
        pass

    @abstractmethod
    async def get_public(self, viewer_id: UUID, user_id: UUID) -> Profile:
        pass

    @abstractmethod
    async def search(
        self,
        viewer_id: UUID,
        term: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Page[Profile]:
        pass

    @abstractmethod
    async def update(self, actor_id: UUID, command: ProfileUpdate) -> Profile:
        pass
