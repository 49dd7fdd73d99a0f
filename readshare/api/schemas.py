"""Pydantic schemas for API requests and responses."""

from datetime import date, datetime
from typing import Annotated, Generic, Literal, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, RootModel

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------
class PageMeta(BaseModel):
    total: int
    count: int
    offset: int
    limit: int


class RecordPageMeta(PageMeta):
    scope: str


class DataResponse(BaseModel, Generic[T]):
    data: T


class ListResponse(BaseModel, Generic[T]):
    data: list[T]
    meta: PageMeta


class ErrorResponse(BaseModel):
    error: str


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------
class ProfileSummary(BaseModel):
    id: UUID
    nickname: str
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileResponse(ProfileSummary):
    bio: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Reading records
# ---------------------------------------------------------------------------
class BookResponse(BaseModel):
    id: UUID
    title: str
    author: str
    cover_image_url: Optional[str] = None
    total_pages: Optional[int] = None
    owner_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReadingLogResponse(BaseModel):
    id: UUID
    book_id: UUID
    owner_id: UUID
    status: str
    current_page: Optional[int] = None
    rating: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    visibility: str
    review: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuoteResponse(BaseModel):
    id: UUID
    reading_log_id: UUID
    text: str
    page_number: int
    noted_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewResponse(BaseModel):
    id: UUID
    reading_log_id: UUID
    owner_id: UUID
    content: str
    page_number: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReadingRecordResponse(BaseModel):
    book: BookResponse
    reading_log: ReadingLogResponse
    quotes: list[QuoteResponse] = Field(default_factory=list)
    reviews: list[ReviewResponse] = Field(default_factory=list)
    profile: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)


class ReadingRecordListResponse(BaseModel):
    data: list[ReadingRecordResponse]
    meta: RecordPageMeta


class QuickCreateResponse(BaseModel):
    book: BookResponse
    reading_log: ReadingLogResponse


class UpsertResponse(BaseModel):
    book_id: Optional[UUID] = None
    reading_log_id: Optional[UUID] = None


class DeleteRecordResponse(BaseModel):
    deleted: bool
    reading_log_id: UUID
    book_id: UUID
    book_deleted: bool


class DeletedResponse(BaseModel):
    deleted: bool = True
    id: UUID


# ---------------------------------------------------------------------------
# Friends
# ---------------------------------------------------------------------------
class _TargetAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    target_user_id: UUID


class _FriendshipAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    friendship_id: UUID


class _ListAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    limit: Optional[int] = None
    offset: Optional[int] = None


class RequestAction(_TargetAction):
    action: Literal["request"]


class BlockAction(_TargetAction):
    action: Literal["block"]


class UnblockAction(_TargetAction):
    action: Literal["unblock"]


class AcceptAction(_FriendshipAction):
    action: Literal["accept"]


class RejectAction(_FriendshipAction):
    action: Literal["reject"]


class CancelAction(_FriendshipAction):
    action: Literal["cancel"]


class DeleteAction(_FriendshipAction):
    action: Literal["delete"]


class ListFriendsAction(_ListAction):
    action: Literal["list"]


class ReceivedRequestsAction(_ListAction):
    action: Literal["received"]


class SentRequestsAction(_ListAction):
    action: Literal["sent"]


FriendAction = Annotated[
    Union[
        RequestAction,
        AcceptAction,
        RejectAction,
        CancelAction,
        DeleteAction,
        BlockAction,
        UnblockAction,
        ListFriendsAction,
        ReceivedRequestsAction,
        SentRequestsAction,
    ],
    Field(discriminator="action"),
]


class FriendActionRequest(RootModel[FriendAction]):
    """Body of ``POST /friends``, tagged by ``action``."""


class FriendshipResponse(BaseModel):
    id: UUID
    requester_id: UUID
    addressee_id: UUID
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FriendshipOutcomeResponse(FriendshipResponse):
    auto_accepted: bool = False
    message: Optional[str] = None
    friend: Optional[ProfileSummary] = None


class FriendEntryResponse(BaseModel):
    """One list item; ``since`` is set for friends, ``requested_at`` for requests."""

    friendship_id: UUID
    user: Optional[ProfileSummary] = None
    user_id: UUID
    since: Optional[datetime] = None
    requested_at: Optional[datetime] = None
