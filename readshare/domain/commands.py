"""Validated request commands.

Every mutating or querying operation takes one of these models. Field-level
validation happens once, when the command is built at the boundary; services
trust what they receive.
"""

from datetime import date, datetime
from typing import Any, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from readshare.domain.entities import ReadingStatus, Scope, SortDirection, SortField, Visibility
from readshare.domain.errors import ValidationError

NICKNAME_MIN_LENGTH = 2
NICKNAME_MAX_LENGTH = 20
PROFILE_SEARCH_MIN_LENGTH = 2
FORBIDDEN_PROFILE_FIELDS = ("id", "created_at", "updated_at")

C = TypeVar("C", bound=BaseModel)


def format_validation_error(exc: PydanticValidationError | Any) -> str:
    """Render the first pydantic error as a short, client-safe message."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    msg = first.get("msg", "Invalid value")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f"{loc}: {msg}" if loc else msg


def parse_command(model: type[C], data: Any) -> C:
    """Build ``model`` from raw data, raising the domain ``ValidationError``."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(format_validation_error(exc)) from exc


def sanitize_pagination(
    limit: Optional[int], offset: Optional[int], default_limit: int, max_limit: int
) -> tuple[int, int]:
    """Clamp ``limit`` into ``[1, max_limit]`` and ``offset`` to ``>= 0``."""
    sanitized_limit = default_limit if limit is None else min(max(int(limit), 1), max_limit)
    sanitized_offset = 0 if offset is None else max(int(offset), 0)
    return sanitized_limit, sanitized_offset


class _Command(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict[str, Any]:
        """Fields explicitly supplied by the caller, minus the identifier."""
        return self.model_dump(exclude_unset=True, exclude={"id"})


def _reject_nulls(model: BaseModel, *names: str) -> None:
    for name in names:
        if name in model.model_fields_set and getattr(model, name) is None:
            raise ValueError(f"{name} cannot be null")


# ---------------------------------------------------------------------------
# Reading record listing
# ---------------------------------------------------------------------------
class RecordFilters(_Command):
    status: Optional[list[ReadingStatus]] = None
    start_date_from: Optional[date] = None
    start_date_to: Optional[date] = None
    end_date_from: Optional[date] = None
    end_date_to: Optional[date] = None
    search: Optional[str] = None

    @field_validator("search")
    @classmethod
    def _search_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Search term cannot be empty")
        return value

    @model_validator(mode="after")
    def _ranges_ordered(self) -> "RecordFilters":
        if self.start_date_from and self.start_date_to and self.start_date_from > self.start_date_to:
            raise ValueError("start_date_from cannot be after start_date_to")
        if self.end_date_from and self.end_date_to and self.end_date_from > self.end_date_to:
            raise ValueError("end_date_from cannot be after end_date_to")
        return self


class RecordSort(_Command):
    field: SortField = "updated_at"
    direction: SortDirection = "desc"


class RecordListQuery(_Command):
    scope: Scope = "all"
    filters: RecordFilters = Field(default_factory=RecordFilters)
    sort: RecordSort = Field(default_factory=RecordSort)
    limit: Optional[int] = None
    offset: Optional[int] = None


# ---------------------------------------------------------------------------
# Composite upsert
# ---------------------------------------------------------------------------
class BookInput(_Command):
    id: Optional[UUID] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    author: Optional[str] = Field(None, min_length=1, max_length=255)
    cover_image_url: Optional[str] = None
    total_pages: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def _required_on_insert(self) -> "BookInput":
        _reject_nulls(self, "title", "author")
        if self.id is None and (not self.title or not self.author):
            raise ValueError("title and author are required to create a book")
        return self


class ReadingLogInput(_Command):
    id: Optional[UUID] = None
    status: Optional[ReadingStatus] = None
    # current_page is not clamped to the book's total_pages here.
    current_page: Optional[int] = Field(None, ge=0)
    rating: Optional[int] = Field(None, ge=1, le=5)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    visibility: Optional[Visibility] = None
    review: Optional[str] = None

    @model_validator(mode="after")
    def _no_null_enums(self) -> "ReadingLogInput":
        _reject_nulls(self, "status", "visibility")
        return self


class QuoteInput(_Command):
    id: Optional[UUID] = None
    text: Optional[str] = Field(None, min_length=1)
    page_number: Optional[int] = Field(None, ge=0)
    noted_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _required_on_insert(self) -> "QuoteInput":
        _reject_nulls(self, "text", "page_number")
        if self.id is None and (self.text is None or self.page_number is None):
            raise ValueError("text and page_number are required for a new quote")
        return self


class ReviewInput(_Command):
    id: Optional[UUID] = None
    content: Optional[str] = Field(None, min_length=1)
    page_number: Optional[int] = Field(None, ge=0)
    reviewed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _required_on_insert(self) -> "ReviewInput":
        _reject_nulls(self, "content")
        if self.id is None and self.content is None:
            raise ValueError("content is required for a new review")
        return self


class UpsertCommand(_Command):
    book: Optional[BookInput] = None
    reading_log: Optional[ReadingLogInput] = None
    quotes: list[QuoteInput] = Field(default_factory=list)
    reviews: list[ReviewInput] = Field(default_factory=list)
    delete_quote_ids: list[UUID] = Field(default_factory=list)
    delete_review_ids: list[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def _not_empty(self) -> "UpsertCommand":
        if not (
            self.book
            or self.reading_log
            or self.quotes
            or self.reviews
            or self.delete_quote_ids
            or self.delete_review_ids
        ):
            raise ValueError("Payload is empty")
        return self


class QuickCreateCommand(_Command):
    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    cover_image_url: Optional[str] = None
    total_pages: Optional[int] = Field(None, ge=0)


# ---------------------------------------------------------------------------
# Standalone quote / review CRUD
# ---------------------------------------------------------------------------
class QuoteCreate(_Command):
    reading_log_id: UUID
    text: str = Field(..., min_length=1)
    page_number: int = Field(..., ge=0)
    noted_at: Optional[datetime] = None


class QuoteUpdate(_Command):
    text: Optional[str] = Field(None, min_length=1)
    page_number: Optional[int] = Field(None, ge=0)
    noted_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _has_changes(self) -> "QuoteUpdate":
        _reject_nulls(self, "text", "page_number")
        if not self.model_fields_set:
            raise ValueError("No updatable fields provided")
        return self


class ReviewCreate(_Command):
    reading_log_id: UUID
    content: str = Field(..., min_length=1)
    page_number: Optional[int] = Field(None, ge=0)
    reviewed_at: Optional[datetime] = None


class ReviewUpdate(_Command):
    content: Optional[str] = Field(None, min_length=1)
    page_number: Optional[int] = Field(None, ge=0)
    reviewed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _has_changes(self) -> "ReviewUpdate":
        _reject_nulls(self, "content")
        if not self.model_fields_set:
            raise ValueError("No updatable fields provided")
        return self


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------
class ProfileUpdate(_Command):
    nickname: Optional[str] = Field(
        None, min_length=NICKNAME_MIN_LENGTH, max_length=NICKNAME_MAX_LENGTH
    )
    avatar_url: Optional[str] = None
    bio: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _forbidden_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for key in FORBIDDEN_PROFILE_FIELDS:
                if key in data:
                    raise ValueError(f"Cannot update field: {key}")
        return data

    @model_validator(mode="after")
    def _has_changes(self) -> "ProfileUpdate":
        _reject_nulls(self, "nickname")
        if not self.model_fields_set:
            raise ValueError("No updatable fields provided")
        return self
