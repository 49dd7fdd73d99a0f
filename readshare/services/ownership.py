"""Ownership checks shared by the write paths."""

from uuid import UUID

from readshare.domain.entities import Quote, ReadingLog, Review
from readshare.domain.errors import AuthorizationError, NotFoundError
from readshare.domain.repositories import IUnitOfWork


async def require_owned_log(
    uow: IUnitOfWork, actor_id: UUID, reading_log_id: UUID, for_update: bool = False
) -> ReadingLog:
    reading_log = await uow.reading_logs.get_by_id(reading_log_id, for_update=for_update)
    if reading_log is None:
        raise NotFoundError("Reading log not found")
    if reading_log.owner_id != actor_id:
        raise AuthorizationError("You do not own this reading log")
    return reading_log


async def require_owned_quote(
    uow: IUnitOfWork, actor_id: UUID, quote_id: UUID, for_update: bool = False
) -> Quote:
    """Load a quote whose parent log belongs to ``actor_id``."""
    quote = await uow.quotes.get_by_id(quote_id, for_update=for_update)
    if quote is None:
        raise NotFoundError("Quote not found")
    parent = await uow.reading_logs.get_by_id(quote.reading_log_id)
    if quote.owner_id != actor_id or parent is None or parent.owner_id != actor_id:
        raise AuthorizationError("You do not own this quote")
    return quote


async def require_owned_review(
    uow: IUnitOfWork, actor_id: UUID, review_id: UUID, for_update: bool = False
) -> Review:
    """Load a review whose parent log belongs to ``actor_id``."""
    review = await uow.reviews.get_by_id(review_id, for_update=for_update)
    if review is None:
        raise NotFoundError("Review not found")
    parent = await uow.reading_logs.get_by_id(review.reading_log_id)
    if review.owner_id != actor_id or parent is None or parent.owner_id != actor_id:
        raise AuthorizationError("You do not own this review")
    return review
