"""Review service with business logic."""

import logging
from dataclasses import replace
from uuid import UUID, uuid4

from readshare.domain.commands import ReviewCreate, ReviewUpdate
from readshare.domain.entities import Review
from readshare.domain.repositories import IUnitOfWork
from readshare.domain.services import IReviewService
from readshare.services.ownership import require_owned_log, require_owned_review

logger = logging.getLogger(__name__)


class ReviewService(IReviewService):
    """Reviews attached to the actor's own reading logs."""

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    async def list_reviews(self, actor_id: UUID, reading_log_id: UUID) -> list[Review]:
        """Reviews of an owned reading log, newest first."""
        await require_owned_log(self.uow, actor_id, reading_log_id)
        return await self.uow.reviews.list_by_reading_logs([reading_log_id])

    async def get_review(self, actor_id: UUID, review_id: UUID) -> Review:
        return await require_owned_review(self.uow, actor_id, review_id)

    async def create_review(self, actor_id: UUID, command: ReviewCreate) -> Review:
        """Create a review. The parent reading log must belong to the actor."""
        async with self.uow.transaction():
            await require_owned_log(self.uow, actor_id, command.reading_log_id, for_update=True)
            review = await self.uow.reviews.create(
                Review(
                    id=uuid4(),
                    reading_log_id=command.reading_log_id,
                    owner_id=actor_id,
                    content=command.content,
                    page_number=command.page_number,
                    reviewed_at=command.reviewed_at,
                )
            )
        logger.info(f"Review created: {review.id} for reading log {command.reading_log_id}")
        return review

    async def update_review(
        self, actor_id: UUID, review_id: UUID, command: ReviewUpdate
    ) -> Review:
        async with self.uow.transaction():
            review = await require_owned_review(self.uow, actor_id, review_id, for_update=True)
            updated = await self.uow.reviews.update(replace(review, **command.changes()))
        logger.info(f"Review updated: {review_id} by {actor_id}")
        return updated

    async def delete_review(self, actor_id: UUID, review_id: UUID) -> None:
        async with self.uow.transaction():
            await require_owned_review(self.uow, actor_id, review_id, for_update=True)
            await self.uow.reviews.delete(review_id)
        logger.info(f"Review deleted: {review_id} by {actor_id}")
