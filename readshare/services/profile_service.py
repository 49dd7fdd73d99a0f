"""Profile service: own profile, public lookup, nickname search and edits."""

import logging
from dataclasses import replace
from typing import Optional
from uuid import UUID

from readshare.domain.commands import PROFILE_SEARCH_MIN_LENGTH, ProfileUpdate, sanitize_pagination
from readshare.domain.entities import Page, Profile
from readshare.domain.errors import ConflictError, NotFoundError, ValidationError
from readshare.domain.repositories import IUnitOfWork
from readshare.domain.services import IFriendshipService, IProfileService

logger = logging.getLogger(__name__)


class ProfileService(IProfileService):

    def __init__(
        self,
        uow: IUnitOfWork,
        friendship_service: IFriendshipService,
        default_limit: int = 20,
        max_limit: int = 100,
    ):
        self.uow = uow
        self.friendship_service = friendship_service
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def get_own(self, actor_id: UUID) -> Profile:
        profile = await self.uow.profiles.get_by_id(actor_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    async def get_public(self, viewer_id: UUID, user_id: UUID) -> Profile:
        """Look up another user's profile; hidden when either side blocked the other."""
        if user_id in await self.friendship_service.blocked_ids_of(viewer_id):
            raise NotFoundError("Profile not found")
        profile = await self.uow.profiles.get_by_id(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    async def search(
        self,
        viewer_id: UUID,
        term: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Page[Profile]:
        term = (term or "").strip()
        if not term:
            raise ValidationError("Search term is required")
        if len(term) < PROFILE_SEARCH_MIN_LENGTH:
            raise ValidationError(
                f"Search term must be at least {PROFILE_SEARCH_MIN_LENGTH} characters"
            )

        limit, offset = sanitize_pagination(limit, offset, self.default_limit, self.max_limit)
        excluded = await self.friendship_service.blocked_ids_of(viewer_id) | {viewer_id}
        profiles, total = await self.uow.profiles.search_by_nickname(term, excluded, offset, limit)
        return Page(items=profiles, total=total, offset=offset, limit=limit)

    async def update(self, actor_id: UUID, command: ProfileUpdate) -> Profile:
        changes = command.changes()
        async with self.uow.transaction():
            profile = await self.uow.profiles.get_by_id(actor_id)
            if profile is None:
                raise NotFoundError("Profile not found")
            nickname = changes.get("nickname")
            if nickname is not None and nickname != profile.nickname:
                taken = await self.uow.profiles.get_by_nickname(nickname)
                if taken is not None and taken.id != actor_id:
                    raise ConflictError("nickname is already taken")
            updated = await self.uow.profiles.update(replace(profile, **changes))

        logger.info("Profile %s updated: %s", actor_id, ", ".join(sorted(changes)))
        return updated
