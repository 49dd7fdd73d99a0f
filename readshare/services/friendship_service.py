"""Friendship graph service.

One row per unordered user pair. Transitions::

    none -> pending -> accepted | none (reject / cancel)
    accepted -> none (unfriend)
    any -> blocked -> none (unblock, by the blocker only)
"""

import logging
from dataclasses import replace
from typing import Optional
from uuid import UUID, uuid4

from readshare.domain.commands import sanitize_pagination
from readshare.domain.entities import FriendEntry, Friendship, FriendshipOutcome, Page
from readshare.domain.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from readshare.domain.repositories import FriendshipRole, IUnitOfWork
from readshare.domain.services import IFriendshipService

logger = logging.getLogger(__name__)


class FriendshipService(IFriendshipService):

    def __init__(self, uow: IUnitOfWork, default_limit: int = 20, max_limit: int = 100):
        self.uow = uow
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def request_friendship(self, actor_id: UUID, target_id: UUID) -> FriendshipOutcome:
        if actor_id == target_id:
            raise ValidationError("Cannot send a friend request to yourself")

        async with self.uow.transaction():
            target = await self.uow.profiles.get_by_id(target_id)
            if target is None:
                raise NotFoundError("User not found")

            existing = await self.uow.friendships.get_between(actor_id, target_id, for_update=True)
            if existing is not None:
                if existing.status == "blocked":
                    raise AuthorizationError("Cannot send a friend request to this user")
                if existing.status == "accepted":
                    raise ConflictError("Already friends")
                if existing.status == "pending" and existing.requester_id == actor_id:
                    return FriendshipOutcome(friendship=existing, counterpart=target)
                if existing.status == "pending":
                    # The target already asked us: accept their row instead of adding one.
                    existing.status = "accepted"
                    accepted = await self.uow.friendships.update(existing)
                    logger.info(
                        "Friend request %s auto-accepted: %s <-> %s",
                        accepted.id, actor_id, target_id,
                    )
                    return FriendshipOutcome(
                        friendship=accepted, auto_accepted=True, counterpart=target
                    )
                # Legacy rejected row: replaced by a fresh request.
                await self.uow.friendships.delete(existing.id)

            created = await self.uow.friendships.create(
                Friendship(id=uuid4(), requester_id=actor_id, addressee_id=target_id)
            )

        logger.info("Friend request %s sent: %s -> %s", created.id, actor_id, target_id)
        return FriendshipOutcome(friendship=created, created=True, counterpart=target)

    async def accept_request(self, actor_id: UUID, friendship_id: UUID) -> FriendshipOutcome:
        async with self.uow.transaction():
            friendship = await self._pending_for(actor_id, friendship_id)
            if friendship.addressee_id != actor_id:
                raise AuthorizationError("Only the recipient can accept this request")
            friendship.status = "accepted"
            accepted = await self.uow.friendships.update(friendship)
            counterpart = await self.uow.profiles.get_by_id(accepted.requester_id)

        logger.info("Friend request %s accepted by %s", friendship_id, actor_id)
        return FriendshipOutcome(friendship=accepted, counterpart=counterpart)

    async def reject_request(self, actor_id: UUID, friendship_id: UUID) -> Friendship:
        async with self.uow.transaction():
            friendship = await self._pending_for(actor_id, friendship_id)
            if friendship.addressee_id != actor_id:
                raise AuthorizationError("Only the recipient can reject this request")
            await self.uow.friendships.delete(friendship.id)

        logger.info("Friend request %s rejected by %s", friendship_id, actor_id)
        return replace(friendship, status="rejected")

    async def cancel_request(self, actor_id: UUID, friendship_id: UUID) -> Friendship:
        async with self.uow.transaction():
            friendship = await self._pending_for(actor_id, friendship_id)
            if friendship.requester_id != actor_id:
                raise AuthorizationError("Only the sender can cancel this request")
            await self.uow.friendships.delete(friendship.id)

        logger.info("Friend request %s cancelled by %s", friendship_id, actor_id)
        return friendship

    async def delete_friendship(self, actor_id: UUID, friendship_id: UUID) -> Friendship:
        async with self.uow.transaction():
            friendship = await self.uow.friendships.get_by_id(friendship_id, for_update=True)
            if friendship is None or not friendship.involves(actor_id):
                raise NotFoundError("Friendship not found")
            if friendship.status == "blocked":
                raise ValidationError("Use unblock to remove a block")
            if friendship.status != "accepted":
                raise NotFoundError("Friendship not found")
            await self.uow.friendships.delete(friendship.id)

        logger.info("Friendship %s removed by %s", friendship_id, actor_id)
        return friendship

    async def block(self, actor_id: UUID, target_id: UUID) -> Friendship:
        if actor_id == target_id:
            raise ValidationError("Cannot block yourself")

        async with self.uow.transaction():
            existing = await self.uow.friendships.get_between(actor_id, target_id, for_update=True)
            if existing is not None and existing.status == "blocked":
                # Either already blocked by the actor, or the target's block stands.
                return existing
            if existing is not None:
                existing.requester_id = actor_id
                existing.addressee_id = target_id
                existing.status = "blocked"
                blocked = await self.uow.friendships.update(existing)
            else:
                blocked = await self.uow.friendships.create(
                    Friendship(
                        id=uuid4(),
                        requester_id=actor_id,
                        addressee_id=target_id,
                        status="blocked",
                    )
                )

        logger.info("User %s blocked %s", actor_id, target_id)
        return blocked

    async def unblock(self, actor_id: UUID, target_id: UUID) -> Friendship:
        async with self.uow.transaction():
            existing = await self.uow.friendships.get_between(actor_id, target_id, for_update=True)
            if existing is None or existing.status != "blocked" or existing.requester_id != actor_id:
                raise NotFoundError("Block not found")
            await self.uow.friendships.delete(existing.id)

        logger.info("User %s unblocked %s", actor_id, target_id)
        return existing

    async def list_friends(
        self, actor_id: UUID, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> Page[FriendEntry]:
        return await self._list(actor_id, "accepted", "any", limit, offset)

    async def list_received_requests(
        self, actor_id: UUID, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> Page[FriendEntry]:
        return await self._list(actor_id, "pending", "addressee", limit, offset)

    async def list_sent_requests(
        self, actor_id: UUID, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> Page[FriendEntry]:
        return await self._list(actor_id, "pending", "requester", limit, offset)

    async def friend_ids_of(self, user_id: UUID) -> frozenset[UUID]:
        return frozenset(await self.uow.friendships.counterpart_ids(user_id, "accepted"))

    async def blocked_ids_of(self, user_id: UUID) -> frozenset[UUID]:
        """Users on either side of a block with ``user_id``."""
        return frozenset(await self.uow.friendships.counterpart_ids(user_id, "blocked"))

    # ── helpers ──────────────────────────────────────────────────────────────

    async def _pending_for(self, actor_id: UUID, friendship_id: UUID) -> Friendship:
        friendship = await self.uow.friendships.get_by_id(friendship_id, for_update=True)
        if friendship is None or not friendship.involves(actor_id) or friendship.status != "pending":
            raise NotFoundError("Friend request not found")
        return friendship

    async def _list(
        self,
        actor_id: UUID,
        status: str,
        role: FriendshipRole,
        limit: Optional[int],
        offset: Optional[int],
    ) -> Page[FriendEntry]:
        limit, offset = sanitize_pagination(limit, offset, self.default_limit, self.max_limit)
        async with self.uow.snapshot():
            rows, total = await self.uow.friendships.list_for_user(actor_id, status, role, offset, limit)
            counterpart_ids = [row.counterpart_of(actor_id) for row in rows]
            profiles = await self.uow.profiles.get_many(counterpart_ids)
        items = [
            FriendEntry(friendship=row, counterpart_id=cid, profile=profiles.get(cid))
            for row, cid in zip(rows, counterpart_ids)
        ]
        return Page(items=items, total=total, offset=offset, limit=limit)
