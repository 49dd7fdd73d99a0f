"""
Service tests for the friendship state machine.
"""

from uuid import uuid4

import pytest

from readshare.domain.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


class TestRequest:

    @pytest.mark.services
    async def test_request_creates_pending_row(self, friendships, users):
        outcome = await friendships.request_friendship(users.alice, users.bob)

        assert outcome.created is True
        assert outcome.auto_accepted is False
        assert outcome.friendship.status == "pending"
        assert outcome.friendship.requester_id == users.alice
        assert outcome.friendship.addressee_id == users.bob
        assert outcome.counterpart.nickname == "bob"

    @pytest.mark.services
    async def test_request_to_self_rejected(self, friendships, users):
        with pytest.raises(ValidationError):
            await friendships.request_friendship(users.alice, users.alice)

    @pytest.mark.services
    async def test_request_to_unknown_user(self, friendships, users):
        with pytest.raises(NotFoundError):
            await friendships.request_friendship(users.alice, uuid4())

    @pytest.mark.services
    async def test_repeat_request_is_idempotent(self, friendships, users, uow):
        first = await friendships.request_friendship(users.alice, users.bob)
        second = await friendships.request_friendship(users.alice, users.bob)

        assert second.created is False
        assert second.friendship.id == first.friendship.id
        assert len(uow.tables.friendships) == 1

    @pytest.mark.services
    async def test_mutual_request_auto_accepts_single_row(self, friendships, users, uow):
        """A request against a pending request from the target accepts that row."""
        pending = await friendships.request_friendship(users.bob, users.alice)
        outcome = await friendships.request_friendship(users.alice, users.bob)

        assert outcome.auto_accepted is True
        assert outcome.friendship.id == pending.friendship.id
        assert outcome.friendship.status == "accepted"
        assert len(uow.tables.friendships) == 1

    @pytest.mark.services
    async def test_request_when_already_friends(self, friendships, users, befriend):
        await befriend(users.alice, users.bob)
        with pytest.raises(ConflictError):
            await friendships.request_friendship(users.bob, users.alice)

    @pytest.mark.services
    async def test_request_blocked_pair_forbidden(self, friendships, users):
        await friendships.block(users.bob, users.alice)
        with pytest.raises(AuthorizationError):
            await friendships.request_friendship(users.alice, users.bob)
        with pytest.raises(AuthorizationError):
            await friendships.request_friendship(users.bob, users.alice)

    @pytest.mark.services
    async def test_request_replaces_legacy_rejected_row(self, friendships, users, uow):
        outcome = await friendships.request_friendship(users.alice, users.bob)
        stale = uow.tables.friendships[outcome.friendship.id]
        stale.status = "rejected"

        fresh = await friendships.request_friendship(users.bob, users.alice)

        assert fresh.created is True
        assert fresh.friendship.requester_id == users.bob
        assert list(uow.tables.friendships) == [fresh.friendship.id]


class TestAcceptRejectCancel:

    @pytest.mark.services
    async def test_accept_makes_friendship_symmetric(self, friendships, users):
        outcome = await friendships.request_friendship(users.alice, users.bob)
        accepted = await friendships.accept_request(users.bob, outcome.friendship.id)

        assert accepted.friendship.status == "accepted"
        assert users.bob in await friendships.friend_ids_of(users.alice)
        assert users.alice in await friendships.friend_ids_of(users.bob)

    @pytest.mark.services
    async def test_only_addressee_may_accept(self, friendships, users):
        outcome = await friendships.request_friendship(users.alice, users.bob)
        with pytest.raises(AuthorizationError):
            await friendships.accept_request(users.alice, outcome.friendship.id)

    @pytest.mark.services
    async def test_outsider_cannot_see_request(self, friendships, users):
        outcome = await friendships.request_friendship(users.alice, users.bob)
        with pytest.raises(NotFoundError):
            await friendships.accept_request(users.carol, outcome.friendship.id)

    @pytest.mark.services
    async def test_accept_non_pending_not_found(self, friendships, users, befriend):
        friendship_id = await befriend(users.alice, users.bob)
        with pytest.raises(NotFoundError):
            await friendships.accept_request(users.bob, friendship_id)

    @pytest.mark.services
    async def test_reject_removes_row(self, friendships, users, uow):
        outcome = await friendships.request_friendship(users.alice, users.bob)
        rejected = await friendships.reject_request(users.bob, outcome.friendship.id)

        assert rejected.status == "rejected"
        assert uow.tables.friendships == {}

    @pytest.mark.services
    async def test_sender_cannot_reject(self, friendships, users):
        outcome = await friendships.request_friendship(users.alice, users.bob)
        with pytest.raises(AuthorizationError):
            await friendships.reject_request(users.alice, outcome.friendship.id)

    @pytest.mark.services
    async def test_cancel_by_sender_removes_row(self, friendships, users, uow):
        outcome = await friendships.request_friendship(users.alice, users.bob)
        await friendships.cancel_request(users.alice, outcome.friendship.id)
        assert uow.tables.friendships == {}

    @pytest.mark.services
    async def test_receiver_cannot_cancel(self, friendships, users):
        outcome = await friendships.request_friendship(users.alice, users.bob)
        with pytest.raises(AuthorizationError):
            await friendships.cancel_request(users.bob, outcome.friendship.id)


class TestDelete:

    @pytest.mark.services
    async def test_either_side_can_unfriend(self, friendships, users, befriend):
        friendship_id = await befriend(users.alice, users.bob)
        await friendships.delete_friendship(users.bob, friendship_id)

        assert await friendships.friend_ids_of(users.alice) == frozenset()
        assert await friendships.friend_ids_of(users.bob) == frozenset()

    @pytest.mark.services
    async def test_outsider_cannot_unfriend(self, friendships, users, befriend):
        friendship_id = await befriend(users.alice, users.bob)
        with pytest.raises(NotFoundError):
            await friendships.delete_friendship(users.carol, friendship_id)

    @pytest.mark.services
    async def test_delete_blocked_row_points_to_unblock(self, friendships, users):
        blocked = await friendships.block(users.alice, users.bob)
        with pytest.raises(ValidationError):
            await friendships.delete_friendship(users.alice, blocked.id)

    @pytest.mark.services
    async def test_delete_pending_row_not_found(self, friendships, users):
        outcome = await friendships.request_friendship(users.alice, users.bob)
        with pytest.raises(NotFoundError):
            await friendships.delete_friendship(users.alice, outcome.friendship.id)


class TestBlock:

    @pytest.mark.services
    async def test_block_overwrites_friendship(self, friendships, users, befriend, uow):
        await befriend(users.alice, users.bob)
        blocked = await friendships.block(users.bob, users.alice)

        assert blocked.status == "blocked"
        assert blocked.requester_id == users.bob
        assert len(uow.tables.friendships) == 1
        assert await friendships.friend_ids_of(users.alice) == frozenset()
        assert users.bob in await friendships.blocked_ids_of(users.alice)
        assert users.alice in await friendships.blocked_ids_of(users.bob)

    @pytest.mark.services
    async def test_block_is_idempotent(self, friendships, users, uow):
        first = await friendships.block(users.alice, users.bob)
        second = await friendships.block(users.alice, users.bob)
        assert first.id == second.id
        assert len(uow.tables.friendships) == 1

    @pytest.mark.services
    async def test_cannot_take_over_someone_elses_block(self, friendships, users):
        """Blocking back does not hand the block to the second user."""
        original = await friendships.block(users.alice, users.bob)
        result = await friendships.block(users.bob, users.alice)

        assert result.requester_id == users.alice
        with pytest.raises(NotFoundError):
            await friendships.unblock(users.bob, users.alice)
        await friendships.unblock(users.alice, users.bob)
        assert original.id == result.id

    @pytest.mark.services
    async def test_unblock_removes_row_entirely(self, friendships, users, befriend, uow):
        await befriend(users.alice, users.bob)
        await friendships.block(users.alice, users.bob)
        await friendships.unblock(users.alice, users.bob)

        assert uow.tables.friendships == {}
        assert await friendships.friend_ids_of(users.alice) == frozenset()

    @pytest.mark.services
    async def test_unblock_without_block(self, friendships, users):
        with pytest.raises(NotFoundError):
            await friendships.unblock(users.alice, users.bob)


class TestListing:

    @pytest.mark.services
    async def test_friend_lists_carry_counterpart_profile(self, friendships, users, befriend):
        await befriend(users.alice, users.bob)
        await befriend(users.carol, users.alice)

        page = await friendships.list_friends(users.alice)

        assert page.total == 2
        assert page.count == 2
        assert {entry.profile.nickname for entry in page.items} == {"bob", "carol"}

    @pytest.mark.services
    async def test_received_and_sent(self, friendships, users):
        await friendships.request_friendship(users.bob, users.alice)
        await friendships.request_friendship(users.alice, users.carol)

        received = await friendships.list_received_requests(users.alice)
        sent = await friendships.list_sent_requests(users.alice)

        assert [e.counterpart_id for e in received.items] == [users.bob]
        assert [e.counterpart_id for e in sent.items] == [users.carol]

    @pytest.mark.services
    async def test_pagination_is_sanitized(self, friendships, users, befriend):
        await befriend(users.alice, users.bob)
        await befriend(users.alice, users.carol)

        page = await friendships.list_friends(users.alice, limit=1, offset=-10)
        assert page.limit == 1
        assert page.offset == 0
        assert page.count == 1
        assert page.total == 2

        rest = await friendships.list_friends(users.alice, limit=1, offset=1)
        assert rest.items[0].counterpart_id != page.items[0].counterpart_id
