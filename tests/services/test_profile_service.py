"""
Service tests for profiles: lookup, block hiding, search and updates.
"""

from uuid import uuid4

import pytest

from readshare.domain.commands import ProfileUpdate
from readshare.domain.entities import Profile
from readshare.domain.errors import ConflictError, NotFoundError, ValidationError


class TestLookup:

    @pytest.mark.services
    async def test_get_own(self, profiles, users):
        profile = await profiles.get_own(users.alice)
        assert profile.nickname == "alice"

    @pytest.mark.services
    async def test_get_own_missing(self, profiles):
        with pytest.raises(NotFoundError):
            await profiles.get_own(uuid4())

    @pytest.mark.services
    async def test_public_profile_hidden_across_block(self, profiles, friendships, users):
        assert (await profiles.get_public(users.bob, users.alice)).nickname == "alice"

        await friendships.block(users.alice, users.bob)

        with pytest.raises(NotFoundError):
            await profiles.get_public(users.bob, users.alice)
        with pytest.raises(NotFoundError):
            await profiles.get_public(users.alice, users.bob)


class TestSearch:

    @pytest.mark.services
    async def test_case_insensitive_excludes_self(self, profiles, users, uow):
        async with uow.transaction():
            await uow.profiles.create(Profile(id=uuid4(), nickname="Alicia"))

        page = await profiles.search(users.alice, "ALI")

        assert [p.nickname for p in page.items] == ["Alicia"]
        assert page.total == 1

    @pytest.mark.services
    async def test_excludes_blocked_users(self, profiles, friendships, users):
        await friendships.block(users.carol, users.bob)
        page = await profiles.search(users.bob, "ca")
        assert page.items == []

    @pytest.mark.services
    async def test_results_ordered_by_nickname(self, profiles, users, uow):
        async with uow.transaction():
            for nickname in ("reader_c", "reader_a", "reader_b"):
                await uow.profiles.create(Profile(id=uuid4(), nickname=nickname))

        page = await profiles.search(users.alice, "  reader ", limit=2)

        assert [p.nickname for p in page.items] == ["reader_a", "reader_b"]
        assert page.total == 3

    @pytest.mark.services
    @pytest.mark.parametrize("term", ["", "   ", "a", " b "])
    async def test_short_or_blank_terms_rejected(self, profiles, users, term):
        with pytest.raises(ValidationError):
            await profiles.search(users.alice, term)


class TestUpdate:

    @pytest.mark.services
    async def test_update_fields(self, profiles, users):
        updated = await profiles.update(
            users.alice, ProfileUpdate(nickname="alice2", bio="Reads sci-fi")
        )
        assert updated.nickname == "alice2"
        assert updated.bio == "Reads sci-fi"
        assert (await profiles.get_own(users.alice)).nickname == "alice2"

    @pytest.mark.services
    async def test_taken_nickname_conflicts(self, profiles, users):
        with pytest.raises(ConflictError) as exc_info:
            await profiles.update(users.alice, ProfileUpdate(nickname="bob"))
        assert exc_info.value.message == "nickname is already taken"

    @pytest.mark.services
    async def test_keeping_own_nickname_is_fine(self, profiles, users):
        updated = await profiles.update(users.alice, ProfileUpdate(nickname="alice", bio="hi"))
        assert updated.nickname == "alice"
