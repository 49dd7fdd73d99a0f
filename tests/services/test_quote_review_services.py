"""
Service tests for standalone quote and review CRUD.
"""

from uuid import uuid4

import pytest

from readshare.domain.commands import QuoteCreate, QuoteUpdate, ReviewCreate, ReviewUpdate
from readshare.domain.errors import AuthorizationError, NotFoundError


class TestQuotes:

    @pytest.mark.services
    async def test_create_update_delete(self, quotes, users, make_record, uow):
        created = await make_record(users.alice)

        quote = await quotes.create_quote(
            users.alice,
            QuoteCreate(reading_log_id=created.reading_log_id, text="Walk without rhythm", page_number=5),
        )
        assert quote.owner_id == users.alice

        updated = await quotes.update_quote(users.alice, quote.id, QuoteUpdate(page_number=6))
        assert updated.page_number == 6
        assert updated.text == "Walk without rhythm"

        await quotes.delete_quote(users.alice, quote.id)
        assert uow.tables.quotes == {}

    @pytest.mark.services
    async def test_create_on_foreign_log_forbidden(self, quotes, users, make_record):
        created = await make_record(users.alice)
        with pytest.raises(AuthorizationError):
            await quotes.create_quote(
                users.bob,
                QuoteCreate(reading_log_id=created.reading_log_id, text="mine", page_number=1),
            )

    @pytest.mark.services
    async def test_create_on_missing_log(self, quotes, users):
        with pytest.raises(NotFoundError):
            await quotes.create_quote(
                users.alice, QuoteCreate(reading_log_id=uuid4(), text="x", page_number=1)
            )

    @pytest.mark.services
    async def test_update_foreign_quote_forbidden(self, quotes, users, make_record):
        created = await make_record(users.alice)
        quote = await quotes.create_quote(
            users.alice, QuoteCreate(reading_log_id=created.reading_log_id, text="x", page_number=1)
        )
        with pytest.raises(AuthorizationError):
            await quotes.update_quote(users.bob, quote.id, QuoteUpdate(text="hijacked"))
        with pytest.raises(AuthorizationError):
            await quotes.delete_quote(users.bob, quote.id)

    @pytest.mark.services
    async def test_update_missing_quote(self, quotes, users):
        with pytest.raises(NotFoundError):
            await quotes.update_quote(users.alice, uuid4(), QuoteUpdate(text="x"))


class TestReviews:

    @pytest.mark.services
    async def test_lifecycle(self, reviews, users, make_record):
        created = await make_record(users.alice)

        first = await reviews.create_review(
            users.alice, ReviewCreate(reading_log_id=created.reading_log_id, content="Slow start")
        )
        second = await reviews.create_review(
            users.alice, ReviewCreate(reading_log_id=created.reading_log_id, content="Great ending")
        )

        listed = await reviews.list_reviews(users.alice, created.reading_log_id)
        assert {r.id for r in listed} == {first.id, second.id}

        fetched = await reviews.get_review(users.alice, first.id)
        assert fetched.content == "Slow start"

        updated = await reviews.update_review(users.alice, first.id, ReviewUpdate(content="Picks up"))
        assert updated.content == "Picks up"

        await reviews.delete_review(users.alice, first.id)
        remaining = await reviews.list_reviews(users.alice, created.reading_log_id)
        assert [r.id for r in remaining] == [second.id]

    @pytest.mark.services
    async def test_other_users_cannot_read_or_write(self, reviews, users, make_record):
        created = await make_record(users.alice)
        review = await reviews.create_review(
            users.alice, ReviewCreate(reading_log_id=created.reading_log_id, content="Mine")
        )

        with pytest.raises(AuthorizationError):
            await reviews.list_reviews(users.bob, created.reading_log_id)
        with pytest.raises(AuthorizationError):
            await reviews.get_review(users.bob, review.id)
        with pytest.raises(AuthorizationError):
            await reviews.update_review(users.bob, review.id, ReviewUpdate(content="Ours"))
        with pytest.raises(AuthorizationError):
            await reviews.create_review(
                users.bob, ReviewCreate(reading_log_id=created.reading_log_id, content="Ours")
            )
