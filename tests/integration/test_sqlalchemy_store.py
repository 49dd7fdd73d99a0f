"""
Integration tests running the services against the SQLAlchemy adapter
on an in-memory SQLite database.
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from readshare.domain.commands import RecordListQuery, UpsertCommand
from readshare.domain.entities import Friendship, Profile
from readshare.domain.errors import AuthorizationError, ConflictError
from readshare.infrastructure.database.models import Base
from readshare.infrastructure.database.unit_of_work import SqlAlchemyUnitOfWork
from readshare.services.friendship_service import FriendshipService
from readshare.services.reading_record_service import ReadingRecordService
from readshare.services.record_write_service import RecordWriteService


@pytest.fixture
async def sql_uow():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        # SQLite transactions are already serializable.
        yield SqlAlchemyUnitOfWork(session, snapshot_isolation=None)

    await engine.dispose()


@pytest.fixture
async def people(sql_uow):
    ids = {name: uuid4() for name in ("alice", "bob", "carol")}
    async with sql_uow.transaction():
        for name, user_id in ids.items():
            await sql_uow.profiles.create(Profile(id=user_id, nickname=name))
    return ids


@pytest.fixture
def services(sql_uow):
    friendships = FriendshipService(sql_uow)
    return (
        friendships,
        ReadingRecordService(sql_uow, friendships),
        RecordWriteService(sql_uow),
    )


def _upsert(data):
    return UpsertCommand.model_validate(data)


async def _visible_ids(records, viewer, **data):
    page = await records.list_records(viewer, RecordListQuery.model_validate(data))
    return [r.reading_log.id for r in page.items]


class TestSqlStore:

    @pytest.mark.integration
    async def test_friend_visibility(self, services, people):
        friendships, records, writer = services
        result = await writer.upsert(
            people["alice"],
            _upsert(
                {
                    "book": {"title": "X", "author": "Y"},
                    "reading_log": {"status": "reading", "visibility": "friends"},
                }
            ),
        )

        assert await _visible_ids(records, people["bob"]) == []

        outcome = await friendships.request_friendship(people["alice"], people["bob"])
        await friendships.accept_request(people["bob"], outcome.friendship.id)

        assert await _visible_ids(records, people["bob"]) == [result.reading_log_id]
        assert await _visible_ids(records, people["carol"]) == []

        record = await records.get_record(people["bob"], result.reading_log_id)
        assert record.book.title == "X"
        assert record.profile.nickname == "alice"

    @pytest.mark.integration
    async def test_search_escapes_wildcards(self, services, people):
        _, records, writer = services
        await writer.upsert(people["alice"], _upsert({"book": {"title": "Dune", "author": "Herbert"}, "reading_log": {}}))
        percent = await writer.upsert(
            people["alice"], _upsert({"book": {"title": "100% Wolf", "author": "Jayne"}, "reading_log": {}})
        )

        assert await _visible_ids(records, people["alice"], filters={"search": "%"}) == [
            percent.reading_log_id
        ]
        assert await _visible_ids(records, people["alice"], filters={"search": "WOLF"}) == [
            percent.reading_log_id
        ]

    @pytest.mark.integration
    async def test_missing_sort_values_last(self, services, people):
        _, records, writer = services
        undated = await writer.upsert(
            people["alice"], _upsert({"book": {"title": "U", "author": "A"}, "reading_log": {}})
        )
        dated = await writer.upsert(
            people["alice"],
            _upsert({"book": {"title": "D", "author": "A"}, "reading_log": {"start_date": str(date(2024, 5, 1))}}),
        )

        for direction in ("asc", "desc"):
            ids = await _visible_ids(
                records, people["alice"], sort={"field": "start_date", "direction": direction}
            )
            assert ids == [dated.reading_log_id, undated.reading_log_id]

    @pytest.mark.integration
    async def test_delete_cascades(self, services, people, sql_uow):
        _, _, writer = services
        created = await writer.upsert(
            people["alice"],
            _upsert(
                {
                    "book": {"title": "Dune", "author": "Herbert"},
                    "reading_log": {"status": "finished"},
                    "quotes": [{"text": "q", "page_number": 1}],
                    "reviews": [{"content": "r"}],
                }
            ),
        )

        result = await writer.delete(people["alice"], created.reading_log_id)

        assert result.book_deleted is True
        assert await sql_uow.reading_logs.get_by_id(created.reading_log_id) is None
        assert await sql_uow.books.get_by_id(created.book_id) is None
        assert await sql_uow.quotes.list_by_reading_logs([created.reading_log_id]) == []
        assert await sql_uow.reviews.list_by_reading_logs([created.reading_log_id]) == []

    @pytest.mark.integration
    async def test_failed_upsert_rolls_back(self, services, people, sql_uow):
        _, records, writer = services
        foreign = await writer.upsert(
            people["bob"],
            _upsert(
                {
                    "book": {"title": "Bob's", "author": "B"},
                    "reading_log": {},
                    "quotes": [{"text": "bob", "page_number": 2}],
                }
            ),
        )
        bob_quote = (await sql_uow.quotes.list_by_reading_logs([foreign.reading_log_id]))[0]

        with pytest.raises(AuthorizationError):
            await writer.upsert(
                people["alice"],
                _upsert(
                    {
                        "book": {"title": "Ghost", "author": "G"},
                        "reading_log": {},
                        "delete_quote_ids": [str(bob_quote.id)],
                    }
                ),
            )

        assert await _visible_ids(records, people["alice"], scope="me") == []
        assert await sql_uow.quotes.get_by_id(bob_quote.id) is not None

    @pytest.mark.integration
    async def test_duplicate_pair_is_a_conflict(self, sql_uow, people):
        async with sql_uow.transaction():
            await sql_uow.friendships.create(
                Friendship(id=uuid4(), requester_id=people["alice"], addressee_id=people["bob"])
            )

        with pytest.raises(ConflictError):
            async with sql_uow.transaction():
                await sql_uow.friendships.create(
                    Friendship(id=uuid4(), requester_id=people["bob"], addressee_id=people["alice"])
                )

        assert await sql_uow.friendships.get_between(people["alice"], people["bob"]) is not None

    @pytest.mark.integration
    async def test_reads_close_their_snapshot(self, services, people, sql_uow):
        friendships, records, writer = services
        created = await writer.upsert(
            people["alice"], _upsert({"book": {"title": "Dune", "author": "Herbert"}, "reading_log": {}})
        )

        assert await _visible_ids(records, people["alice"]) == [created.reading_log_id]
        assert not sql_uow.session.in_transaction()

        await records.get_record(people["alice"], created.reading_log_id)
        assert not sql_uow.session.in_transaction()

        await friendships.list_friends(people["alice"])
        assert not sql_uow.session.in_transaction()
