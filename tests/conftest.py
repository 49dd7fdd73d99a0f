"""
Shared pytest fixtures for ReadShare tests.

This module provides test fixtures for:
- An in-memory unit of work and the services built on it
- Seeded user profiles
- Reading record factories
"""

import os

# Settings are read at import time; pin them before anything imports readshare.
os.environ.setdefault("READSHARE_STORE_BACKEND", "memory")
os.environ.setdefault("READSHARE_TOKEN_REVOCATION", "false")
os.environ.setdefault("READSHARE_AUTH_SECRET", "test-secret")

from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest

from readshare.domain.commands import QuickCreateCommand, UpsertCommand
from readshare.domain.entities import Profile
from readshare.infrastructure.memory.store import InMemoryUnitOfWork
from readshare.services.friendship_service import FriendshipService
from readshare.services.profile_service import ProfileService
from readshare.services.quote_service import QuoteService
from readshare.services.reading_record_service import ReadingRecordService
from readshare.services.record_write_service import RecordWriteService
from readshare.services.review_service import ReviewService


@dataclass
class Users:
    alice: UUID
    bob: UUID
    carol: UUID


# ============================================================================
# Store & services
# ============================================================================

@pytest.fixture
def uow():
    """A fresh in-memory store per test."""
    return InMemoryUnitOfWork()


@pytest.fixture
def friendships(uow):
    return FriendshipService(uow, default_limit=20, max_limit=100)


@pytest.fixture
def records(uow, friendships):
    return ReadingRecordService(uow, friendships, default_limit=50, max_limit=100)


@pytest.fixture
def writer(uow):
    return RecordWriteService(uow)


@pytest.fixture
def quotes(uow):
    return QuoteService(uow)


@pytest.fixture
def reviews(uow):
    return ReviewService(uow)


@pytest.fixture
def profiles(uow, friendships):
    return ProfileService(uow, friendships, default_limit=20, max_limit=100)


# ============================================================================
# Data
# ============================================================================

@pytest.fixture
async def users(uow):
    """Three users with profiles: alice, bob and carol."""
    ids = Users(alice=uuid4(), bob=uuid4(), carol=uuid4())
    async with uow.transaction():
        for name, user_id in (("alice", ids.alice), ("bob", ids.bob), ("carol", ids.carol)):
            await uow.profiles.create(Profile(id=user_id, nickname=name))
    return ids


@pytest.fixture
def make_record(writer):
    """Factory: create a book + reading log through the upsert path."""

    async def _make(owner_id, title="Dune", author="Frank Herbert", **log_fields):
        command = UpsertCommand.model_validate(
            {
                "book": {"title": title, "author": author},
                "reading_log": log_fields,
            }
        )
        return await writer.upsert(owner_id, command)

    return _make


@pytest.fixture
def quick_create(writer):
    async def _create(owner_id, title="Dune", author="Frank Herbert"):
        return await writer.create_record(
            owner_id, QuickCreateCommand(title=title, author=author)
        )

    return _create


@pytest.fixture
def befriend(friendships):
    """Make ``a`` and ``b`` friends through the request/accept flow."""

    async def _befriend(a, b):
        outcome = await friendships.request_friendship(a, b)
        await friendships.accept_request(b, outcome.friendship.id)
        return outcome.friendship.id

    return _befriend
