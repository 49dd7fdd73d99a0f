"""Dependency injection container."""

from functools import lru_cache
from typing import AsyncGenerator, Optional
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from readshare.core.config import settings
from readshare.core.redis_client import get_redis, is_token_revoked
from readshare.core.security import decode_access_token
from readshare.domain.errors import AuthError
from readshare.domain.repositories import IUnitOfWork
from readshare.domain.services import (
    IFriendshipService,
    IProfileService,
    IQuoteService,
    IReadingRecordService,
    IRecordWriteService,
    IReviewService,
)
from readshare.infrastructure.database.connection import async_session_maker
from readshare.infrastructure.database.unit_of_work import SqlAlchemyUnitOfWork
from readshare.infrastructure.memory.store import InMemoryUnitOfWork
from readshare.services.friendship_service import FriendshipService
from readshare.services.profile_service import ProfileService
from readshare.services.quote_service import QuoteService
from readshare.services.reading_record_service import ReadingRecordService
from readshare.services.record_write_service import RecordWriteService
from readshare.services.review_service import ReviewService

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Store providers
# ---------------------------------------------------------------------------
@lru_cache()
def get_memory_uow() -> InMemoryUnitOfWork:
    """Process-wide in-memory store, used when ``store_backend`` is ``memory``."""
    return InMemoryUnitOfWork()


async def get_uow() -> AsyncGenerator[IUnitOfWork, None]:
    """Return the configured store backend, one unit of work per request."""
    if settings.store_backend == "memory":
        yield get_memory_uow()
    elif settings.store_backend == "postgres":
        async with async_session_maker() as session:
            yield SqlAlchemyUnitOfWork(session, snapshot_isolation=settings.read_isolation_level)
    else:
        raise ValueError(f"Unknown store backend: {settings.store_backend}")


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------
async def get_friendship_service(uow: IUnitOfWork = Depends(get_uow)) -> IFriendshipService:
    return FriendshipService(
        uow,
        default_limit=settings.friends_default_limit,
        max_limit=settings.records_max_limit,
    )


async def get_reading_record_service(
    uow: IUnitOfWork = Depends(get_uow),
    friendship_service: IFriendshipService = Depends(get_friendship_service),
) -> IReadingRecordService:
    return ReadingRecordService(
        uow,
        friendship_service,
        default_limit=settings.records_default_limit,
        max_limit=settings.records_max_limit,
    )


async def get_record_write_service(uow: IUnitOfWork = Depends(get_uow)) -> IRecordWriteService:
    return RecordWriteService(uow)


async def get_quote_service(uow: IUnitOfWork = Depends(get_uow)) -> IQuoteService:
    return QuoteService(uow)


async def get_review_service(uow: IUnitOfWork = Depends(get_uow)) -> IReviewService:
    return ReviewService(uow)


async def get_profile_service(
    uow: IUnitOfWork = Depends(get_uow),
    friendship_service: IFriendshipService = Depends(get_friendship_service),
) -> IProfileService:
    return ProfileService(
        uow,
        friendship_service,
        default_limit=settings.profile_search_default_limit,
        max_limit=settings.records_max_limit,
    )


# ---------------------------------------------------------------------------
# Auth dependency
# ---------------------------------------------------------------------------
async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    redis_client: aioredis.Redis = Depends(get_redis),
) -> UUID:
    """Verify the bearer token and return the actor id from its ``sub`` claim.

    Rejects tokens whose ``jti`` has been written to the Redis revocation
    blacklist when ``token_revocation`` is enabled.
    """
    credentials_exception = AuthError("Could not validate credentials")
    if credentials is None:
        raise credentials_exception
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    jti: Optional[str] = payload.get("jti")
    if settings.token_revocation and jti and await is_token_revoked(redis_client, jti):
        raise AuthError("Token has been revoked")

    actor_id: Optional[str] = payload.get("sub")
    if actor_id is None:
        raise credentials_exception
    try:
        return UUID(actor_id)
    except (TypeError, ValueError):
        raise credentials_exception from None
