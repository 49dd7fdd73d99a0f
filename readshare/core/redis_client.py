"""Async Redis client.

Used for the access token revocation blacklist. The identity provider
writes ``revoked:<jti>`` on signout; this service only reads it.
"""

from typing import AsyncGenerator

import redis.asyncio as aioredis

from readshare.core.config import settings

# Redis key prefix for revoked JWT IDs
REVOKED_TOKEN_PREFIX = "revoked:"


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    """FastAPI dependency: yield a connected Redis client, close on teardown."""
    client: aioredis.Redis = aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
    )
    try:
        yield client
    finally:
        await client.aclose()


async def is_token_revoked(client: aioredis.Redis, jti: str) -> bool:
    """Return True if the JWT ID is in the revocation blacklist."""
    return await client.exists(f"{REVOKED_TOKEN_PREFIX}{jti}") == 1
