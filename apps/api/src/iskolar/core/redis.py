"""
Redis Configuration

Async Redis client backing the staff rate limiter.

Redis is optional outside production: when it was unreachable at startup the
client stays None and callers fall back to their in-process alternative.
Socket timeouts are kept short so a stalled Redis slows a staff request by
seconds at most before that fallback kicks in.
"""

import enum
import logging

from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from iskolar.core.config import settings

logger = logging.getLogger(__name__)

# Redis client instance
redis_client: Redis | None = None


class RedisState(str, enum.Enum):
    CONNECTED = "connected"
    NOT_INITIALIZED = "not initialized"
    ERROR = "error"


def create_client() -> Redis:
    return from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_connect_timeout_seconds,
        health_check_interval=settings.redis_health_check_interval_seconds,
    )


async def init_redis() -> Redis:
    """
    Initialize Redis connection.

    Call this on application startup. The client is only published once it
    answers a ping.
    """
    global redis_client
    client = create_client()
    try:
        await client.ping()
    except RedisError:
        await client.aclose()
        raise
    redis_client = client
    return redis_client


def get_redis_client() -> Redis | None:
    """Return the shared client, or None when Redis was not reachable at startup."""
    return redis_client


def redis_key(*parts: object) -> str:
    """Namespace a key under the configured prefix, e.g. iskolar:rate_limit:staff:2."""
    return ":".join([settings.redis_key_prefix, *(str(part) for part in parts)])


async def ping_redis() -> tuple[RedisState, str | None]:
    """
    Check the shared client.

    Returns:
        The state, and the error message when the ping failed
    """
    client = get_redis_client()
    if client is None:
        return RedisState.NOT_INITIALIZED, None
    try:
        await client.ping()
    except RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return RedisState.ERROR, str(e)
    return RedisState.CONNECTED, None


async def close_redis() -> None:
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
