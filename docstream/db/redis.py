"""Process-wide Redis client.

Holds both the connection hash and the per-document delta streams. The
client is opened in the app lifespan; routes receive it through the
``get_redis`` dependency so tests can swap in fakeredis.
"""

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from docstream.core.config import get_settings

logger = structlog.get_logger(__name__)

_client: redis.Redis | None = None


async def init_redis(url: str | None = None) -> redis.Redis:
    """Open the shared client and check it can reach the server. Idempotent."""
    global _client

    if _client is None:
        client = redis.from_url(
            url or get_settings().redis_url,
            decode_responses=True,
            health_check_interval=30,
        )
        await client.ping()
        _client = client
    return _client


async def close_redis() -> None:
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Return the shared client.

    Raises RuntimeError if init_redis() has not been called.
    """
    if _client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _client


async def redis_available() -> bool:
    """True when the shared client exists and answers PING."""
    if _client is None:
        return False
    try:
        return bool(await _client.ping())
    except RedisError as exc:
        logger.error("redis_ping_failed", error=str(exc), error_type=type(exc).__name__)
        return False
