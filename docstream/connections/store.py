"""Connection store: which provider-router connection a user currently holds.

One Redis hash maps user id -> connection id. HGET/HSET/HDEL are single
commands, so a read never observes a half-written value while the connect
flow is replacing it.
"""

from typing import Protocol, runtime_checkable

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from docstream.core.exceptions import ConnectionStoreError

logger = structlog.get_logger(__name__)

CONNECTIONS_KEY = "docstream:connections"


@runtime_checkable
class ConnectionStore(Protocol):
    """Key-value lookup of a user's current connection id."""

    async def get_connection_id(self, user_id: str) -> str | None:
        ...

    async def set_connection_id(self, user_id: str, connection_id: str) -> None:
        ...


class RedisConnectionStore:
    """ConnectionStore backed by a single Redis hash."""

    def __init__(self, redis: Redis, key: str = CONNECTIONS_KEY):
        self.redis = redis
        self.key = key

    async def get_connection_id(self, user_id: str) -> str | None:
        """Return the user's connection id, or None when they never connected.

        Raises:
            ConnectionStoreError: if Redis could not be queried. Absence and
                failure are reported differently on purpose.
        """
        try:
            value = await self.redis.hget(self.key, user_id)
        except RedisError as exc:
            logger.warning(
                "connection_store_read_failed",
                user_id=user_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise ConnectionStoreError(surface="connection", detail=str(exc)) from exc
        return value or None

    async def set_connection_id(self, user_id: str, connection_id: str) -> None:
        """Record connection_id as the user's current connection."""
        try:
            await self.redis.hset(self.key, user_id, connection_id)
        except RedisError as exc:
            raise ConnectionStoreError(surface="connection", detail=str(exc)) from exc
        logger.info("connection_id_updated", user_id=user_id)

    async def delete_connection_id(self, user_id: str) -> bool:
        """Forget the user's connection. Returns True if one existed."""
        try:
            removed = await self.redis.hdel(self.key, user_id)
        except RedisError as exc:
            raise ConnectionStoreError(surface="connection", detail=str(exc)) from exc
        logger.info("connection_id_removed", user_id=user_id, existed=bool(removed))
        return bool(removed)
