"""Data stream sinks: where delta events go while a document is generated.

RedisStreamSink writes to a Redis Stream per document:

    document:{document_id}:stream

Entries are appended with XADD, so their stream ids keep arrival order. A
reader (the SSE route) replays and tails the stream until it sees the
``finish`` marker written by the HTTP layer once generation ends.
"""

from typing import Protocol, runtime_checkable

import structlog
from redis.asyncio import Redis

from docstream.core.config import get_settings
from docstream.generation.schemas import DeltaEvent

logger = structlog.get_logger(__name__)

STREAM_MAXLEN = 10000
FINISH_EVENT_TYPE = "finish"


def document_stream_key(document_id: str) -> str:
    """Return the Redis Stream key for a document's events."""
    return f"document:{document_id}:stream"


@runtime_checkable
class DataStreamSink(Protocol):
    """Append-only ordered channel visible to the requesting client."""

    async def write(self, event: DeltaEvent) -> None:
        ...


class RedisStreamSink:
    """DataStreamSink backed by a Redis Stream.

    Write errors propagate to the caller.
    """

    def __init__(self, redis: Redis, document_id: str, ttl_seconds: int | None = None):
        self.redis = redis
        self.document_id = document_id
        self.stream_key = document_stream_key(document_id)
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else get_settings().document_stream_ttl_seconds
        )

    async def write(self, event: DeltaEvent) -> None:
        await self._append(event.model_dump())

    async def finish(self, status: str = "complete") -> None:
        """Append the terminal marker that tells readers to stop."""
        await self._append({"type": FINISH_EVENT_TYPE, "status": status})
        logger.debug("document_stream_finished", document_id=self.document_id, status=status)

    async def _append(self, fields: dict) -> None:
        await self.redis.xadd(
            self.stream_key,
            fields,
            maxlen=STREAM_MAXLEN,
            approximate=True,
        )
        # Refresh TTL on every write so the key outlives the generation
        await self.redis.expire(self.stream_key, self.ttl_seconds)
