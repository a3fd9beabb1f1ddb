"""FastAPI dependencies shared by the routes."""

from functools import lru_cache

from fastapi import Depends
from redis.asyncio import Redis

from docstream.connections.resolver import ConnectionResolver
from docstream.connections.store import RedisConnectionStore
from docstream.db.redis import get_redis
from docstream.generation.engine import DocumentGenerationEngine
from docstream.providers.router import RouterClient


@lru_cache
def get_engine() -> DocumentGenerationEngine:
    """The engine is stateless, so one instance serves every request."""
    return DocumentGenerationEngine()


def get_connection_store(redis: Redis = Depends(get_redis)) -> RedisConnectionStore:
    return RedisConnectionStore(redis)


def get_connection_resolver(
    store: RedisConnectionStore = Depends(get_connection_store),
) -> ConnectionResolver:
    return ConnectionResolver(store)


def get_router_client_factory():
    """Callable building a RouterClient for a connection id."""
    return RouterClient
