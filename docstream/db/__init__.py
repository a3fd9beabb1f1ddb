"""Storage package: shared Redis client."""

from docstream.db.redis import close_redis, get_redis, init_redis, redis_available

__all__ = [
    "close_redis",
    "get_redis",
    "init_redis",
    "redis_available",
]
