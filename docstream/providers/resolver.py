"""Model handle resolution.

Two strategies share the ModelResolver protocol:
- RouterModelResolver: production; checks the user's connection on every call
- MockModelResolver: test mode; never consults the connection store or router

Exactly one is installed at startup via configure_model_resolver(); request
handling only ever calls resolve_model_handle().
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

import structlog
from redis.asyncio import Redis

from docstream.connections.resolver import ConnectionResolver
from docstream.connections.store import RedisConnectionStore
from docstream.core.auth import Session
from docstream.core.config import Settings
from docstream.core.exceptions import BadRequestError, ConfigurationError, UnauthorizedError
from docstream.providers.handle import ModelHandle, parse_model_identifier
from docstream.providers.mock import get_mock_registry, init_mock_registry
from docstream.providers.router import RouterClient

logger = structlog.get_logger(__name__)


@runtime_checkable
class ModelResolver(Protocol):
    async def resolve(self, session: Session, identifier: str) -> ModelHandle:
        ...


class RouterModelResolver:
    """Resolves models through the provider router for the session's user."""

    def __init__(
        self,
        connections: ConnectionResolver,
        client_factory: Callable[[str], RouterClient] = RouterClient,
    ):
        self.connections = connections
        self.client_factory = client_factory

    async def resolve(self, session: Session, identifier: str) -> ModelHandle:
        """Return a handle for ``identifier`` usable by this session's user.

        Raises:
            BadRequestError: malformed identifier
            UnauthorizedError: no user on the session
            ForbiddenError: user has no provider connection

        Errors from building the router client or looking up the model are
        not wrapped or retried here.
        """
        parse_model_identifier(identifier)

        if not session.user_id:
            raise UnauthorizedError(surface="chat")

        connection_id = await self.connections.resolve(session.user_id)
        client = self.client_factory(connection_id)
        handle = client.resolve_model(identifier)

        logger.info(
            "model_resolved",
            user_id=session.user_id,
            provider=handle.provider,
            model=handle.name,
        )
        return handle


class MockModelResolver:
    """Resolves models from the in-process mock registry."""

    async def resolve(self, session: Session, identifier: str) -> ModelHandle:
        provider, name = parse_model_identifier(identifier)

        registry = get_mock_registry()
        model = registry.get(identifier)
        if model is None:
            raise BadRequestError(surface="api", detail=f"Unknown mock model: {identifier}")

        return ModelHandle(identifier=identifier, provider=provider, name=name, model=model)


_resolver: ModelResolver | None = None


def configure_model_resolver(resolver: ModelResolver | None) -> None:
    """Install the process-wide resolver strategy (None uninstalls it)."""
    global _resolver
    _resolver = resolver


def get_model_resolver() -> ModelResolver:
    """Return the installed resolver.

    Raises ConfigurationError if configure_model_resolver() has not been called.
    """
    if _resolver is None:
        raise ConfigurationError(surface="models", detail="Model resolver not configured")
    return _resolver


async def resolve_model_handle(session: Session, identifier: str) -> ModelHandle:
    """Resolve ``identifier`` for ``session`` with the installed strategy."""
    return await get_model_resolver().resolve(session, identifier)


def build_model_resolver(settings: Settings, redis: Redis) -> ModelResolver:
    """Pick the resolver strategy for this process.

    Test mode builds the mock registry here, so it exists before the first
    request can reach MockModelResolver.
    """
    if settings.test_mode:
        init_mock_registry()
        logger.info("model_resolver_configured", strategy="mock")
        return MockModelResolver()

    logger.info("model_resolver_configured", strategy="router")
    return RouterModelResolver(ConnectionResolver(RedisConnectionStore(redis)))
