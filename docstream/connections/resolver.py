"""Connection authorization: turn a user id into the connection they may use."""

import structlog

from docstream.connections.store import ConnectionStore
from docstream.core.exceptions import ForbiddenError, UnauthorizedError

logger = structlog.get_logger(__name__)


class ConnectionResolver:
    """Looks up a user's active provider connection on every call.

    Nothing is cached, so a revoked connection stops working on the very
    next request. Store failures propagate as ConnectionStoreError.
    """

    def __init__(self, store: ConnectionStore):
        self.store = store

    async def resolve(self, user_id: str | None) -> str:
        """Return the user's connection id.

        Raises:
            UnauthorizedError: user_id is missing
            ForbiddenError: the user has no stored connection
        """
        if not user_id:
            raise UnauthorizedError(surface="chat")

        connection_id = await self.store.get_connection_id(user_id)
        if not connection_id:
            logger.info("connection_missing", user_id=user_id)
            raise ForbiddenError(surface="chat")

        return connection_id

    async def has_connection(self, user_id: str | None) -> bool:
        """True when resolve() would succeed. Store failures still raise."""
        if not user_id:
            return False
        return bool(await self.store.get_connection_id(user_id))
