"""Provider connection API routes.

The router's connect flow calls PUT /connection once the user has linked
their providers; DELETE /connection disconnects.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from docstream.api.deps import get_connection_resolver, get_connection_store
from docstream.connections.resolver import ConnectionResolver
from docstream.connections.store import RedisConnectionStore
from docstream.core.auth import Session, get_session
from docstream.core.exceptions import UnauthorizedError

router = APIRouter()


class ConnectionUpdate(BaseModel):
    connection_id: str = Field(min_length=1)


class ConnectionStatus(BaseModel):
    connected: bool


def _require_user(session: Session) -> str:
    if not session.user_id:
        raise UnauthorizedError(surface="connection")
    return session.user_id


@router.get("", response_model=ConnectionStatus)
async def get_connection(
    session: Session = Depends(get_session),
    connections: ConnectionResolver = Depends(get_connection_resolver),
):
    """Report whether the caller has a provider connection."""
    user_id = _require_user(session)
    return ConnectionStatus(connected=await connections.has_connection(user_id))


@router.put("", response_model=ConnectionStatus)
async def update_connection(
    body: ConnectionUpdate,
    session: Session = Depends(get_session),
    store: RedisConnectionStore = Depends(get_connection_store),
):
    """Store the caller's connection id, replacing any previous one."""
    user_id = _require_user(session)
    await store.set_connection_id(user_id, body.connection_id)
    return ConnectionStatus(connected=True)


@router.delete("", response_model=ConnectionStatus)
async def delete_connection(
    session: Session = Depends(get_session),
    store: RedisConnectionStore = Depends(get_connection_store),
):
    user_id = _require_user(session)
    await store.delete_connection_id(user_id)
    return ConnectionStatus(connected=False)
