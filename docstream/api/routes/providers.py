"""Provider listing for the model picker.

Display concerns only: every failure here degrades to "no providers" or the
raw provider id rather than an error response.
"""

import structlog
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from docstream.api.deps import get_connection_store, get_router_client_factory
from docstream.connections.store import RedisConnectionStore
from docstream.core.auth import Session, get_session
from docstream.core.config import get_settings
from docstream.core.exceptions import DocStreamError
from docstream.providers.router import ProviderInfo

logger = structlog.get_logger(__name__)

router = APIRouter()


class ProvidersResponse(BaseModel):
    has_connection: bool
    providers: list[ProviderInfo]
    selected_provider: str
    selected_provider_display_name: str
    default_model: str


@router.get("", response_model=ProvidersResponse)
async def list_providers(
    provider: str | None = Query(None, description="Currently selected provider id"),
    session: Session = Depends(get_session),
    store: RedisConnectionStore = Depends(get_connection_store),
    client_factory=Depends(get_router_client_factory),
):
    """Return the caller's connected providers and the selected provider's name.

    In test mode the connection check is skipped and the router is never
    called; the user is treated as connected.
    """
    settings = get_settings()
    selected = provider or settings.default_chat_provider

    response = ProvidersResponse(
        has_connection=False,
        providers=[],
        selected_provider=selected,
        selected_provider_display_name=selected,
        default_model=settings.default_chat_model,
    )

    if settings.test_mode:
        response.has_connection = True
        return response

    if not session.user_id:
        return response

    connection_id = await store.get_connection_id(session.user_id)
    if not connection_id:
        return response
    response.has_connection = True

    try:
        providers = await client_factory(connection_id).list_providers(connection_id)
    except DocStreamError as exc:
        logger.warning(
            "provider_listing_unavailable",
            user_id=session.user_id,
            error_type=type(exc).__name__,
        )
        return response

    response.providers = providers
    for info in providers:
        if info.provider == selected:
            response.selected_provider_display_name = info.display_name
            break

    return response
