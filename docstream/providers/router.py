"""Provider-router client scoped to one user connection.

The router holds the user's own provider credentials. We talk to it with our
API key plus the user's connection id:
- chat models go through its OpenAI-compatible gateway (``/v1``), except
  Anthropic models which use its Anthropic passthrough (``/anthropic``)
- provider listing is a plain JSON endpoint, fetched with httpx

Retries live here and nowhere above: the LangChain clients use their own
``max_retries`` and the listing call is wrapped with tenacity.
"""

import httpx
import structlog
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from docstream.core.config import get_settings
from docstream.core.exceptions import ConfigurationError, UpstreamFailureError
from docstream.providers.handle import ModelHandle, parse_model_identifier

logger = structlog.get_logger(__name__)

CONNECTION_HEADER = "X-Connection-Id"
MODEL_MAX_RETRIES = 2
ANTHROPIC_MAX_TOKENS = 8192


class ProviderInfo(BaseModel):
    """A provider the user has connected through the router."""

    model_config = ConfigDict(populate_by_name=True)

    provider: str
    display_name: str = Field(alias="displayName")


class _RetryableRouterError(Exception):
    """5xx from the router; worth another attempt."""


class RouterClient:
    """Router access on behalf of a single connection."""

    def __init__(
        self,
        connection_id: str,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        if not connection_id:
            raise ValueError("connection_id is required")

        self.connection_id = connection_id
        self.api_key = api_key if api_key is not None else settings.router_api_key
        if not self.api_key:
            raise ConfigurationError(surface="router", detail="Router API key is not configured")
        self.base_url = (base_url or settings.router_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.router_timeout_seconds

    @property
    def _headers(self) -> dict[str, str]:
        return {CONNECTION_HEADER: self.connection_id}

    def resolve_model(self, identifier: str) -> ModelHandle:
        """Build a chat model for ``provider/model`` routed through this connection.

        Nothing is sent over the network here; an unknown model surfaces as a
        provider error on the first generation call.
        """
        provider, name = parse_model_identifier(identifier)
        if provider == "anthropic":
            model = self._anthropic_model(name)
        else:
            model = self._openai_compatible_model(identifier)

        logger.debug("router_model_resolved", provider=provider, model=name)
        return ModelHandle(identifier=identifier, provider=provider, name=name, model=model)

    def _openai_compatible_model(self, identifier: str) -> BaseChatModel:
        return ChatOpenAI(
            model=identifier,
            api_key=self.api_key,
            base_url=f"{self.base_url}/v1",
            default_headers=self._headers,
            timeout=self.timeout,
            max_retries=MODEL_MAX_RETRIES,
        )

    def _anthropic_model(self, name: str) -> BaseChatModel:
        return ChatAnthropic(
            model=name,
            api_key=self.api_key,
            base_url=f"{self.base_url}/anthropic",
            default_headers=self._headers,
            max_tokens=ANTHROPIC_MAX_TOKENS,
            timeout=self.timeout,
            max_retries=MODEL_MAX_RETRIES,
        )

    async def list_providers(self, connection_id: str | None = None) -> list[ProviderInfo]:
        """Return the providers connected under ``connection_id`` (default: ours).

        Raises:
            UpstreamFailureError: router unreachable or returned an error
        """
        cid = connection_id or self.connection_id
        try:
            payload = await self._fetch_providers(cid)
        except (httpx.HTTPError, _RetryableRouterError) as exc:
            logger.warning(
                "router_list_providers_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise UpstreamFailureError(surface="router", detail=str(exc)) from exc

        items = payload.get("providers", []) if isinstance(payload, dict) else payload
        return [ProviderInfo.model_validate(item) for item in items]

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, _RetryableRouterError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
        before_sleep=lambda rs: logger.warning(
            "router_request_retrying",
            attempt=rs.attempt_number,
            sleep_seconds=rs.next_action.sleep,
        ),
    )
    async def _fetch_providers(self, connection_id: str) -> dict | list:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
            response = await client.get(
                f"/v1/connections/{connection_id}/providers",
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        if response.status_code >= 500:
            raise _RetryableRouterError(f"router returned {response.status_code}")
        response.raise_for_status()
        return response.json()
