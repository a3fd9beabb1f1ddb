"""Shared test fixtures for all test groups."""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis

from docstream.core.config import get_settings
from docstream.providers.handle import ModelHandle
from docstream.providers.mock import reset_mock_registry
from docstream.providers.resolver import configure_model_resolver
from tests.fakes import ListSink


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Each test starts with fresh settings and no resolver or mock registry."""
    get_settings.cache_clear()
    configure_model_resolver(None)
    reset_mock_registry()
    yield
    get_settings.cache_clear()
    configure_model_resolver(None)
    reset_mock_registry()


@pytest_asyncio.fixture
async def redis():
    """In-process fake Redis with hash and Stream support."""
    r = FakeAsyncRedis(decode_responses=True)
    yield r
    await r.aclose()


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def model_handle():
    """Handle around a MagicMock model; engine tests never call the model."""
    return ModelHandle(
        identifier="openai/gpt-4o",
        provider="openai",
        name="gpt-4o",
        model=MagicMock(name="chat_model"),
    )
