"""Fixtures for HTTP-level tests.

The app is used without its lifespan: Redis, the session and the model
resolver are supplied through dependency_overrides instead. TestClient runs
each request on its own event loop, so every request gets a fresh
FakeAsyncRedis bound to one shared FakeServer.
"""

import pytest
from fakeredis import FakeAsyncRedis, FakeRedis, FakeServer
from fastapi import FastAPI
from fastapi.testclient import TestClient

from docstream.db.redis import get_redis
from docstream.main import create_app


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def redis_sync(fake_server) -> FakeRedis:
    """Synchronous view of the same fake Redis the app writes to."""
    return FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def app(fake_server) -> FastAPI:
    app = create_app()
    app.dependency_overrides[get_redis] = lambda: FakeAsyncRedis(
        server=fake_server, decode_responses=True
    )
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(app) -> TestClient:
    return TestClient(app)

