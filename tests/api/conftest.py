"""API test fixtures: the real app wired to the test database and stubs."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from wanderlust_billing.api.app import create_app
from wanderlust_billing.api.dependencies import get_db_session, get_gateway, get_identity
from wanderlust_billing.config import Settings, get_settings
from tests.factories import make_settings


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(test_settings, session_factory, gateway, identity) -> FastAPI:
    app = create_app()

    async def override_db_session() -> AsyncGenerator:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_identity] = lambda: identity
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
