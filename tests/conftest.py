"""Pytest fixtures for billing tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from wanderlust_billing.billing.catalog import EntitlementCatalog
from wanderlust_billing.billing.config import BillingConfig
from wanderlust_billing.billing.identity import StaticIdentityProvider
from wanderlust_billing.billing.providers import StubGateway
from wanderlust_billing.billing.services import LedgerService, OrderService, PaymentReconciler
from wanderlust_billing.database import create_schema, make_session_factory
from wanderlust_billing.models import Profile
from tests.factories import ALICE, ALICE_TOKEN, BOB, BOB_TOKEN, KEY_SECRET, WEBHOOK_SECRET

# Single shared in-memory SQLite connection per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed_profile(session_factory) -> Callable[..., Awaitable[Profile]]:
    """Insert a profile in its own session and return it."""

    async def _seed(
        user_id: str = ALICE,
        *,
        credits: int = 0,
        streak_count: int = 0,
        owned_levels: list[str] | None = None,
        created_at: datetime | None = None,
        last_active: datetime | None = None,
    ) -> Profile:
        profile = Profile(
            id=user_id,
            credits=credits,
            streak_count=streak_count,
            owned_levels=list(owned_levels or []),
            last_active=last_active,
        )
        if created_at is not None:
            profile.created_at = created_at
        async with session_factory() as session:
            session.add(profile)
            await session.commit()
        return profile

    return _seed


@pytest.fixture
def catalog() -> EntitlementCatalog:
    return EntitlementCatalog()


@pytest.fixture
def billing_config() -> BillingConfig:
    return BillingConfig(key_secret=KEY_SECRET, webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def identity() -> StaticIdentityProvider:
    return StaticIdentityProvider({ALICE_TOKEN: ALICE, BOB_TOKEN: BOB})


@pytest.fixture
def ledger(db_session: AsyncSession) -> LedgerService:
    return LedgerService(db_session)


@pytest.fixture
def order_service(identity, gateway, ledger, catalog, billing_config) -> OrderService:
    return OrderService(
        identity=identity,
        gateway=gateway,
        ledger=ledger,
        catalog=catalog,
        config=billing_config,
    )


@pytest.fixture
def reconciler(identity, gateway, ledger, catalog, billing_config) -> PaymentReconciler:
    return PaymentReconciler(
        identity=identity,
        gateway=gateway,
        ledger=ledger,
        catalog=catalog,
        config=billing_config,
    )
