"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from wanderlust_billing.billing.catalog import EntitlementCatalog
from wanderlust_billing.billing.config import BillingConfig
from wanderlust_billing.billing.errors import ConfigurationError
from wanderlust_billing.billing.identity import IdentityProvider, SupabaseIdentityProvider
from wanderlust_billing.billing.providers import PaymentGateway, RazorpayGateway
from wanderlust_billing.billing.services import (
    AccessGate,
    AdminMetricsService,
    AdminTokenGate,
    LedgerService,
    OrderService,
    PaymentReconciler,
)
from wanderlust_billing.config import Settings, get_settings
from wanderlust_billing.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


@lru_cache(maxsize=1)
def get_catalog() -> EntitlementCatalog:
    """Level catalog, built once per process."""
    return EntitlementCatalog()


AppSettings = Annotated[Settings, Depends(get_settings)]


def get_gateway(settings: AppSettings) -> PaymentGateway:
    """Razorpay adapter built from settings.

    Credentials are not checked here; routes that must not run without them
    depend on require_gateway_credentials.
    """
    return RazorpayGateway(
        settings.razorpay_key_id,
        settings.razorpay_key_secret,
        api_base=settings.razorpay_api_base,
        timeout_seconds=settings.gateway_timeout_seconds,
    )


def get_identity(settings: AppSettings) -> IdentityProvider:
    """Supabase token resolver built from settings."""
    return SupabaseIdentityProvider(
        settings.require("SUPABASE_URL"),
        settings.require("SUPABASE_ANON_KEY"),
        timeout_seconds=settings.gateway_timeout_seconds,
    )


def get_billing_config(settings: AppSettings) -> BillingConfig:
    return BillingConfig(
        key_secret=settings.razorpay_key_secret,
        webhook_secret=settings.razorpay_webhook_secret,
        currency=settings.currency,
        merchant_name=settings.merchant_name,
    )


def get_bearer_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Catalog = Annotated[EntitlementCatalog, Depends(get_catalog)]
Gateway = Annotated[PaymentGateway, Depends(get_gateway)]
Config = Annotated[BillingConfig, Depends(get_billing_config)]
BearerToken = Annotated[str | None, Depends(get_bearer_token)]


def get_order_service(
    db: DbSession,
    gateway: Gateway,
    catalog: Catalog,
    config: Config,
    identity: Annotated[IdentityProvider, Depends(get_identity)],
) -> OrderService:
    return OrderService(
        identity=identity,
        gateway=gateway,
        ledger=LedgerService(db),
        catalog=catalog,
        config=config,
    )


def get_confirm_reconciler(
    db: DbSession,
    gateway: Gateway,
    catalog: Catalog,
    config: Config,
    identity: Annotated[IdentityProvider, Depends(get_identity)],
) -> PaymentReconciler:
    return PaymentReconciler(
        identity=identity,
        gateway=gateway,
        ledger=LedgerService(db),
        catalog=catalog,
        config=config,
    )


def get_webhook_reconciler(
    db: DbSession,
    gateway: Gateway,
    catalog: Catalog,
    config: Config,
) -> PaymentReconciler:
    # The gateway is the caller; users come from order notes, not tokens.
    return PaymentReconciler(
        identity=None,
        gateway=gateway,
        ledger=LedgerService(db),
        catalog=catalog,
        config=config,
    )


def get_access_gate(settings: AppSettings) -> AccessGate:
    return AccessGate(settings.app_access_code)


def get_admin_gate(settings: AppSettings) -> AdminTokenGate:
    return AdminTokenGate(settings.admin_dash_token)


def get_metrics_service(db: DbSession) -> AdminMetricsService:
    return AdminMetricsService(db)


def require_gateway_credentials(settings: AppSettings) -> None:
    if not (settings.razorpay_key_id and settings.razorpay_key_secret):
        raise ConfigurationError("Missing Razorpay env vars")
