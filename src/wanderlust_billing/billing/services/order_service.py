"""Order creation for level purchases.

A single round trip to the gateway; nothing is written locally. The order
notes carry the user id and level because the gateway is the only durable
link between order creation and a later webhook.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from wanderlust_billing.billing.catalog import EntitlementCatalog
from wanderlust_billing.billing.config import BillingConfig
from wanderlust_billing.billing.errors import (
    Conflict,
    InvalidInput,
    NotFound,
    Unauthorized,
    UpstreamFailure,
)
from wanderlust_billing.billing.identity import IdentityError, IdentityProvider
from wanderlust_billing.billing.pricing import (
    amount_due,
    sanitize_token_redemption,
    to_minor_units,
)
from wanderlust_billing.billing.providers.base import GatewayError, PaymentGateway
from wanderlust_billing.billing.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderQuote:
    """What the client needs to open the gateway checkout."""

    order_id: str
    amount: int  # minor units, as recorded by the gateway
    currency: str
    key_id: str
    name: str
    description: str
    tokens_redeemed: int


class OrderService:
    """Validates a purchase request and creates the gateway order."""

    def __init__(
        self,
        *,
        identity: IdentityProvider,
        gateway: PaymentGateway,
        ledger: LedgerService,
        catalog: EntitlementCatalog,
        config: BillingConfig,
    ):
        self.identity = identity
        self.gateway = gateway
        self.ledger = ledger
        self.catalog = catalog
        self.config = config

    async def create_order(
        self,
        auth_token: str | None,
        level: Any,
        tokens_redeemed: Any,
    ) -> OrderQuote:
        """Create a gateway order for level, redeeming up to tokens_redeemed.

        Raises:
            Unauthorized: Missing or invalid auth token.
            InvalidInput: Unknown level.
            NotFound: No profile for the caller.
            Conflict: Level already owned, or nothing left to charge.
            UpstreamFailure: The gateway refused or could not be reached.
        """
        if not auth_token:
            raise Unauthorized("Missing auth token")
        if level not in self.catalog:
            raise InvalidInput("Invalid level")

        try:
            user_id = await self.identity.resolve(auth_token)
        except IdentityError as e:
            raise Unauthorized("Invalid auth token") from e

        account = await self.ledger.get_account(user_id)
        if account is None:
            raise NotFound("Profile not found")
        if account.owns(level):
            raise Conflict("Level already owned", code="ALREADY_OWNED")

        base_price = self.catalog.base_price(level)
        safe_tokens = sanitize_token_redemption(
            tokens_redeemed, account.credits, base_price, account.streak_count
        )
        due = amount_due(base_price, safe_tokens)
        if due <= 0:
            # TODO: decide with product whether fully discounted purchases
            # should bypass the gateway and grant the level directly.
            raise Conflict("Amount must be greater than zero", code="ZERO_AMOUNT")

        try:
            order = await self.gateway.create_order(
                amount=to_minor_units(due),
                currency=self.config.currency,
                receipt=f"level_{level}_{int(time.time() * 1000)}",
                notes={
                    "user_id": user_id,
                    "level": level,
                    "tokens_redeemed": str(safe_tokens),
                },
            )
        except GatewayError as e:
            logger.warning(
                "Gateway order creation failed: %s",
                e,
                extra={"user_id": user_id, "level": level},
            )
            raise UpstreamFailure(str(e) or "Failed to create order") from e

        logger.info(
            "Created order %s for level %s (amount=%s, tokens=%s)",
            order.id,
            level,
            order.amount,
            safe_tokens,
            extra={"user_id": user_id},
        )
        return OrderQuote(
            order_id=order.id,
            amount=order.amount,
            currency=order.currency or self.config.currency,
            key_id=self.gateway.key_id,
            name=self.config.merchant_name,
            description=f"Level {level} access",
            tokens_redeemed=safe_tokens,
        )
