"""Tests for OrderService - gateway order creation for level purchases."""

import pytest

from wanderlust_billing.billing.errors import (
    Conflict,
    InvalidInput,
    NotFound,
    Unauthorized,
    UpstreamFailure,
)
from wanderlust_billing.billing.catalog import EntitlementCatalog
from wanderlust_billing.billing.services import OrderService
from wanderlust_billing.billing.services import order_service as order_service_module
from tests.factories import ALICE, ALICE_TOKEN, BOB_TOKEN

pytestmark = pytest.mark.asyncio


class TestCreateOrder:
    """Order creation happy path and pricing."""

    async def test_happy_path_scenario(self, order_service, gateway, seed_profile):
        """200 tokens, 10-day streak, A2 at 2999 -> 2799 due."""
        await seed_profile(ALICE, credits=200, streak_count=10)

        quote = await order_service.create_order(ALICE_TOKEN, "A2", 500)

        assert quote.amount == 279900
        assert quote.currency == "INR"
        assert quote.key_id == gateway.key_id
        assert quote.name == "Wanderlust German Journeys"
        assert quote.description == "Level A2 access"
        assert quote.tokens_redeemed == 200

        order = gateway.created[0]
        assert order.id == quote.order_id
        assert order.notes == {"user_id": ALICE, "level": "A2", "tokens_redeemed": "200"}
        assert order.receipt.startswith("level_A2_")

    async def test_no_tokens_requested(self, order_service, gateway, seed_profile):
        await seed_profile(ALICE, credits=500)

        quote = await order_service.create_order(ALICE_TOKEN, "A1", 0)

        assert quote.amount == 149900
        assert gateway.created[0].notes["tokens_redeemed"] == "0"

    async def test_garbage_tokens_treated_as_zero(self, order_service, seed_profile):
        await seed_profile(ALICE, credits=500)

        quote = await order_service.create_order(ALICE_TOKEN, "B1", "lots")

        assert quote.tokens_redeemed == 0
        assert quote.amount == 299900

    async def test_nothing_written_locally(self, order_service, seed_profile, ledger):
        await seed_profile(ALICE, credits=200, streak_count=10)

        await order_service.create_order(ALICE_TOKEN, "A2", 200)

        account = await ledger.get_account(ALICE)
        assert account.credits == 200
        assert account.owned_levels == ()


class TestCreateOrderRejections:
    """Every rejection happens before the gateway is called."""

    async def test_missing_token(self, order_service, gateway):
        with pytest.raises(Unauthorized):
            await order_service.create_order(None, "A2", 0)
        assert gateway.created == []

    async def test_invalid_token(self, order_service, gateway, seed_profile):
        await seed_profile(ALICE)
        with pytest.raises(Unauthorized):
            await order_service.create_order("forged", "A2", 0)
        assert gateway.created == []

    @pytest.mark.parametrize("level", ["D1", "", None, 2])
    async def test_invalid_level(self, order_service, gateway, level):
        with pytest.raises(InvalidInput):
            await order_service.create_order(ALICE_TOKEN, level, 0)
        assert gateway.created == []

    async def test_profile_not_found(self, order_service, gateway):
        with pytest.raises(NotFound):
            await order_service.create_order(BOB_TOKEN, "A2", 0)
        assert gateway.created == []

    async def test_already_owned(self, order_service, gateway, seed_profile):
        await seed_profile(ALICE, owned_levels=["A2"])

        with pytest.raises(Conflict) as exc_info:
            await order_service.create_order(ALICE_TOKEN, "A2", 0)

        assert exc_info.value.code == "ALREADY_OWNED"
        assert exc_info.value.status_code == 400
        assert gateway.created == []

    async def test_discount_cap_keeps_amount_positive(
        self, identity, gateway, ledger, billing_config, seed_profile
    ):
        service = OrderService(
            identity=identity,
            gateway=gateway,
            ledger=ledger,
            catalog=EntitlementCatalog({"A1": 1}),
            config=billing_config,
        )
        await seed_profile(ALICE, credits=10)

        quote = await service.create_order(ALICE_TOKEN, "A1", 10)

        # floor(1 * 0.20) == 0 tokens, so the full price is still due
        assert quote.amount == 100
        assert quote.tokens_redeemed == 0

    async def test_zero_amount_rejected(self, order_service, gateway, seed_profile, monkeypatch):
        monkeypatch.setattr(order_service_module, "amount_due", lambda base, tokens: 0)
        await seed_profile(ALICE, credits=200)

        with pytest.raises(Conflict) as exc_info:
            await order_service.create_order(ALICE_TOKEN, "A2", 200)

        assert exc_info.value.code == "ZERO_AMOUNT"
        assert gateway.created == []

    async def test_gateway_failure(self, order_service, gateway, seed_profile):
        await seed_profile(ALICE)
        gateway.fail_create = True

        with pytest.raises(UpstreamFailure) as exc_info:
            await order_service.create_order(ALICE_TOKEN, "A2", 0)

        assert exc_info.value.status_code == 502
