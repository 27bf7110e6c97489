"""API endpoint integration tests.

Drives the FastAPI app end to end over ASGI with the stub gateway and a
static identity provider.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from wanderlust_billing.config import get_settings
from wanderlust_billing.models import LedgerTransaction
from tests.factories import (
    ACCESS_CODE,
    ADMIN_TOKEN,
    ALICE,
    ALICE_TOKEN,
    BOB,
    BOB_TOKEN,
    make_settings,
    sign_payment,
    sign_webhook,
    webhook_body,
)

pytestmark = pytest.mark.asyncio

AUTH = {"Authorization": f"Bearer {ALICE_TOKEN}"}


async def _create_order(client: AsyncClient, level="A2", tokens=500, headers=AUTH):
    return await client.post(
        "/api/razorpay/create-order",
        headers=headers,
        json={"level": level, "tokensRedeemed": tokens},
    )


class TestHealthEndpoints:
    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.json() == {"status": "ready"}

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.json() == {"status": "alive"}


class TestCreateOrderEndpoint:
    async def test_create_order(self, client: AsyncClient, seed_profile, gateway):
        await seed_profile(ALICE, credits=200, streak_count=10)

        response = await _create_order(client)

        assert response.status_code == 200
        data = response.json()
        assert data["orderId"] == gateway.created[0].id
        assert data["amount"] == 279900
        assert data["currency"] == "INR"
        assert data["gatewayKeyId"] == "rzp_test_stub"
        assert data["keyId"] == "rzp_test_stub"
        assert data["name"] == "Wanderlust German Journeys"
        assert data["description"] == "Level A2 access"

    async def test_missing_bearer(self, client: AsyncClient):
        response = await _create_order(client, headers={})
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    async def test_invalid_level(self, client: AsyncClient, seed_profile):
        await seed_profile(ALICE)
        response = await _create_order(client, level="Z9")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid level", "code": "INVALID_INPUT"}

    async def test_already_owned(self, client: AsyncClient, seed_profile, gateway):
        await seed_profile(ALICE, owned_levels=["A2"])
        response = await _create_order(client)
        assert response.status_code == 400
        assert response.json()["code"] == "ALREADY_OWNED"
        assert gateway.created == []

    async def test_profile_not_found(self, client: AsyncClient):
        response = await _create_order(client)
        assert response.status_code == 404

    async def test_gateway_down(self, client: AsyncClient, seed_profile, gateway):
        await seed_profile(ALICE)
        gateway.fail_create = True
        response = await _create_order(client)
        assert response.status_code == 502

    async def test_non_json_body(self, client: AsyncClient):
        response = await client.post(
            "/api/razorpay/create-order",
            headers={**AUTH, "Content-Type": "application/json"},
            content=b"{not json",
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    async def test_missing_gateway_credentials(self, app, client: AsyncClient, seed_profile):
        await seed_profile(ALICE)
        app.dependency_overrides[get_settings] = lambda: make_settings(razorpay_key_secret="")

        response = await _create_order(client)

        assert response.status_code == 500
        assert response.json()["code"] == "CONFIGURATION_ERROR"


class TestVerifyPaymentEndpoint:
    async def _paid_order(self, client, gateway):
        order_id = (await _create_order(client)).json()["orderId"]
        return order_id, gateway.pay(order_id)

    async def test_verify_payment(self, client: AsyncClient, seed_profile, gateway):
        await seed_profile(ALICE, credits=200, streak_count=10)
        order_id, payment_id = await self._paid_order(client, gateway)

        response = await client.post(
            "/api/razorpay/verify-payment",
            headers=AUTH,
            json={
                "orderId": order_id,
                "paymentId": payment_id,
                "signature": sign_payment(order_id, payment_id),
                "level": "A2",
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "creditBalance": 0,
            "ownedEntitlements": ["A2"],
            "credits": 0,
            "ownedLevels": ["A2"],
            "transactionId": payment_id,
            "duplicate": False,
        }

    async def test_bad_signature(self, client: AsyncClient, seed_profile, gateway):
        await seed_profile(ALICE, credits=200, streak_count=10)
        order_id, payment_id = await self._paid_order(client, gateway)

        response = await client.post(
            "/api/razorpay/verify-payment",
            headers=AUTH,
            json={
                "orderId": order_id,
                "paymentId": payment_id,
                "signature": "f" * 64,
                "level": "A2",
            },
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SIGNATURE"

    async def test_missing_fields(self, client: AsyncClient):
        response = await client.post(
            "/api/razorpay/verify-payment", headers=AUTH, json={"orderId": "order_1"}
        )
        assert response.status_code == 400

    async def test_other_users_order(self, client: AsyncClient, seed_profile, gateway):
        await seed_profile(ALICE, credits=200, streak_count=10)
        await seed_profile(BOB)
        order_id, payment_id = await self._paid_order(client, gateway)

        response = await client.post(
            "/api/razorpay/verify-payment",
            headers={"Authorization": f"Bearer {BOB_TOKEN}"},
            json={
                "orderId": order_id,
                "paymentId": payment_id,
                "signature": sign_payment(order_id, payment_id),
                "level": "A2",
            },
        )

        assert response.status_code == 403

    async def test_fetch_failure(self, client: AsyncClient, seed_profile, gateway):
        await seed_profile(ALICE, credits=200, streak_count=10)
        order_id, payment_id = await self._paid_order(client, gateway)
        gateway.fail_fetch = True

        response = await client.post(
            "/api/razorpay/verify-payment",
            headers=AUTH,
            json={
                "orderId": order_id,
                "paymentId": payment_id,
                "signature": sign_payment(order_id, payment_id),
                "level": "A2",
            },
        )

        assert response.status_code == 502


class TestWebhookEndpoint:
    async def test_webhook_then_verify(
        self, client: AsyncClient, seed_profile, gateway, db_session
    ):
        await seed_profile(ALICE, credits=200, streak_count=10)
        order_id = (await _create_order(client)).json()["orderId"]
        payment_id = gateway.pay(order_id)
        body = webhook_body(payment_id=payment_id, order_id=order_id)

        first = await client.post(
            "/api/razorpay/webhook",
            content=body,
            headers={"X-Razorpay-Signature": sign_webhook(body)},
        )
        second = await client.post(
            "/api/razorpay/webhook",
            content=body,
            headers={"X-Razorpay-Signature": sign_webhook(body)},
        )
        confirm = await client.post(
            "/api/razorpay/verify-payment",
            headers=AUTH,
            json={
                "orderId": order_id,
                "paymentId": payment_id,
                "signature": sign_payment(order_id, payment_id),
                "level": "A2",
            },
        )

        assert first.json() == {"received": True, "ok": True}
        assert second.json() == {"received": True, "duplicate": True}
        assert confirm.status_code == 200
        assert confirm.json()["duplicate"] is True
        assert confirm.json()["creditBalance"] == 0

        rows = (await db_session.execute(select(LedgerTransaction))).scalars().all()
        assert len(rows) == 1
        assert Decimal(str(rows[0].amount_inr)) == Decimal("2799")
        assert rows[0].amount_credits == 200

    async def test_missing_signature(self, client: AsyncClient):
        response = await client.post("/api/razorpay/webhook", content=webhook_body())
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_SIGNATURE"

    async def test_invalid_signature(self, client: AsyncClient):
        body = webhook_body(payment_id="pay_1", order_id="order_1")
        response = await client.post(
            "/api/razorpay/webhook",
            content=body,
            headers={"X-Razorpay-Signature": "0" * 64},
        )
        assert response.status_code == 400

    async def test_irrelevant_event(self, client: AsyncClient):
        body = webhook_body("refund.created", payment_id="pay_1", order_id="order_1")
        response = await client.post(
            "/api/razorpay/webhook",
            content=body,
            headers={"X-Razorpay-Signature": sign_webhook(body)},
        )
        assert response.status_code == 200
        assert response.json() == {
            "received": True,
            "ignored": True,
            "reason": "irrelevant_event",
        }

    async def test_failures_acknowledged_with_200(self, client: AsyncClient, gateway):
        gateway.fail_fetch = True
        body = webhook_body(payment_id="pay_1", order_id="order_1")
        response = await client.post(
            "/api/razorpay/webhook",
            content=body,
            headers={"X-Razorpay-Signature": sign_webhook(body)},
        )
        assert response.status_code == 200
        assert response.json()["reason"] == "order_fetch_failed"


class TestAccessEndpoint:
    async def test_correct_code(self, client: AsyncClient):
        response = await client.post("/api/access/verify", json={"code": f" {ACCESS_CODE} "})
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    async def test_wrong_code(self, client: AsyncClient):
        response = await client.post("/api/access/verify", json={"code": "guess"})
        assert response.status_code == 401

    async def test_missing_code(self, client: AsyncClient):
        response = await client.post("/api/access/verify", json={})
        assert response.status_code == 400


class TestAdminMetricsEndpoint:
    async def test_metrics(self, client: AsyncClient, seed_profile, session_factory):
        await seed_profile(ALICE)
        async with session_factory() as session:
            session.add(
                LedgerTransaction(
                    user_id=ALICE,
                    description="LEVEL_B2 | Razorpay pay_9",
                    amount_inr=Decimal("2999"),
                    amount_credits=0,
                )
            )
            await session.commit()

        response = await client.get("/api/admin/metrics", headers={"X-Admin-Token": ADMIN_TOKEN})

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["totalRevenue"] == 2999.0
        assert data["revenueByEntitlement"] == {"B2": 2999.0}
        assert data["revenueByLevel"] == {"B2": 2999.0}
        assert data["newSignups"] == 1
        assert data["activeAccounts"] == 0

    @pytest.mark.parametrize("header", ["X-Sync-Token", "Sync-Token"])
    async def test_alternate_headers(self, client: AsyncClient, header):
        response = await client.get("/api/admin/metrics", headers={header: ADMIN_TOKEN})
        assert response.status_code == 200

    async def test_unauthorized(self, client: AsyncClient):
        response = await client.get("/api/admin/metrics", headers={"X-Admin-Token": "nope"})
        assert response.status_code == 401


class TestDiagnosticsEndpoints:
    async def test_env_reports_presence_only(self, app, client: AsyncClient):
        app.dependency_overrides[get_settings] = lambda: make_settings(app_access_code="")

        response = await client.get("/api/razorpay/env")

        data = response.json()
        assert data["ok"] is True
        assert data["env"]["APP_ACCESS_CODE"] is False
        assert data["env"]["RAZORPAY_KEY_SECRET"] is True
        assert "test_key_secret" not in response.text

    async def test_diagnose(self, client: AsyncClient):
        response = await client.get("/api/razorpay/diagnose")
        assert response.status_code == 200
        assert response.json()["gateway"]["ok"] is True

    async def test_diagnose_without_credentials(self, app, client: AsyncClient):
        app.dependency_overrides[get_settings] = lambda: make_settings(razorpay_key_id="")
        response = await client.get("/api/razorpay/diagnose")
        assert response.status_code == 500
