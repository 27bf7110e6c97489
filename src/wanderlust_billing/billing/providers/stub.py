"""Stub gateway for local development and testing.

Replace with RazorpayGateway for production.
"""

from __future__ import annotations

import uuid
from dataclasses import replace

from wanderlust_billing.billing.providers.base import GatewayError, GatewayOrder, PingResult


class StubGateway:
    """In-memory gateway.

    Orders live in a dict. Tests drive the payment side with pay(), and
    simulate outages with fail_create / fail_fetch.
    """

    gateway_name = "stub"

    def __init__(self, key_id: str = "rzp_test_stub"):
        self.key_id = key_id
        self.fail_create = False
        self.fail_fetch = False
        self._orders: dict[str, GatewayOrder] = {}
        self.created: list[GatewayOrder] = []
        self.fetch_count = 0

    async def create_order(
        self,
        *,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> GatewayOrder:
        if self.fail_create:
            raise GatewayError("Stub gateway refused order", status_code=503)
        if amount <= 0:
            raise GatewayError("Order amount must be at least 100 paise", status_code=400)
        order = GatewayOrder(
            id=f"order_{uuid.uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            receipt=receipt,
            status="created",
            notes=dict(notes),
        )
        self._orders[order.id] = order
        self.created.append(order)
        return order

    async def fetch_order(self, order_id: str) -> GatewayOrder:
        self.fetch_count += 1
        if self.fail_fetch:
            raise GatewayError("Stub gateway unavailable", status_code=503)
        try:
            return self._orders[order_id]
        except KeyError:
            raise GatewayError(f"Order {order_id} not found", status_code=400) from None

    async def ping(self) -> PingResult:
        if self.fail_fetch:
            return PingResult(ok=False, status=503, message="Stub gateway unavailable")
        return PingResult(ok=True, status=200)

    def put_order(self, order: GatewayOrder) -> GatewayOrder:
        """Register an order directly, bypassing create_order validation."""
        self._orders[order.id] = order
        return order

    def pay(self, order_id: str) -> str:
        """Mark an order paid and return a new payment id."""
        self._orders[order_id] = replace(self._orders[order_id], status="paid")
        return f"pay_{uuid.uuid4().hex[:14]}"
