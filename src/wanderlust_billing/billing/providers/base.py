"""Base protocol and types for payment gateway adapters.

All gateway adapters must implement the PaymentGateway protocol.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


class GatewayError(Exception):
    """Gateway unreachable, timed out, or returned an error response."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class GatewayOrder:
    """Authoritative order record held by the gateway."""

    id: str
    amount: int  # minor currency units (paise)
    currency: str
    receipt: str | None = None
    status: str = "created"  # created/attempted/paid
    notes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> GatewayOrder:
        """Build from a gateway order entity (JSON).

        Raises:
            KeyError, TypeError, ValueError: If id or amount is unusable.
        """
        order_id = payload["id"]
        if not isinstance(order_id, str) or not order_id:
            raise ValueError(f"Invalid order id: {order_id!r}")
        notes = payload.get("notes")
        # Razorpay serializes empty notes as [] rather than {}
        if not isinstance(notes, dict):
            notes = {}
        return cls(
            id=order_id,
            amount=int(payload.get("amount") or 0),
            currency=str(payload.get("currency") or ""),
            receipt=payload.get("receipt"),
            status=str(payload.get("status") or "created"),
            notes=dict(notes),
        )

    def note(self, key: str) -> str | None:
        """Return a string note value, or None if absent or not a string."""
        value = self.notes.get(key)
        return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class PingResult:
    """Result of a gateway reachability probe."""

    ok: bool
    status: int | None = None
    message: str = ""


class PaymentGateway(Protocol):
    """Protocol for payment gateway adapters.

    The order and reconciliation services use these adapters without
    knowing gateway-specific details.
    """

    gateway_name: str
    key_id: str

    async def create_order(
        self,
        *,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> GatewayOrder:
        """Create an order for amount (minor units) carrying notes.

        Raises:
            GatewayError: If the gateway rejects the order or is unreachable.
        """
        ...

    async def fetch_order(self, order_id: str) -> GatewayOrder:
        """Fetch the authoritative order record.

        Raises:
            GatewayError: If the fetch fails or times out.
        """
        ...

    async def ping(self) -> PingResult:
        """Probe gateway reachability and credentials."""
        ...
