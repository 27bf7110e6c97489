"""HMAC-SHA256 signature verification for gateway callbacks.

Two modes share the primitive:
- Payment confirmation: message is "order_id|payment_id", keyed with the
  gateway key secret. Proves the order/payment pairing only, never amounts.
- Webhook: message is the raw request body, byte for byte, keyed with the
  webhook secret. Never verify against re-serialized JSON.

All comparisons are constant time and never raise on malformed input.
"""

from __future__ import annotations

import hashlib
import hmac

from wanderlust_billing.billing.errors import InvalidSignature


def _hex_hmac(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _constant_time_equal(expected: str, provided: str | None) -> bool:
    if not provided or not isinstance(provided, str):
        return False
    try:
        provided_bytes = provided.encode("ascii")
    except UnicodeEncodeError:
        return False
    # compare_digest is constant time for equal lengths and returns False
    # (without raising) when lengths differ.
    return hmac.compare_digest(expected.encode("ascii"), provided_bytes)


def payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Signature the gateway hands the client after a successful payment."""
    return _hex_hmac(secret, f"{order_id}|{payment_id}".encode("utf-8"))


def webhook_signature(raw_body: bytes, secret: str) -> str:
    """Signature the gateway sends in the webhook signature header."""
    return _hex_hmac(secret, raw_body)


def verify_payment_signature(
    order_id: str, payment_id: str, signature: str | None, secret: str
) -> bool:
    return _constant_time_equal(payment_signature(order_id, payment_id, secret), signature)


def verify_webhook_signature(raw_body: bytes, signature: str | None, secret: str) -> bool:
    return _constant_time_equal(webhook_signature(raw_body, secret), signature)


def require_payment_signature(
    order_id: str, payment_id: str, signature: str | None, secret: str
) -> None:
    """Raise InvalidSignature unless the confirmation signature matches."""
    if not verify_payment_signature(order_id, payment_id, signature, secret):
        raise InvalidSignature("Invalid payment signature")


def require_webhook_signature(raw_body: bytes, signature: str | None, secret: str) -> None:
    """Raise InvalidSignature unless the webhook signature matches."""
    if not signature:
        raise InvalidSignature("Missing webhook signature", code="MISSING_SIGNATURE")
    if not verify_webhook_signature(raw_body, signature, secret):
        raise InvalidSignature("Invalid webhook signature")
