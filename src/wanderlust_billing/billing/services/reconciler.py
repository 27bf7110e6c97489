"""Payment reconciliation - turns a gateway-confirmed payment into credit.

Two entry points converge on one procedure:

- confirm_payment: the client calls back right after paying, with the
  gateway's order/payment signature and its bearer token.
- handle_webhook: the gateway calls back asynchronously, possibly more
  than once, possibly before or after the client, possibly for events we
  do not care about.

Either, both, or repeated deliveries converge to the same end state: the
level granted once, the tokens deducted once, one ledger row. The guard is
the ledger claim in LedgerService.apply_purchase.

The webhook path never raises past signature verification. Every other
failure is acknowledged with a 200 body carrying a reason so the gateway
stops retrying; the ledger claim makes the other path (or a later
delivery) safe to rely on.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from wanderlust_billing.billing.catalog import EntitlementCatalog, idempotency_key
from wanderlust_billing.billing.config import BillingConfig
from wanderlust_billing.billing.errors import (
    ConfigurationError,
    Forbidden,
    InvalidInput,
    NotFound,
    PersistenceFailure,
    Unauthorized,
    UpstreamFailure,
)
from wanderlust_billing.billing.identity import IdentityError, IdentityProvider
from wanderlust_billing.billing.pricing import (
    from_minor_units,
    sanitize_token_redemption,
    tokens_from_charge,
)
from wanderlust_billing.billing.providers.base import GatewayError, GatewayOrder, PaymentGateway
from wanderlust_billing.billing.services.ledger_service import AccountSnapshot, LedgerService
from wanderlust_billing.billing.signatures import (
    require_payment_signature,
    require_webhook_signature,
)
from wanderlust_billing.billing.state_machine import (
    InvalidTransitionError,
    PaymentState,
    PaymentStateMachine,
)

logger = logging.getLogger(__name__)

CAPTURED_STATUS = "captured"
PAID_ORDER_STATUS = "paid"


class Entry(str, Enum):
    """Which path delivered the payment."""

    CONFIRM = "confirm"
    WEBHOOK = "webhook"


class ReconcileOutcome(str, Enum):
    """Result of reconcile()."""

    APPLIED = "applied"  # Delta applied, ledger row written
    DUPLICATE = "duplicate"  # Already reconciled, nothing changed


@dataclass(frozen=True)
class ReconcileResult:
    """Account state after reconciling one payment."""

    outcome: ReconcileOutcome
    state: PaymentState
    user_id: str
    level: str
    order_id: str
    payment_id: str
    credits: int
    owned_levels: tuple[str, ...]
    tokens_consumed: int = 0
    amount_paid: Decimal = Decimal("0")

    @property
    def is_duplicate(self) -> bool:
        return self.outcome == ReconcileOutcome.DUPLICATE

    @property
    def transaction_id(self) -> str:
        """Client-facing transaction reference: the gateway payment id."""
        return self.payment_id


@dataclass(frozen=True)
class WebhookAck:
    """Acknowledgement body for a webhook delivery (always HTTP 200)."""

    ok: bool | None = None
    ignored: bool = False
    duplicate: bool = False
    reason: str | None = None
    status: str | None = None

    @classmethod
    def applied(cls) -> WebhookAck:
        return cls(ok=True)

    @classmethod
    def skipped(cls, reason: str, status: str | None = None) -> WebhookAck:
        return cls(ignored=True, reason=reason, status=status)

    @classmethod
    def repeated(cls) -> WebhookAck:
        return cls(duplicate=True)

    @classmethod
    def failed(cls, reason: str) -> WebhookAck:
        return cls(ok=False, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"received": True}
        if self.duplicate:
            body["duplicate"] = True
            return body
        if self.ignored:
            body["ignored"] = True
        if self.ok is not None:
            body["ok"] = self.ok
        if self.reason:
            body["reason"] = self.reason
        if self.status:
            body["status"] = self.status
        return body


class PaymentReconciler:
    """Dual-path payment reconciliation.

    Shared steps (both entries):
    1. Fetch the authoritative order from the gateway
    2. Read user and level from the order notes
    3. Skip if the ledger already holds this payment
    4. Refuse unless the payment is captured (state machine)
    5. Load a fresh account snapshot
    6. Derive tokens from the amount actually charged, re-sanitized
    7. Grant level, deduct tokens, append ledger row in one transaction
    """

    def __init__(
        self,
        *,
        identity: IdentityProvider | None,
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

    # =========================================================================
    # Entry A - synchronous client confirmation
    # =========================================================================

    async def confirm_payment(
        self,
        auth_token: str | None,
        *,
        order_id: str | None,
        payment_id: str | None,
        signature: str | None,
        level: Any,
    ) -> ReconcileResult:
        """Reconcile a payment the client just completed.

        The authenticated caller is the authoritative user; the order must
        have been created for them.

        Raises:
            Unauthorized: Missing or invalid auth token.
            InvalidInput: Missing fields, unknown level, inconsistent order.
            InvalidSignature: Signature does not match order|payment.
            UpstreamFailure: Order fetch failed (retryable).
            Forbidden: Order belongs to another user.
            NotFound: Caller has no profile.
            PersistenceFailure: Profile/ledger write failed.
        """
        if not auth_token:
            raise Unauthorized("Missing auth token")
        if not (order_id and payment_id and signature and level):
            raise InvalidInput("Missing payment verification fields")
        if level not in self.catalog:
            raise InvalidInput("Invalid level")

        if self.identity is None:
            raise ConfigurationError("Missing environment variable: SUPABASE_URL")
        try:
            user_id = await self.identity.resolve(auth_token)
        except IdentityError as e:
            raise Unauthorized("Invalid auth token") from e

        if not self.config.key_secret:
            raise ConfigurationError("Missing environment variable: RAZORPAY_KEY_SECRET")
        require_payment_signature(order_id, payment_id, signature, self.config.key_secret)

        try:
            order = await self.gateway.fetch_order(order_id)
        except GatewayError as e:
            logger.warning(
                "Order fetch failed during confirmation: %s",
                e,
                extra={"order_id": order_id, "user_id": user_id},
            )
            raise UpstreamFailure(str(e) or "Failed to fetch order") from e

        note_user = order.note("user_id")
        note_level = order.note("level")
        if not note_user or not note_level or note_level not in self.catalog:
            raise InvalidInput("Inconsistent order", code="INCONSISTENT_ORDER")
        if note_user != user_id:
            logger.warning(
                "Confirmation for another user's order rejected",
                extra={"order_id": order_id, "user_id": user_id},
            )
            raise Forbidden("Order does not belong to this user")
        if note_level != level:
            raise InvalidInput("Inconsistent order", code="INCONSISTENT_ORDER")

        return await self.reconcile(
            order,
            payment_id=payment_id,
            user_id=user_id,
            level=level,
            entry=Entry.CONFIRM,
            # order|payment signature verified above
            captured=True,
        )

    # =========================================================================
    # Entry B - asynchronous gateway webhook
    # =========================================================================

    async def handle_webhook(self, raw_body: bytes, signature: str | None) -> WebhookAck:
        """Process one webhook delivery.

        Raises:
            InvalidSignature: Missing or mismatched signature. This is the
                only failure that is not acknowledged with 200.
        """
        if not self.config.webhook_secret:
            logger.error("Webhook received but RAZORPAY_WEBHOOK_SECRET is not configured")
            return WebhookAck.failed("configuration_error")

        require_webhook_signature(raw_body, signature, self.config.webhook_secret)

        try:
            return await self._process_webhook(raw_body)
        except Exception:
            logger.exception("Unexpected error processing webhook")
            return WebhookAck.failed("internal_error")

    async def _process_webhook(self, raw_body: bytes) -> WebhookAck:
        try:
            payload = json.loads(raw_body.decode("utf-8") or "{}")
        except (UnicodeDecodeError, ValueError):
            return self._ignore("invalid_payload")
        if not isinstance(payload, dict):
            return self._ignore("invalid_payload")

        event = payload.get("event")
        payment = _entity(payload, "payment")
        order_entity = _entity(payload, "order")

        payment_id = _string(payment.get("id"))
        order_id = _string(payment.get("order_id")) or _string(order_entity.get("id"))
        payment_status = payment.get("status")

        if not isinstance(event, str) or event not in self.config.capture_events:
            return self._ignore("irrelevant_event", event=event)
        if not payment_id or not order_id:
            return self._ignore("missing_identifiers", event=event)
        if payment_status and payment_status != CAPTURED_STATUS:
            return self._ignore("payment_not_captured", status=str(payment_status))

        try:
            order = await self.gateway.fetch_order(order_id)
        except GatewayError as e:
            logger.warning("Webhook order fetch failed: %s", e, extra={"order_id": order_id})
            return self._ignore("order_fetch_failed")

        user_id = order.note("user_id")
        level = order.note("level")
        if not user_id or not level or level not in self.catalog:
            return self._ignore("missing_notes", order_id=order_id)

        captured = payment_status == CAPTURED_STATUS or order.status == PAID_ORDER_STATUS
        try:
            result = await self.reconcile(
                order,
                payment_id=payment_id,
                user_id=user_id,
                level=level,
                entry=Entry.WEBHOOK,
                captured=captured,
            )
        except InvalidTransitionError:
            return self._ignore("payment_not_captured", status=order.status)
        except NotFound:
            return self._ignore("profile_missing", user_id=user_id)
        except PersistenceFailure:
            return self._ignore("persistence_failed", user_id=user_id)

        if result.is_duplicate:
            return WebhookAck.repeated()
        return WebhookAck.applied()

    def _ignore(self, reason: str, status: str | None = None, **context: Any) -> WebhookAck:
        logger.info("Webhook ignored: %s", reason, extra={"reason": reason, **context})
        return WebhookAck.skipped(reason, status=status)

    # =========================================================================
    # Shared reconciliation
    # =========================================================================

    async def reconcile(
        self,
        order: GatewayOrder,
        *,
        payment_id: str,
        user_id: str,
        level: str,
        entry: Entry,
        captured: bool,
    ) -> ReconcileResult:
        """Apply a verified payment to user_id exactly once.

        captured is the caller's evidence that the gateway took the money;
        without it an unledgered payment is still order_created and cannot
        move to reconciled.

        Raises:
            InvalidTransitionError: Payment not captured and not yet ledgered.
            NotFound: No profile for user_id.
            PersistenceFailure: Profile/ledger write failed; nothing applied.
        """
        key = idempotency_key(level, payment_id)

        existing = await self.ledger.find_entry(user_id, key)
        state = PaymentStateMachine.state_for(paid=captured, ledgered=existing is not None)
        if existing is not None:
            account = await self._require_account(user_id)
            PaymentStateMachine.validate_transition(state, PaymentState.RECONCILED)
            logger.info(
                "Payment %s already reconciled (%s)",
                payment_id,
                entry.value,
                extra={"user_id": user_id, "level": level},
            )
            return self._result(
                ReconcileOutcome.DUPLICATE, account, order, payment_id, level,
                tokens=existing.amount_credits, amount_paid=existing.amount_inr,
            )

        PaymentStateMachine.validate_transition(state, PaymentState.RECONCILED)
        account = await self._require_account(user_id)
        base_price = self.catalog.base_price(level)
        amount_paid = from_minor_units(order.amount)
        tokens_consumed = sanitize_token_redemption(
            tokens_from_charge(base_price, amount_paid),
            account.credits,
            base_price,
            account.streak_count,
        )

        post = await self.ledger.apply_purchase(
            user_id=user_id,
            level=level,
            idempotency_key=key,
            amount_paid=amount_paid,
            tokens_consumed=tokens_consumed,
        )

        if not post.is_new:
            logger.info(
                "Payment %s claimed concurrently (%s)",
                payment_id,
                entry.value,
                extra={"user_id": user_id, "level": level},
            )
            return self._result(
                ReconcileOutcome.DUPLICATE, post.account, order, payment_id, level
            )

        logger.info(
            "Reconciled payment %s via %s: level=%s tokens=%s amount=%s",
            payment_id,
            entry.value,
            level,
            tokens_consumed,
            amount_paid,
            extra={"user_id": user_id, "order_id": order.id},
        )
        return self._result(
            ReconcileOutcome.APPLIED, post.account, order, payment_id, level,
            tokens=tokens_consumed, amount_paid=amount_paid,
        )

    async def _require_account(self, user_id: str) -> AccountSnapshot:
        account = await self.ledger.get_account(user_id)
        if account is None:
            raise NotFound("Profile not found")
        return account

    @staticmethod
    def _result(
        outcome: ReconcileOutcome,
        account: AccountSnapshot,
        order: GatewayOrder,
        payment_id: str,
        level: str,
        *,
        tokens: int = 0,
        amount_paid: Decimal = Decimal("0"),
    ) -> ReconcileResult:
        return ReconcileResult(
            outcome=outcome,
            state=PaymentState.RECONCILED,
            user_id=account.user_id,
            level=level,
            order_id=order.id,
            payment_id=payment_id,
            credits=account.credits,
            owned_levels=account.owned_levels,
            tokens_consumed=tokens,
            amount_paid=Decimal(amount_paid),
        )


def _entity(payload: dict[str, Any], name: str) -> dict[str, Any]:
    """Return payload.payload.<name>.entity, or {} if any level is missing."""
    container = payload.get("payload")
    if not isinstance(container, dict):
        return {}
    wrapper = container.get(name)
    if not isinstance(wrapper, dict):
        return {}
    entity = wrapper.get("entity")
    return entity if isinstance(entity, dict) else {}


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None
