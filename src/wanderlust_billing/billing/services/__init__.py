"""Billing services package."""

from wanderlust_billing.billing.services.access_gate import AccessGate, AdminTokenGate
from wanderlust_billing.billing.services.admin_metrics import AdminMetricsService, MetricsReport
from wanderlust_billing.billing.services.ledger_service import (
    AccountSnapshot,
    LedgerService,
    PostResult,
)
from wanderlust_billing.billing.services.order_service import OrderQuote, OrderService
from wanderlust_billing.billing.services.reconciler import (
    Entry,
    PaymentReconciler,
    ReconcileOutcome,
    ReconcileResult,
    WebhookAck,
)

__all__ = [
    # Gates
    "AccessGate",
    "AdminTokenGate",
    # Metrics
    "AdminMetricsService",
    "MetricsReport",
    # Ledger
    "AccountSnapshot",
    "LedgerService",
    "PostResult",
    # Orders
    "OrderQuote",
    "OrderService",
    # Reconciliation
    "Entry",
    "PaymentReconciler",
    "ReconcileOutcome",
    "ReconcileResult",
    "WebhookAck",
]
