"""Payment gateway adapters."""

from wanderlust_billing.billing.providers.base import (
    GatewayError,
    GatewayOrder,
    PaymentGateway,
    PingResult,
)
from wanderlust_billing.billing.providers.razorpay import RazorpayGateway
from wanderlust_billing.billing.providers.stub import StubGateway

__all__ = [
    "GatewayError",
    "GatewayOrder",
    "PaymentGateway",
    "PingResult",
    "RazorpayGateway",
    "StubGateway",
]
