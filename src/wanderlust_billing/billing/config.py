"""Billing configuration objects.

Explicit configuration for the billing services. Services never read the
environment; the API layer builds these from Settings.

Rules:
    1. No env vars here. Configuration is explicit.
    2. Secrets default to empty; the service that needs one refuses to run
       without it.
    3. Immutable after creation (frozen dataclasses).
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_CAPTURE_EVENTS = frozenset({"payment.captured", "order.paid"})


@dataclass(frozen=True)
class BillingConfig:
    """
    Billing behavior configuration.

    Attributes:
        key_secret: Gateway key secret; signs payment confirmations.
        webhook_secret: Gateway webhook secret; signs webhook bodies.
        currency: ISO currency code for orders. Default "INR".
        merchant_name: Display name handed to the checkout widget.
        capture_events: Webhook event types that mean "money captured".
    """

    key_secret: str = ""
    webhook_secret: str = ""
    currency: str = "INR"
    merchant_name: str = "Wanderlust German Journeys"
    capture_events: frozenset[str] = field(default=DEFAULT_CAPTURE_EVENTS)

    def __post_init__(self) -> None:
        """Validate configuration."""
        if len(self.currency) != 3:
            raise ValueError("currency must be a 3-letter ISO code")
