"""Level catalog and the ledger key encoding shared with admin metrics."""

from __future__ import annotations

import re
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Level(str, Enum):
    """Purchasable course levels."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"


# Base prices in major currency units (INR).
PRICE_BY_LEVEL: Mapping[str, int] = MappingProxyType({
    Level.A1.value: 1499,
    Level.A2.value: 2999,
    Level.B1.value: 2999,
    Level.B2.value: 2999,
    Level.C1.value: 2999,
    Level.C2.value: 2999,
})

UNKNOWN_LEVEL = "Unknown"

_LEVEL_IN_KEY = re.compile(r"LEVEL[_ ]?([A-C][12]?)", re.IGNORECASE)


class EntitlementCatalog:
    """Immutable level -> base price mapping, built once at startup."""

    def __init__(self, prices: Mapping[str, int] | None = None):
        prices = dict(PRICE_BY_LEVEL if prices is None else prices)
        for level, price in prices.items():
            if price <= 0:
                raise ValueError(f"Base price for {level} must be positive")
        self._prices: Mapping[str, int] = MappingProxyType(prices)

    def __contains__(self, level: object) -> bool:
        return isinstance(level, str) and level in self._prices

    def __iter__(self):
        return iter(self._prices)

    def base_price(self, level: str) -> int:
        """Return the base price for a level.

        Raises:
            KeyError: If the level is not in the catalog.
        """
        return self._prices[level]

    def levels(self) -> list[str]:
        return list(self._prices)


def idempotency_key(level: str, payment_id: str) -> str:
    """Ledger description that identifies one reconciled payment.

    Admin metrics parses the level back out of this string with
    parse_level_from_key; keep the two in sync.
    """
    return f"LEVEL_{level} | Razorpay {payment_id}"


def parse_level_from_key(description: str | None) -> str:
    """Extract the level from a ledger description, or UNKNOWN_LEVEL."""
    if not description:
        return UNKNOWN_LEVEL
    match = _LEVEL_IN_KEY.search(description)
    return match.group(1).upper() if match else UNKNOWN_LEVEL
