"""Pricing policy for level purchases.

Pure functions, no I/O. sanitize_token_redemption is the single source of
truth for how many tokens a purchase may consume; both order creation and
reconciliation call it against their own account snapshot.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Real
from typing import Any

MINOR_UNITS_PER_MAJOR = 100

BASE_DISCOUNT_RATIO = Decimal("0.20")
WEEK_STREAK_DISCOUNT_RATIO = Decimal("0.25")
MONTH_STREAK_DISCOUNT_RATIO = Decimal("0.30")

WEEK_STREAK_DAYS = 7
MONTH_STREAK_DAYS = 30


def max_discount_ratio(streak_count: int) -> Decimal:
    """Largest fraction of the base price payable with tokens."""
    if streak_count >= MONTH_STREAK_DAYS:
        return MONTH_STREAK_DISCOUNT_RATIO
    if streak_count >= WEEK_STREAK_DAYS:
        return WEEK_STREAK_DISCOUNT_RATIO
    return BASE_DISCOUNT_RATIO


def max_usable_tokens(credits: int, base_price: int, streak_count: int) -> int:
    """Tokens redeemable for one purchase: min(balance, policy cap)."""
    cap = (Decimal(base_price) * max_discount_ratio(streak_count)).to_integral_value(
        rounding=ROUND_FLOOR
    )
    return max(0, min(int(credits), int(cap)))


def _as_finite_number(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif not isinstance(value, (Real, Decimal)):
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def sanitize_token_redemption(
    requested_tokens: Any,
    credits: int,
    base_price: int,
    streak_count: int,
) -> int:
    """Clamp a requested redemption to what policy and balance allow.

    Returns 0 for anything that is not a finite non-negative number.
    """
    requested = _as_finite_number(requested_tokens)
    if requested is None or requested < 0:
        return 0
    floored = int(requested.to_integral_value(rounding=ROUND_FLOOR))
    return min(floored, max_usable_tokens(credits, base_price, streak_count))


def round_half_up(value: Decimal | int | float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(Decimal(str(value)).to_integral_value(rounding=ROUND_HALF_UP))


def amount_due(base_price: int, safe_tokens: int) -> int:
    """Major-unit amount left to pay after redeeming tokens, never negative."""
    return max(0, round_half_up(Decimal(base_price) - Decimal(safe_tokens)))


def to_minor_units(amount: int | Decimal) -> int:
    return round_half_up(Decimal(amount) * MINOR_UNITS_PER_MAJOR)


def from_minor_units(amount_minor: int) -> Decimal:
    return Decimal(int(amount_minor)) / MINOR_UNITS_PER_MAJOR


def tokens_from_charge(base_price: int, amount_paid: Decimal) -> int:
    """Tokens implied by what the gateway actually charged."""
    return max(0, round_half_up(Decimal(base_price) - Decimal(amount_paid)))
