"""Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Error response schema."""

    error: str
    code: str


# ============================================================================
# Order schemas
# ============================================================================


class CreateOrderRequest(CamelModel):
    """Body for creating a level purchase order.

    Values are passed through untyped; the order service owns validation
    so that a bad level or token count yields a domain error, not a 422.
    """

    level: Any = None
    tokens_redeemed: Any = 0


class CreateOrderResponse(CamelModel):
    """Checkout parameters for the client-side gateway widget."""

    order_id: str
    amount: int
    currency: str
    gateway_key_id: str
    key_id: str
    name: str
    description: str


# ============================================================================
# Payment confirmation schemas
# ============================================================================


class VerifyPaymentRequest(CamelModel):
    order_id: str | None = None
    payment_id: str | None = None
    signature: str | None = None
    level: Any = None


class VerifyPaymentResponse(CamelModel):
    """Account state after a confirmed payment."""

    success: bool = True
    credit_balance: int
    owned_entitlements: list[str]
    credits: int
    owned_levels: list[str]
    transaction_id: str
    duplicate: bool = False


# ============================================================================
# Access and admin schemas
# ============================================================================


class AccessVerifyRequest(BaseModel):
    code: Any = None


class OkResponse(BaseModel):
    ok: bool = True


class MetricsResponse(CamelModel):
    """Admin dashboard aggregates."""

    ok: bool = True
    total_revenue: float
    active_accounts: int
    active_students: int
    new_signups: int
    revenue_by_entitlement: dict[str, float] = Field(default_factory=dict)
    revenue_by_level: dict[str, float] = Field(default_factory=dict)


# ============================================================================
# Diagnostics schemas
# ============================================================================


class EnvResponse(BaseModel):
    ok: bool = True
    env: dict[str, bool]
    ts: datetime


class GatewayProbe(BaseModel):
    ok: bool
    status: int | None = None
    message: str | None = None


class DiagnoseResponse(BaseModel):
    ok: bool
    gateway: GatewayProbe
