"""Billing error taxonomy.

Every failure a caller can observe maps to exactly one of these classes,
and each class carries the HTTP status the API layer responds with.
"""

from __future__ import annotations


class BillingError(Exception):
    """Base class for billing failures surfaced to callers."""

    status_code: int = 500
    code: str = "BILLING_ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class Unauthorized(BillingError):
    """Missing or invalid caller identity."""

    status_code = 401
    code = "UNAUTHORIZED"


class Forbidden(BillingError):
    """Authenticated, but not entitled to this resource."""

    status_code = 403
    code = "FORBIDDEN"


class InvalidInput(BillingError):
    """Malformed or out-of-range request fields, unknown level."""

    status_code = 400
    code = "INVALID_INPUT"


class Conflict(BillingError):
    """Request conflicts with account state (already owned, zero amount)."""

    status_code = 400
    code = "CONFLICT"


class NotFound(BillingError):
    """Account or profile missing."""

    status_code = 404
    code = "NOT_FOUND"


class UpstreamFailure(BillingError):
    """Payment gateway unreachable or returned an error."""

    status_code = 502
    code = "UPSTREAM_FAILURE"


class InvalidSignature(BillingError):
    """HMAC verification failed."""

    status_code = 400
    code = "INVALID_SIGNATURE"


class PersistenceFailure(BillingError):
    """Local store write failed after funds were confirmed.

    The most severe class: the user may have paid without being credited.
    """

    status_code = 500
    code = "PERSISTENCE_FAILURE"


class ConfigurationError(BillingError):
    """A required setting is not configured."""

    status_code = 500
    code = "CONFIGURATION_ERROR"
