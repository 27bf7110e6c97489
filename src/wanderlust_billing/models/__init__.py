"""ORM models."""

from wanderlust_billing.models.base import Base, TimestampMixin
from wanderlust_billing.models.profile import Profile
from wanderlust_billing.models.transaction import LedgerTransaction

__all__ = ["Base", "TimestampMixin", "Profile", "LedgerTransaction"]
