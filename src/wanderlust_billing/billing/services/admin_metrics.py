"""Read-only revenue and engagement metrics for the admin dashboard."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wanderlust_billing.billing.catalog import parse_level_from_key
from wanderlust_billing.billing.errors import BillingError
from wanderlust_billing.models import LedgerTransaction, Profile

logger = logging.getLogger(__name__)

ACTIVITY_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class MetricsReport:
    """Aggregates over the ledger and profiles."""

    total_revenue: Decimal
    active_accounts: int
    new_signups: int
    revenue_by_level: dict[str, Decimal] = field(default_factory=dict)


class AdminMetricsService:
    """Aggregates ledger and profile data. Never writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def collect(self, *, now: datetime | None = None) -> MetricsReport:
        """Collect all dashboard metrics.

        Raises:
            BillingError: If any aggregation query fails.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - ACTIVITY_WINDOW
        try:
            rows = (
                await self.db.execute(
                    select(LedgerTransaction.description, LedgerTransaction.amount_inr)
                )
            ).all()
            new_signups = await self.db.scalar(
                select(func.count()).select_from(Profile).where(Profile.created_at >= cutoff)
            )
            active_accounts = await self.db.scalar(
                select(func.count()).select_from(Profile).where(Profile.last_active >= cutoff)
            )
        except SQLAlchemyError as e:
            logger.exception("Admin metrics aggregation failed")
            raise BillingError("Aggregation failed", code="AGGREGATION_FAILED") from e

        total = Decimal("0")
        by_level: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        for description, amount in rows:
            value = Decimal(str(amount or 0))
            total += value
            by_level[parse_level_from_key(description)] += value

        return MetricsReport(
            total_revenue=total,
            active_accounts=int(active_accounts or 0),
            new_signups=int(new_signups or 0),
            revenue_by_level=dict(by_level),
        )
