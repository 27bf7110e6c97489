"""User profile model: the billing-relevant columns of an account."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from wanderlust_billing.models.base import Base, TimestampMixin


class Profile(Base, TimestampMixin):
    """Learner account.

    credits is redeemable as a capped discount on level purchases;
    owned_levels only ever grows.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    owned_levels: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    last_active: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint("credits >= 0", name="profiles_credits_non_negative"),
        CheckConstraint("streak_count >= 0", name="profiles_streak_non_negative"),
    )
