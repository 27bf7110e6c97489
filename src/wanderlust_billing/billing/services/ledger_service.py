"""Account and purchase ledger persistence.

Provides idempotent, transactional application of a purchase with:
- One database transaction covering the profile update and the ledger row
- Idempotency via (user_id, description) uniqueness
- Append-only ledger (no updates/deletes)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wanderlust_billing.billing.errors import NotFound, PersistenceFailure
from wanderlust_billing.models import LedgerTransaction, Profile
from wanderlust_billing.models.base import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountSnapshot:
    """Billing view of a profile at one point in time."""

    user_id: str
    credits: int
    streak_count: int
    owned_levels: tuple[str, ...]

    @classmethod
    def from_profile(cls, profile: Profile) -> AccountSnapshot:
        owned = profile.owned_levels if isinstance(profile.owned_levels, list) else []
        return cls(
            user_id=profile.id,
            credits=max(0, int(profile.credits or 0)),
            streak_count=max(0, int(profile.streak_count or 0)),
            owned_levels=tuple(owned),
        )

    def owns(self, level: str) -> bool:
        return level in self.owned_levels


@dataclass(frozen=True)
class PostResult:
    """Result of applying a purchase.

    IMPORTANT: Always check `is_new`. If `is_new=False` the payment was
    already ledgered (possibly by a concurrent request) and nothing changed.
    """

    transaction_id: str
    is_new: bool
    account: AccountSnapshot


class LedgerService:
    """Reads accounts and applies purchases exactly once.

    Notes:
    - transactions is append-only.
    - description is unique per user_id; it carries the idempotency key.
    - credits never go below zero (also enforced by a check constraint).
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_account(self, user_id: str) -> AccountSnapshot | None:
        profile = await self.db.get(Profile, user_id, populate_existing=True)
        if profile is None:
            return None
        return AccountSnapshot.from_profile(profile)

    async def find_entry(self, user_id: str, idempotency_key: str) -> LedgerTransaction | None:
        """Return the ledger row for this payment, if already reconciled."""
        result = await self.db.execute(
            select(LedgerTransaction).where(
                LedgerTransaction.user_id == user_id,
                LedgerTransaction.description == idempotency_key,
            )
        )
        return result.scalar_one_or_none()

    async def apply_purchase(
        self,
        *,
        user_id: str,
        level: str,
        idempotency_key: str,
        amount_paid: Decimal,
        tokens_consumed: int,
    ) -> PostResult:
        """Grant level, deduct tokens and append the ledger row atomically.

        The profile update and the ledger insert commit together or not at
        all. A unique violation on the ledger row means another request
        already claimed this payment; the transaction is rolled back and the
        existing row is returned with is_new=False.

        Raises:
            NotFound: If the profile disappeared.
            PersistenceFailure: If the store rejects the write.
        """
        if tokens_consumed < 0:
            raise ValueError("tokens_consumed must not be negative")

        try:
            profile = await self.db.get(
                Profile, user_id, with_for_update=True, populate_existing=True
            )
            if profile is None:
                raise NotFound("Profile not found")

            owned = list(profile.owned_levels or [])
            if level not in owned:
                owned.append(level)
            profile.owned_levels = owned
            profile.credits = max(0, int(profile.credits or 0) - tokens_consumed)
            profile.last_active = utcnow()

            entry = LedgerTransaction(
                user_id=user_id,
                description=idempotency_key,
                amount_inr=amount_paid,
                amount_credits=tokens_consumed,
            )
            self.db.add(entry)
            await self.db.flush()
            transaction_id = entry.id
            snapshot = AccountSnapshot.from_profile(profile)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.find_entry(user_id, idempotency_key)
            if existing is None:
                logger.exception(
                    "Integrity error applying purchase without an existing ledger row",
                    extra={"user_id": user_id, "idempotency_key": idempotency_key},
                )
                raise PersistenceFailure("Failed to record transaction")
            account = await self.get_account(user_id)
            if account is None:
                raise NotFound("Profile not found")
            return PostResult(transaction_id=existing.id, is_new=False, account=account)
        except NotFound:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(
                "Failed to apply purchase",
                extra={"user_id": user_id, "idempotency_key": idempotency_key},
            )
            raise PersistenceFailure("Failed to update profile") from e

        return PostResult(transaction_id=transaction_id, is_new=True, account=snapshot)
