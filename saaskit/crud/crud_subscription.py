"""CRUD operations for subscriptions."""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.functions import coalesce

from saaskit.core.datetime_utils import utc_now_naive
from saaskit.crud._base import CRUDBase, dialect_insert
from saaskit.models import Subscription
from saaskit.schemas.subscription import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    SubscriptionStatus,
    SubscriptionUpsert,
)

# Columns never overwritten once a subscription row exists
_INSERT_ONLY_COLUMNS = {"id", "created_at", "user_id", "stripe_subscription_id"}
# Cancellation timestamps keep the first recorded value on replays of a deletion
_FIRST_WRITE_WINS_COLUMNS = ("canceled_at", "ended_at")


class CRUDSubscription(CRUDBase[Subscription, SubscriptionUpsert, SubscriptionUpsert]):
    """CRUD operations for Stripe subscriptions."""

    async def get_by_stripe_subscription(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        """Get a subscription by its Stripe ID.

        Args:
            db: Database session
            stripe_subscription_id: Stripe subscription ID

        Returns:
            Subscription or None
        """
        result = await db.execute(
            select(Subscription).where(
                Subscription.stripe_subscription_id == stripe_subscription_id
            )
        )
        return result.scalar_one_or_none()

    async def get_active_for_user(
        self, db: AsyncSession, *, user_id: UUID
    ) -> Optional[Subscription]:
        """Get the user's trialing or active subscription, most recently created first.

        Args:
            db: Database session
            user_id: Local user ID

        Returns:
            Subscription or None
        """
        result = await db.execute(
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status.in_([status.value for status in ACTIVE_STATUSES]),
            )
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_latest_for_user(
        self, db: AsyncSession, *, user_id: UUID
    ) -> Optional[Subscription]:
        """Get the user's most recently created subscription, whatever its status.

        Args:
            db: Database session
            user_id: Local user ID

        Returns:
            Subscription or None
        """
        result = await db.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def upsert(
        self,
        db: AsyncSession,
        *,
        obj_in: SubscriptionUpsert,
        ignore_stale: bool = True,
        keep_first_cancellation: bool = False,
    ) -> bool:
        """Insert or update a subscription keyed by its Stripe ID in one statement.

        Args:
            db: Database session
            obj_in: The reconciled subscription state
            ignore_stale: Skip the update when the stored row was written by a newer event
            keep_first_cancellation: Keep stored cancellation timestamps if already set

        Returns:
            True if the row was written, False if the update was skipped as stale
        """
        now = utc_now_naive()
        values = obj_in.model_dump()
        values["status"] = obj_in.status.value
        values["tier"] = obj_in.tier.value

        stmt = dialect_insert(db, Subscription).values(
            id=uuid.uuid4(), created_at=now, modified_at=now, **values
        )

        set_ = {
            column: stmt.excluded[column]
            for column in values
            if column not in _INSERT_ONLY_COLUMNS
        }
        set_["modified_at"] = now
        if keep_first_cancellation:
            for column in _FIRST_WRITE_WINS_COLUMNS:
                set_[column] = coalesce(
                    Subscription.__table__.c[column], stmt.excluded[column]
                )

        where = None
        if ignore_stale:
            where = or_(
                Subscription.__table__.c.last_event_at.is_(None),
                stmt.excluded.last_event_at.is_(None),
                Subscription.__table__.c.last_event_at <= stmt.excluded.last_event_at,
            )

        stmt = stmt.on_conflict_do_update(
            index_elements=["stripe_subscription_id"], set_=set_, where=where
        ).returning(Subscription.__table__.c.id)

        result = await db.execute(stmt)
        written = result.scalar_one_or_none() is not None
        await db.commit()
        return written

    async def set_status(
        self,
        db: AsyncSession,
        *,
        stripe_subscription_id: str,
        status: SubscriptionStatus,
        event_at: Optional[datetime] = None,
        ignore_stale: bool = True,
    ) -> bool:
        """Update only the status of an existing subscription.

        Terminal subscriptions are left as they are. With ``ignore_stale``, the
        update is skipped when the stored row was written by a newer event.

        Args:
            db: Database session
            stripe_subscription_id: Stripe subscription ID
            status: New status
            event_at: Creation time of the event carrying the change
            ignore_stale: Skip the update when the stored row is newer than ``event_at``

        Returns:
            True if a row was updated
        """
        stmt = update(Subscription).where(
            Subscription.stripe_subscription_id == stripe_subscription_id,
            Subscription.status.not_in([terminal.value for terminal in TERMINAL_STATUSES]),
        )
        values = {"status": status.value, "modified_at": utc_now_naive()}
        if event_at is not None:
            values["last_event_at"] = event_at
            if ignore_stale:
                stmt = stmt.where(
                    or_(
                        Subscription.last_event_at.is_(None),
                        Subscription.last_event_at <= event_at,
                    )
                )

        result = await db.execute(stmt.values(**values))
        await db.commit()
        return result.rowcount > 0


subscription = CRUDSubscription(Subscription)
