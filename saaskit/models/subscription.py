"""Subscription model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from saaskit.models._base import Base


class Subscription(Base):
    """Local mirror of a Stripe subscription.

    Rows are keyed by ``stripe_subscription_id`` and kept in sync by the webhook
    handler. They are never deleted; cancellation is a status transition.
    """

    __tablename__ = "subscription"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Stripe IDs
    stripe_subscription_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    stripe_customer_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    stripe_price_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    stripe_product_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Plan and status
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    tier: Mapped[str] = mapped_column(String(32), nullable=False, default="starter")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Billing period
    current_period_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )

    # Trial
    trial_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    trial_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)

    # Cancellation
    cancel_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)

    subscription_metadata: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, default={})

    # Creation time of the last provider event applied to this row
    last_event_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
