"""Subscription item model."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from saaskit.models._base import Base


class SubscriptionItem(Base):
    """A priced line item of a Stripe subscription."""

    __tablename__ = "subscription_item"

    # External subscription ID, matching Subscription.stripe_subscription_id
    subscription_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    stripe_subscription_item_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    stripe_price_id: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
