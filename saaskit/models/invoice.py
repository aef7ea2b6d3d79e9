"""Invoice model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from saaskit.models._base import Base


class Invoice(Base):
    """Append-only record of a paid Stripe invoice."""

    __tablename__ = "invoice"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stripe_invoice_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    stripe_customer_id: Mapped[str] = mapped_column(String, nullable=False)
    subscription_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("subscription.id", ondelete="SET NULL"), nullable=True
    )

    # Amounts in the currency's minor unit
    amount_paid: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_due: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="paid")
