"""Customer mapping model."""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from saaskit.models._base import Base

if TYPE_CHECKING:
    from saaskit.models.user import User


class Customer(Base):
    """Link between a local user and a Stripe customer.

    One mapping per user, created lazily on first checkout or portal request.
    """

    __tablename__ = "customer"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    stripe_customer_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="customer", lazy="noload")
