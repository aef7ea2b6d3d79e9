"""User model."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from saaskit.models._base import Base

if TYPE_CHECKING:
    from saaskit.models.customer import Customer


class User(Base):
    """User model.

    The identity itself lives with the authentication provider; this row anchors
    billing records to it.
    """

    __tablename__ = "user"

    full_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    email: Mapped[str] = mapped_column(String, unique=True)
    auth0_id: Mapped[Optional[str]] = mapped_column(String, unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    customer: Mapped[Optional["Customer"]] = relationship(
        "Customer", back_populates="user", uselist=False, lazy="noload"
    )
