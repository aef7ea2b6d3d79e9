"""Models for the application."""

from ._base import Base
from .customer import Customer
from .invoice import Invoice
from .subscription import Subscription
from .subscription_item import SubscriptionItem
from .user import User

__all__ = [
    "Base",
    "Customer",
    "Invoice",
    "Subscription",
    "SubscriptionItem",
    "User",
]
