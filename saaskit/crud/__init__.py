"""CRUD layer operations."""

from .crud_customer import customer
from .crud_invoice import invoice
from .crud_subscription import subscription
from .crud_subscription_item import subscription_item
from .crud_user import user

__all__ = [
    "customer",
    "invoice",
    "subscription",
    "subscription_item",
    "user",
]
