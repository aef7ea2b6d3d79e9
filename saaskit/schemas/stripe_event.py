"""Typed views of the Stripe webhook payloads we reconcile.

Only the fields the sync handler reads are declared; everything else in the
payload is ignored. Expandable references (``customer``, ``product``,
``subscription``) arrive either as an ID string or as the expanded object.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ExpandableRef = Union[str, Dict[str, Any], None]


def ref_id(value: ExpandableRef) -> Optional[str]:
    """Return the ID of an expandable Stripe reference."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


class StripeEventType(str, Enum):
    """Event types the sync handler acts on. Anything else is acknowledged and ignored."""

    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    SUBSCRIPTION_PAUSED = "customer.subscription.paused"
    SUBSCRIPTION_RESUMED = "customer.subscription.resumed"
    INVOICE_PAID = "invoice.paid"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


class _StripeObject(BaseModel):
    model_config = ConfigDict(extra="ignore")


class StripePrice(_StripeObject):
    """Price attached to a subscription item."""

    id: str
    product: ExpandableRef = None

    @property
    def product_id(self) -> Optional[str]:
        """The product ID, expanded or not."""
        return ref_id(self.product)


class StripeSubscriptionItem(_StripeObject):
    """Subscription line item."""

    id: str
    price: StripePrice
    quantity: Optional[int] = None
    # Newer API versions report the billing period per item
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None


class StripeSubscriptionItems(_StripeObject):
    """List wrapper around subscription items."""

    data: List[StripeSubscriptionItem] = Field(default_factory=list)


class StripeSubscription(_StripeObject):
    """Subscription object carried by customer.subscription.* events."""

    id: str
    customer: ExpandableRef
    status: str
    items: StripeSubscriptionItems = Field(default_factory=StripeSubscriptionItems)
    metadata: Dict[str, str] = Field(default_factory=dict)
    created: Optional[int] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    trial_start: Optional[int] = None
    trial_end: Optional[int] = None
    cancel_at: Optional[int] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[int] = None
    ended_at: Optional[int] = None

    @property
    def customer_id(self) -> Optional[str]:
        """The customer ID, expanded or not."""
        return ref_id(self.customer)

    @property
    def first_item(self) -> Optional[StripeSubscriptionItem]:
        """The primary line item, which determines price and tier."""
        return self.items.data[0] if self.items.data else None

    @property
    def period_start(self) -> Optional[int]:
        """Period start from the subscription, falling back to its first item."""
        if self.current_period_start is not None:
            return self.current_period_start
        return self.first_item.current_period_start if self.first_item else None

    @property
    def period_end(self) -> Optional[int]:
        """Period end from the subscription, falling back to its first item."""
        if self.current_period_end is not None:
            return self.current_period_end
        return self.first_item.current_period_end if self.first_item else None


class StripeInvoice(_StripeObject):
    """Invoice object carried by invoice.* events."""

    id: str
    customer: ExpandableRef = None
    subscription: ExpandableRef = None
    parent: Optional[Dict[str, Any]] = None
    amount_paid: int = 0
    amount_due: int = 0
    currency: str = "usd"
    status: Optional[str] = None
    attempt_count: Optional[int] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def customer_id(self) -> Optional[str]:
        """The customer ID, expanded or not."""
        return ref_id(self.customer)

    @property
    def subscription_id(self) -> Optional[str]:
        """The subscription this invoice bills, if any.

        Newer API versions moved the reference under
        ``parent.subscription_details.subscription``.
        """
        if self.subscription:
            return ref_id(self.subscription)
        details = (self.parent or {}).get("subscription_details") or {}
        return ref_id(details.get("subscription"))


class StripeCheckoutSession(_StripeObject):
    """Checkout session object carried by checkout.session.completed."""

    id: str
    customer: ExpandableRef = None
    subscription: ExpandableRef = None
    client_reference_id: Optional[str] = None
    mode: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def customer_id(self) -> Optional[str]:
        """The customer ID, expanded or not."""
        return ref_id(self.customer)


class StripeEventData(_StripeObject):
    """The ``data`` envelope of an event."""

    object: Dict[str, Any]
    previous_attributes: Optional[Dict[str, Any]] = None


class StripeEvent(_StripeObject):
    """A verified Stripe event."""

    id: str
    type: str
    created: Optional[int] = None
    livemode: bool = False
    data: StripeEventData

    @property
    def event_type(self) -> Optional[StripeEventType]:
        """The handled event type, or None for types we ignore."""
        try:
            return StripeEventType(self.type)
        except ValueError:
            return None
