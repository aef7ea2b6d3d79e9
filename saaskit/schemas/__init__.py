# flake8: noqa: F401
"""Schemas for the application."""

from .billing import (
    CheckoutSessionRequest,
    PortalSessionRequest,
    PricingPlan,
    SessionResponse,
    WebhookAck,
)
from .customer import Customer, CustomerCreate
from .invoice import InvoiceCreate
from .stripe_event import (
    StripeCheckoutSession,
    StripeEvent,
    StripeEventType,
    StripeInvoice,
    StripeSubscription,
)
from .subscription import (
    ACTIVE_STATUSES,
    Subscription,
    SubscriptionInfo,
    SubscriptionItemUpsert,
    SubscriptionStatus,
    SubscriptionTier,
    SubscriptionUpsert,
    TERMINAL_STATUSES,
)
from .user import User, UserCreate, UserUpdate
