"""Subscription schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubscriptionTier(str, Enum):
    """Plan tiers, each mapped to one Stripe price."""

    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    """Lifecycle status of a Stripe subscription."""

    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    PAUSED = "paused"


# Statuses that grant access to paid features
ACTIVE_STATUSES = (SubscriptionStatus.TRIALING, SubscriptionStatus.ACTIVE)
# Statuses Stripe never moves a subscription out of
TERMINAL_STATUSES = (SubscriptionStatus.CANCELED, SubscriptionStatus.INCOMPLETE_EXPIRED)


class SubscriptionUpsert(BaseModel):
    """Full set of fields written when reconciling a subscription from Stripe."""

    user_id: UUID
    stripe_subscription_id: str
    stripe_customer_id: str
    status: SubscriptionStatus
    tier: SubscriptionTier = SubscriptionTier.STARTER
    stripe_price_id: Optional[str] = None
    stripe_product_id: Optional[str] = None
    quantity: int = 1
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    cancel_at: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    subscription_metadata: Dict[str, Any] = Field(default_factory=dict)
    last_event_at: Optional[datetime] = None


class Subscription(BaseModel):
    """Subscription as stored."""

    model_config = {"from_attributes": True}

    id: UUID
    user_id: UUID
    stripe_subscription_id: str
    stripe_customer_id: str
    status: SubscriptionStatus
    tier: SubscriptionTier
    stripe_price_id: Optional[str] = None
    stripe_product_id: Optional[str] = None
    quantity: int = 1
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    cancel_at: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    created_at: datetime
    modified_at: datetime


class SubscriptionItemUpsert(BaseModel):
    """Line item written alongside its subscription."""

    subscription_id: str
    stripe_subscription_item_id: str
    stripe_price_id: str
    quantity: int = 1


class SubscriptionInfo(BaseModel):
    """Subscription summary for the dashboard."""

    has_active_subscription: bool = Field(
        False, description="Whether the user has a trialing or active subscription"
    )
    tier: Optional[SubscriptionTier] = Field(None, description="Current plan tier")
    status: Optional[SubscriptionStatus] = Field(None, description="Subscription status")
    current_period_start: Optional[datetime] = Field(
        None, description="Current billing period start"
    )
    current_period_end: Optional[datetime] = Field(None, description="Current billing period end")
    trial_end: Optional[datetime] = Field(None, description="Trial end date")
    cancel_at_period_end: bool = Field(
        False, description="Whether subscription will cancel at period end"
    )
    has_customer: bool = Field(
        False, description="Whether the billing portal is available for this user"
    )
