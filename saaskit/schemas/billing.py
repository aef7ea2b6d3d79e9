"""Request/response schemas for the billing endpoints."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from saaskit.schemas.subscription import SubscriptionTier


class CheckoutSessionRequest(BaseModel):
    """Request to create a checkout session."""

    plan: str = Field(..., min_length=1, description="Tier name or Stripe price ID")
    user_id: UUID = Field(..., description="ID of the authenticated user")
    success_url: Optional[str] = Field(None, description="URL to redirect on successful payment")
    cancel_url: Optional[str] = Field(None, description="URL to redirect on cancellation")


class PortalSessionRequest(BaseModel):
    """Request to create a billing portal session."""

    user_id: UUID = Field(..., description="ID of the authenticated user")
    return_url: Optional[str] = Field(None, description="URL to return to from the portal")


class SessionResponse(BaseModel):
    """Hosted Stripe page to redirect the user to."""

    url: str = Field(..., description="Redirect URL")


class PricingPlan(BaseModel):
    """Public description of a plan tier."""

    tier: SubscriptionTier
    name: str
    description: str
    price: str
    price_id: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    popular: bool = False


class WebhookAck(BaseModel):
    """Acknowledgment body returned to Stripe."""

    received: bool = True
