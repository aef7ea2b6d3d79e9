"""Plan catalog and plan resolution.

Pure functions over the configured price IDs; no database or Stripe calls.
"""

from typing import Dict, List, Optional

from saaskit.core.exceptions import InvalidPlanError
from saaskit.schemas.billing import PricingPlan
from saaskit.schemas.subscription import SubscriptionTier

PRICING_PLANS = [
    {
        "tier": SubscriptionTier.STARTER,
        "name": "Starter",
        "description": "Perfect for individuals and small projects",
        "price": "$9",
        "features": [
            "Up to 5 users",
            "10GB storage",
            "Basic analytics",
            "Email support",
            "API access",
        ],
    },
    {
        "tier": SubscriptionTier.PRO,
        "name": "Pro",
        "description": "For growing teams and businesses",
        "price": "$29",
        "features": [
            "Up to 50 users",
            "100GB storage",
            "Advanced analytics",
            "Priority support",
            "API access",
            "Custom integrations",
            "Team collaboration",
        ],
        "popular": True,
    },
    {
        "tier": SubscriptionTier.ENTERPRISE,
        "name": "Enterprise",
        "description": "Custom solutions for large organizations",
        "price": "$99",
        "features": [
            "Unlimited users",
            "Unlimited storage",
            "Enterprise analytics",
            "24/7 phone support",
            "API access",
            "Custom integrations",
            "Team collaboration",
            "SLA guarantee",
            "Dedicated account manager",
        ],
    },
]


def get_pricing_plans(
    price_ids: Optional[Dict[SubscriptionTier, Optional[str]]] = None,
) -> List[PricingPlan]:
    """Build the public catalog with the configured price of each tier."""
    price_ids = price_ids or {}
    return [
        PricingPlan(**plan, price_id=price_ids.get(plan["tier"])) for plan in PRICING_PLANS
    ]


def resolve_price_id(plan: str, price_ids: Dict[SubscriptionTier, Optional[str]]) -> str:
    """Resolve a tier name or a configured price ID to a price ID.

    Args:
        plan: Tier name (case-insensitive) or Stripe price ID
        price_ids: Configured price ID per tier

    Returns:
        The Stripe price ID to check out

    Raises:
        InvalidPlanError: If the plan is unknown or its tier has no configured price
    """
    try:
        tier = SubscriptionTier(plan.strip().lower())
    except ValueError:
        if plan in {price_id for price_id in price_ids.values() if price_id}:
            return plan
        raise InvalidPlanError(plan)

    price_id = price_ids.get(tier)
    if not price_id:
        raise InvalidPlanError(plan)
    return price_id
