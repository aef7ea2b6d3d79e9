"""Unit tests for the plan catalog."""

import pytest

from saaskit.core.exceptions import InvalidPlanError
from saaskit.platform.billing.plans import get_pricing_plans, resolve_price_id
from saaskit.schemas.subscription import SubscriptionTier

PRICE_IDS = {
    SubscriptionTier.STARTER: "price_starter",
    SubscriptionTier.PRO: "price_pro",
    SubscriptionTier.ENTERPRISE: None,
}


def test_catalog_lists_every_tier_with_its_price():
    """Each tier appears once, with its configured price ID."""
    plans = get_pricing_plans(PRICE_IDS)

    assert [plan.tier for plan in plans] == list(SubscriptionTier)
    assert plans[1].price_id == "price_pro"
    assert plans[1].popular is True
    assert plans[2].price_id is None


def test_catalog_without_configuration():
    """The catalog is still served when billing is not configured."""
    plans = get_pricing_plans()
    assert all(plan.price_id is None for plan in plans)
    assert plans[0].price == "$9"


@pytest.mark.parametrize("plan", ["pro", "PRO", " pro ", "price_pro"])
def test_resolve_price_id_accepts_tier_names_and_price_ids(plan):
    """Tier names are case-insensitive; configured price IDs pass through."""
    assert resolve_price_id(plan, PRICE_IDS) == "price_pro"


@pytest.mark.parametrize("plan", ["platinum", "price_unknown", "enterprise"])
def test_resolve_price_id_rejects_unknown_or_unpriced_plans(plan):
    """Unknown plans and tiers without a price are rejected."""
    with pytest.raises(InvalidPlanError) as exc_info:
        resolve_price_id(plan, PRICE_IDS)
    assert exc_info.value.plan == plan
