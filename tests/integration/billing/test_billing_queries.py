"""Integration tests for the billing read paths."""

import pytest

from saaskit import crud, schemas
from saaskit.platform.billing import billing_service
from saaskit.schemas.subscription import SubscriptionStatus, SubscriptionTier


async def _store(db_session, user, stripe_subscription_id, status, tier=SubscriptionTier.PRO):
    await crud.subscription.upsert(
        db_session,
        obj_in=schemas.SubscriptionUpsert(
            user_id=user.id,
            stripe_subscription_id=stripe_subscription_id,
            stripe_customer_id="cus_123",
            status=status,
            tier=tier,
        ),
    )


@pytest.mark.asyncio
async def test_subscription_info_for_active_subscriber(db_session, db_user):
    """Active subscriptions are summarized for the dashboard."""
    await crud.customer.create_if_absent(
        db_session,
        obj_in=schemas.CustomerCreate(user_id=db_user.id, stripe_customer_id="cus_123"),
    )
    await _store(db_session, db_user, "sub_old", SubscriptionStatus.CANCELED)
    await _store(db_session, db_user, "sub_new", SubscriptionStatus.TRIALING)

    info = await billing_service.get_subscription_info(db_session, db_user.id)

    assert info.has_active_subscription is True
    assert info.status == SubscriptionStatus.TRIALING
    assert info.tier == SubscriptionTier.PRO
    assert info.has_customer is True


@pytest.mark.asyncio
async def test_subscription_info_for_lapsed_subscriber(db_session, db_user):
    """A lapsed subscription is reported without access."""
    await _store(db_session, db_user, "sub_old", SubscriptionStatus.PAST_DUE)

    info = await billing_service.get_subscription_info(db_session, db_user.id)

    assert info.has_active_subscription is False
    assert info.status == SubscriptionStatus.PAST_DUE


@pytest.mark.asyncio
async def test_access_check_by_tier(db_session, db_user):
    """Tier gates only pass for active subscriptions on allowed tiers."""
    await _store(db_session, db_user, "sub_1", SubscriptionStatus.ACTIVE, SubscriptionTier.STARTER)

    assert await billing_service.check_subscription_access(db_session, db_user.id)
    assert await billing_service.check_subscription_access(
        db_session, db_user.id, [SubscriptionTier.STARTER]
    )
    assert not await billing_service.check_subscription_access(
        db_session, db_user.id, [SubscriptionTier.PRO]
    )


@pytest.mark.asyncio
async def test_customer_mapping_is_created_once(db_session, db_user):
    """A second mapping for the same user is ignored."""
    first = await crud.customer.create_if_absent(
        db_session,
        obj_in=schemas.CustomerCreate(user_id=db_user.id, stripe_customer_id="cus_a"),
    )
    second = await crud.customer.create_if_absent(
        db_session,
        obj_in=schemas.CustomerCreate(user_id=db_user.id, stripe_customer_id="cus_b"),
    )

    assert first.stripe_customer_id == "cus_a"
    assert second.stripe_customer_id == "cus_a"
