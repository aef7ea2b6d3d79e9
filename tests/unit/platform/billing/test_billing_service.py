"""Unit tests for the billing service."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from saaskit.core.exceptions import InvalidPlanError, InvalidStateError, NotFoundException
from saaskit.platform.billing.billing_service import BillingService
from saaskit.schemas.subscription import SubscriptionTier
from tests.fixtures.stripe_events import PRO_PRICE


@pytest.fixture
def mock_crud():
    """Patch the CRUD layer used by the service."""
    with patch("saaskit.platform.billing.billing_service.crud") as crud:
        crud.customer.get_by_user = AsyncMock(return_value=None)
        crud.customer.create_if_absent = AsyncMock(
            return_value=SimpleNamespace(stripe_customer_id="cus_new")
        )
        crud.subscription.get_active_for_user = AsyncMock(return_value=None)
        crud.subscription.get_latest_for_user = AsyncMock(return_value=None)
        yield crud


@pytest.fixture
def service():
    """A fresh billing service."""
    return BillingService()


@pytest.mark.asyncio
async def test_start_checkout_creates_customer_and_session(
    service, mock_crud, mock_db, mock_user, stripe_client
):
    """First checkout creates the customer, then a session with our metadata."""
    stripe_client.create_customer = AsyncMock(return_value=MagicMock(id="cus_new"))
    stripe_client.create_checkout_session = AsyncMock(
        return_value=MagicMock(id="cs_1", url="https://checkout.stripe.com/cs_1")
    )

    url = await service.start_checkout(mock_db, mock_user, "pro", stripe_client)

    assert url == "https://checkout.stripe.com/cs_1"
    stripe_client.create_customer.assert_awaited_once()
    assert stripe_client.create_customer.call_args.kwargs["metadata"] == {
        "user_id": str(mock_user.id)
    }
    kwargs = stripe_client.create_checkout_session.call_args.kwargs
    assert kwargs["customer_id"] == "cus_new"
    assert kwargs["price_id"] == PRO_PRICE
    assert kwargs["metadata"] == {"user_id": str(mock_user.id)}
    assert kwargs["success_url"].endswith("/dashboard?success=true")
    assert kwargs["cancel_url"].endswith("/pricing?canceled=true")


@pytest.mark.asyncio
async def test_start_checkout_reuses_existing_customer(
    service, mock_crud, mock_db, mock_user, stripe_client
):
    """A mapped user is not created again in Stripe."""
    mock_crud.customer.get_by_user.return_value = SimpleNamespace(stripe_customer_id="cus_old")
    stripe_client.create_customer = AsyncMock()
    stripe_client.create_checkout_session = AsyncMock(return_value=MagicMock(url="https://x"))

    await service.start_checkout(
        mock_db, mock_user, PRO_PRICE, stripe_client, success_url="https://app/ok"
    )

    stripe_client.create_customer.assert_not_awaited()
    kwargs = stripe_client.create_checkout_session.call_args.kwargs
    assert kwargs["customer_id"] == "cus_old"
    assert kwargs["success_url"] == "https://app/ok"


@pytest.mark.asyncio
async def test_start_checkout_rejects_unknown_plan(
    service, mock_crud, mock_db, mock_user, stripe_client
):
    """Unknown plans fail before any Stripe call."""
    stripe_client.create_customer = AsyncMock()

    with pytest.raises(InvalidPlanError):
        await service.start_checkout(mock_db, mock_user, "platinum", stripe_client)

    stripe_client.create_customer.assert_not_awaited()


@pytest.mark.asyncio
async def test_start_checkout_rejects_active_subscriber(
    service, mock_crud, mock_db, mock_user, stripe_client
):
    """Users with an active subscription manage it in the portal instead."""
    mock_crud.subscription.get_active_for_user.return_value = SimpleNamespace(tier="pro")

    with pytest.raises(InvalidStateError):
        await service.start_checkout(mock_db, mock_user, "pro", stripe_client)


@pytest.mark.asyncio
async def test_portal_session_requires_customer(
    service, mock_crud, mock_db, mock_user, stripe_client
):
    """Users who never checked out have no portal."""
    with pytest.raises(NotFoundException):
        await service.create_portal_session(mock_db, mock_user, stripe_client)


@pytest.mark.asyncio
async def test_portal_session_defaults_return_url(
    service, mock_crud, mock_db, mock_user, stripe_client
):
    """The portal returns to the dashboard unless told otherwise."""
    mock_crud.customer.get_by_user.return_value = SimpleNamespace(stripe_customer_id="cus_1")
    stripe_client.create_portal_session = AsyncMock(return_value=MagicMock(url="https://portal"))

    url = await service.create_portal_session(mock_db, mock_user, stripe_client)

    assert url == "https://portal"
    stripe_client.create_portal_session.assert_awaited_once()
    kwargs = stripe_client.create_portal_session.call_args.kwargs
    assert kwargs["customer_id"] == "cus_1"
    assert kwargs["return_url"].endswith("/dashboard")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "tier, allowed, expected",
    [
        ("pro", (), True),
        ("pro", (SubscriptionTier.PRO, SubscriptionTier.ENTERPRISE), True),
        ("starter", (SubscriptionTier.PRO,), False),
    ],
)
async def test_check_subscription_access(
    service, mock_crud, mock_db, mock_user, tier, allowed, expected
):
    """Access requires an active subscription on one of the allowed tiers."""
    mock_crud.subscription.get_active_for_user.return_value = SimpleNamespace(tier=tier)

    assert await service.check_subscription_access(mock_db, mock_user.id, allowed) is expected


@pytest.mark.asyncio
async def test_check_subscription_access_without_subscription(
    service, mock_crud, mock_db, mock_user
):
    """No active subscription means no access."""
    assert await service.check_subscription_access(mock_db, mock_user.id) is False


@pytest.mark.asyncio
async def test_subscription_info_without_subscription(service, mock_crud, mock_db, mock_user):
    """Users without any subscription get an empty summary."""
    info = await service.get_subscription_info(mock_db, mock_user.id)

    assert info.has_active_subscription is False
    assert info.tier is None
    assert info.has_customer is False
