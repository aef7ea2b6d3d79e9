"""Unit tests for the checkout, portal and subscription endpoints."""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from saaskit.api import deps
from saaskit.api.middleware import payment_required_exception_handler
from saaskit.core.exceptions import (
    InvalidPlanError,
    InvalidStateError,
    NotFoundException,
    PaymentRequiredException,
)
from saaskit.main import app
from saaskit.schemas.subscription import SubscriptionInfo, SubscriptionTier

SERVICE = "saaskit.api.v1.endpoints.billing.billing_service"


@pytest.fixture
def client(mock_db, mock_user, stripe_client):
    """Test client authenticated as the mock user."""

    async def _get_db():
        yield mock_db

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_user] = lambda: mock_user
    app.dependency_overrides[deps.get_stripe_client] = lambda: stripe_client
    app.dependency_overrides[deps.get_optional_stripe_client] = lambda: stripe_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_checkout_session_returns_url(client, mock_user):
    """The checkout URL of the service is returned."""
    with patch(f"{SERVICE}.start_checkout", new=AsyncMock(return_value="https://checkout")) as m:
        response = client.post(
            "/billing/checkout-session",
            json={"plan": "pro", "user_id": str(mock_user.id)},
        )

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout"}
    assert m.call_args.kwargs["plan"] == "pro"
    assert m.call_args.kwargs["user"] == mock_user


def test_checkout_session_for_other_user_is_unauthorized(client):
    """Requests on behalf of another user answer 401."""
    with patch(f"{SERVICE}.start_checkout", new=AsyncMock()) as m:
        response = client.post(
            "/billing/checkout-session",
            json={"plan": "pro", "user_id": str(uuid.uuid4())},
        )

    assert response.status_code == 401
    m.assert_not_awaited()


def test_checkout_session_with_unknown_plan(client, mock_user):
    """Unknown plans answer 400."""
    with patch(
        f"{SERVICE}.start_checkout", new=AsyncMock(side_effect=InvalidPlanError("platinum"))
    ):
        response = client.post(
            "/billing/checkout-session",
            json={"plan": "platinum", "user_id": str(mock_user.id)},
        )

    assert response.status_code == 400
    assert "platinum" in response.json()["detail"]


def test_checkout_session_with_active_subscription(client, mock_user):
    """Active subscribers cannot start another checkout."""
    with patch(
        f"{SERVICE}.start_checkout",
        new=AsyncMock(side_effect=InvalidStateError("User already has an active subscription")),
    ):
        response = client.post(
            "/billing/checkout-session",
            json={"plan": "pro", "user_id": str(mock_user.id)},
        )

    assert response.status_code == 400


def test_checkout_session_validates_body(client):
    """Missing fields answer 422."""
    response = client.post("/billing/checkout-session", json={"plan": "pro"})

    assert response.status_code == 422


def test_portal_session_without_customer(client, mock_user):
    """Users without a Stripe customer get 404."""
    with patch(
        f"{SERVICE}.create_portal_session",
        new=AsyncMock(side_effect=NotFoundException("No customer found")),
    ):
        response = client.post("/billing/portal-session", json={"user_id": str(mock_user.id)})

    assert response.status_code == 404
    assert response.json() == {"detail": "No customer found"}


def test_portal_session_for_other_user_is_unauthorized(client):
    """Requests on behalf of another user answer 401."""
    response = client.post("/billing/portal-session", json={"user_id": str(uuid.uuid4())})

    assert response.status_code == 401


def test_portal_session_returns_url(client, mock_user):
    """The portal URL of the service is returned."""
    with patch(
        f"{SERVICE}.create_portal_session", new=AsyncMock(return_value="https://portal")
    ):
        response = client.post(
            "/billing/portal-session",
            json={"user_id": str(mock_user.id), "return_url": "https://app/settings"},
        )

    assert response.status_code == 200
    assert response.json() == {"url": "https://portal"}


def test_get_subscription(client):
    """The subscription summary of the current user is returned."""
    info = SubscriptionInfo(has_active_subscription=True, tier=SubscriptionTier.PRO)
    with patch(f"{SERVICE}.get_subscription_info", new=AsyncMock(return_value=info)):
        response = client.get("/billing/subscription")

    assert response.status_code == 200
    assert response.json()["tier"] == "pro"
    assert response.json()["has_active_subscription"] is True


def test_get_plans(client):
    """The catalog carries the configured price IDs."""
    response = client.get("/billing/plans")

    assert response.status_code == 200
    plans = response.json()
    assert [plan["tier"] for plan in plans] == ["starter", "pro", "enterprise"]
    assert plans[1]["price_id"] == "price_pro"


@pytest.fixture
def gated_client(mock_db, mock_user):
    """A separate app with one route gated on the pro tier."""
    gated_app = FastAPI()
    gated_app.exception_handler(PaymentRequiredException)(payment_required_exception_handler)

    @gated_app.get("/reports")
    async def reports(user=Depends(deps.require_subscription(SubscriptionTier.PRO))):
        return {"ok": True}

    async def _get_db():
        yield mock_db

    gated_app.dependency_overrides[deps.get_db] = _get_db
    gated_app.dependency_overrides[deps.get_user] = lambda: mock_user
    return TestClient(gated_app)


@pytest.mark.parametrize("has_access, status_code", [(False, 402), (True, 200)])
def test_require_subscription(gated_client, has_access, status_code):
    """Gated routes answer 402 when the subscription does not qualify."""
    with patch(
        "saaskit.api.deps.billing_service.check_subscription_access",
        new=AsyncMock(return_value=has_access),
    ) as check:
        response = gated_client.get("/reports")

    assert response.status_code == status_code
    assert list(check.call_args.args[2]) == [SubscriptionTier.PRO]
    if not has_access:
        assert response.json()["required_tiers"] == ["pro"]
