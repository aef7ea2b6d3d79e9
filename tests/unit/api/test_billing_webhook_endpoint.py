"""Unit tests for the Stripe webhook endpoint."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from saaskit.api import deps
from saaskit.core.config import settings
from saaskit.core.exceptions import (
    MalformedPayloadError,
    StoreWriteError,
    UnresolvedUserError,
)
from saaskit.main import app
from tests.fixtures.stripe_events import (
    encode_event,
    make_event,
    sign_payload,
    subscription_object,
)

WEBHOOK_URL = "/billing/webhook"
HANDLER = "saaskit.api.v1.endpoints.billing.SubscriptionSyncHandler.process_event"


@pytest.fixture
def client(mock_db, stripe_client):
    """Test client with a mocked session and a test Stripe client."""

    async def _get_db():
        yield mock_db

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_stripe_client] = lambda: stripe_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def payload():
    """A serialized subscription update."""
    return encode_event(make_event("customer.subscription.updated", subscription_object()))


def _post(client, payload, signature):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return client.post(WEBHOOK_URL, content=payload, headers=headers)


def test_valid_event_is_acknowledged(client, payload):
    """A verified event is processed and acknowledged."""
    with patch(HANDLER, new=AsyncMock()) as process_event:
        response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 200
    assert response.json() == {"received": True}
    process_event.assert_awaited_once()
    assert process_event.call_args.args[0].type == "customer.subscription.updated"


@pytest.mark.parametrize("signature", [None, "t=1,v1=deadbeef", "garbage"])
def test_invalid_signature_is_rejected_before_db_access(client, payload, mock_db, signature):
    """Unverifiable requests answer 400 and never reach the database."""
    with patch(HANDLER, new=AsyncMock()) as process_event:
        response = _post(client, payload, signature)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}
    process_event.assert_not_awaited()
    mock_db.execute.assert_not_awaited()
    mock_db.commit.assert_not_awaited()


def test_signature_from_other_secret_is_rejected(client, payload):
    """Signatures must be made with our webhook secret."""
    response = _post(client, payload, sign_payload(payload, secret="whsec_other"))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}


def test_malformed_payload_is_rejected(client):
    """A verified body that is not an event answers 400."""
    body = b'{"hello": "world"}'

    response = _post(client, body, sign_payload(body))

    assert response.status_code == 400
    assert response.json() == {"error": "Malformed payload"}


def test_malformed_event_object_is_rejected(client, payload):
    """Event objects of the wrong shape answer 400 too."""
    with patch(HANDLER, new=AsyncMock(side_effect=MalformedPayloadError("bad object"))):
        response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 400
    assert response.json() == {"error": "Malformed payload"}


def test_unresolved_user_is_acknowledged(client, payload):
    """Events for unknown customers do not trigger redelivery."""
    with patch(HANDLER, new=AsyncMock(side_effect=UnresolvedUserError("cus_unknown"))):
        response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 200
    assert response.json() == {"received": True}


def test_processing_errors_are_acknowledged(client, payload):
    """Unexpected failures after verification are logged and acknowledged."""
    with patch(HANDLER, new=AsyncMock(side_effect=RuntimeError("boom"))):
        response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 200


def test_store_failure_is_acknowledged_by_default(client, payload):
    """Store failures are acknowledged unless retries are requested."""
    with patch(HANDLER, new=AsyncMock(side_effect=StoreWriteError("db down"))):
        response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 200


def test_store_failure_requests_redelivery_when_configured(client, payload):
    """With retries on, store failures answer 500 so Stripe redelivers."""
    with patch(HANDLER, new=AsyncMock(side_effect=StoreWriteError("db down"))), patch.object(
        settings, "STRIPE_WEBHOOK_RETRY_ON_STORE_FAILURE", True
    ):
        response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 500


def test_webhook_without_billing_enabled(payload):
    """Without a Stripe client the endpoint reports the service as unavailable."""
    client = TestClient(app)

    response = _post(client, payload, sign_payload(payload))

    assert response.status_code == 503


def test_webhook_is_not_in_openapi_schema():
    """The webhook is for Stripe only and stays out of the public schema."""
    client = TestClient(app)

    paths = client.get("/openapi.json").json()["paths"]

    assert WEBHOOK_URL not in paths
    assert "/billing/checkout-session" in paths
