"""Builders for signed Stripe webhook payloads."""

import hashlib
import hmac
import json
import time
import uuid
from typing import Any, Dict, Optional

from saaskit.integrations.stripe_client import StripeClient
from saaskit.schemas.subscription import SubscriptionTier

WEBHOOK_SECRET = "whsec_test_secret"
STARTER_PRICE = "price_starter"
PRO_PRICE = "price_pro"
ENTERPRISE_PRICE = "price_enterprise"


def make_stripe_client(webhook_secret: Optional[str] = WEBHOOK_SECRET) -> StripeClient:
    """Build a client with test credentials and the three tier prices."""
    return StripeClient(
        secret_key="sk_test_123",
        webhook_secret=webhook_secret,
        price_ids={
            SubscriptionTier.STARTER: STARTER_PRICE,
            SubscriptionTier.PRO: PRO_PRICE,
            SubscriptionTier.ENTERPRISE: ENTERPRISE_PRICE,
        },
    )


def sign_payload(
    payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None
) -> str:
    """Compute a Stripe-Signature header value for the payload."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def subscription_object(
    subscription_id: str = "sub_123",
    customer: str = "cus_123",
    status: str = "active",
    price: str = PRO_PRICE,
    metadata: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> Dict[str, Any]:
    """A subscription as carried by customer.subscription.* events."""
    obj = {
        "id": subscription_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "items": {
            "object": "list",
            "data": [
                {
                    "id": f"si_{subscription_id}",
                    "object": "subscription_item",
                    "price": {"id": price, "object": "price", "product": "prod_123"},
                    "quantity": 1,
                }
            ],
        },
        "metadata": metadata or {},
        "current_period_start": 1_700_000_000,
        "current_period_end": 1_702_592_000,
        "trial_start": None,
        "trial_end": None,
        "cancel_at": None,
        "cancel_at_period_end": False,
        "canceled_at": None,
        "ended_at": None,
    }
    obj.update(overrides)
    return obj


def invoice_object(
    invoice_id: str = "in_123",
    customer: str = "cus_123",
    subscription: Optional[str] = "sub_123",
    amount_paid: int = 2900,
    **overrides: Any,
) -> Dict[str, Any]:
    """An invoice as carried by invoice.* events."""
    obj = {
        "id": invoice_id,
        "object": "invoice",
        "customer": customer,
        "subscription": subscription,
        "amount_paid": amount_paid,
        "amount_due": amount_paid,
        "currency": "usd",
        "status": "paid",
        "attempt_count": 1,
        "metadata": {},
    }
    obj.update(overrides)
    return obj


def checkout_session_object(
    session_id: str = "cs_123",
    customer: str = "cus_123",
    client_reference_id: Optional[str] = None,
    metadata: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """A completed subscription-mode checkout session."""
    return {
        "id": session_id,
        "object": "checkout.session",
        "customer": customer,
        "subscription": "sub_123",
        "client_reference_id": client_reference_id,
        "mode": "subscription",
        "metadata": metadata or {},
    }


def make_event(
    event_type: str,
    obj: Dict[str, Any],
    event_id: Optional[str] = None,
    created: Optional[int] = None,
) -> Dict[str, Any]:
    """Wrap an object in an event envelope."""
    return {
        "id": event_id or f"evt_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "type": event_type,
        "created": int(time.time()) if created is None else created,
        "livemode": False,
        "data": {"object": obj},
    }


def encode_event(event: Dict[str, Any]) -> bytes:
    """Serialize an event the way Stripe sends it."""
    return json.dumps(event).encode("utf-8")
