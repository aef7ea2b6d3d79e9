"""Stripe API client for billing operations.

This module provides a clean interface to the Stripe API,
handling all direct Stripe interactions without business logic.

The client carries its own credentials and passes them on every request,
so no module-level ``stripe.api_key`` is ever set.
"""

import json
from typing import Any, Dict, Optional

import stripe
from pydantic import ValidationError

from saaskit.core.config import settings
from saaskit.core.exceptions import (
    ExternalServiceError,
    InvalidSignatureError,
    MalformedPayloadError,
)
from saaskit.schemas.stripe_event import StripeEvent, StripeSubscription
from saaskit.schemas.subscription import SubscriptionTier


class StripeClient:
    """Client for Stripe API operations."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: Optional[str] = None,
        price_ids: Optional[Dict[SubscriptionTier, Optional[str]]] = None,
        webhook_tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ):
        """Initialize Stripe client.

        Args:
            secret_key: Stripe secret API key
            webhook_secret: Signing secret of the webhook endpoint
            price_ids: Stripe price ID per plan tier
            webhook_tolerance: Maximum age of a signed payload in seconds
        """
        self._api_key = secret_key
        self.webhook_secret = webhook_secret
        self.webhook_tolerance = webhook_tolerance
        self.price_ids = dict(price_ids or {})

    @classmethod
    def from_settings(cls) -> "StripeClient":
        """Build a client from the application settings."""
        if not settings.STRIPE_ENABLED:
            raise ValueError("Stripe is not enabled in settings")

        return cls(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            price_ids={
                SubscriptionTier.STARTER: settings.STRIPE_STARTER_PRICE_ID,
                SubscriptionTier.PRO: settings.STRIPE_PRO_PRICE_ID,
                SubscriptionTier.ENTERPRISE: settings.STRIPE_ENTERPRISE_PRICE_ID,
            },
            webhook_tolerance=settings.STRIPE_WEBHOOK_TOLERANCE,
        )

    # Price mapping

    def get_price_id_mapping(self) -> Dict[str, SubscriptionTier]:
        """Get reverse mapping from price IDs to tiers."""
        return {price_id: tier for tier, price_id in self.price_ids.items() if price_id}

    def get_price_for_tier(self, tier: SubscriptionTier) -> Optional[str]:
        """Get Stripe price ID for a tier."""
        return self.price_ids.get(tier)

    def tier_for_price(self, price_id: Optional[str]) -> SubscriptionTier:
        """Get the tier a price belongs to. Unknown prices count as starter."""
        if not price_id:
            return SubscriptionTier.STARTER
        return self.get_price_id_mapping().get(price_id, SubscriptionTier.STARTER)

    def _sanitize_text(self, text: str) -> str:
        """Sanitize text for Stripe API (ASCII-only)."""
        if not text:
            return text
        return text.encode("ascii", "replace").decode("ascii")

    def _clean_metadata(self, metadata: Optional[Dict[str, str]]) -> Dict[str, str]:
        """Clean metadata values for Stripe."""
        if not metadata:
            return {}

        return {
            self._sanitize_text(str(key)): self._sanitize_text(str(value))
            for key, value in metadata.items()
        }

    # Customer operations

    async def create_customer(
        self,
        email: str,
        name: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> stripe.Customer:
        """Create a Stripe customer."""
        try:
            params: Dict[str, Any] = {
                "email": self._sanitize_text(email),
                "metadata": self._clean_metadata(metadata),
            }
            if name:
                params["name"] = self._sanitize_text(name)

            return await stripe.Customer.create_async(api_key=self._api_key, **params)
        except stripe.StripeError as e:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Failed to create customer: {str(e)}",
            ) from e

    async def get_customer_metadata(self, customer_id: str) -> Dict[str, str]:
        """Retrieve the metadata of a Stripe customer.

        Deleted customers carry no metadata and yield an empty dict.
        """
        try:
            customer = await stripe.Customer.retrieve_async(customer_id, api_key=self._api_key)
        except stripe.StripeError as e:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Failed to retrieve customer: {str(e)}",
            ) from e
        return dict(customer.to_dict().get("metadata") or {})

    # Subscription operations

    async def get_subscription(self, subscription_id: str) -> StripeSubscription:
        """Retrieve a subscription in the shape webhook events carry it."""
        try:
            subscription = await stripe.Subscription.retrieve_async(
                subscription_id, api_key=self._api_key
            )
        except stripe.StripeError as e:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Failed to retrieve subscription: {str(e)}",
            ) from e
        return StripeSubscription.model_validate(subscription.to_dict())

    # Checkout operations

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
        client_reference_id: Optional[str] = None,
    ) -> stripe.checkout.Session:
        """Create a subscription-mode checkout session."""
        try:
            clean_metadata = self._clean_metadata(metadata)
            params: Dict[str, Any] = {
                "customer": customer_id,
                "line_items": [{"price": price_id, "quantity": 1}],
                "mode": "subscription",
                "success_url": self._sanitize_text(success_url),
                "cancel_url": self._sanitize_text(cancel_url),
                "metadata": clean_metadata,
                "allow_promotion_codes": True,
                "subscription_data": {"metadata": clean_metadata},
            }
            if client_reference_id:
                params["client_reference_id"] = client_reference_id

            return await stripe.checkout.Session.create_async(api_key=self._api_key, **params)
        except stripe.StripeError as e:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Failed to create checkout session: {str(e)}",
            ) from e

    # Portal operations

    async def create_portal_session(
        self, customer_id: str, return_url: str
    ) -> stripe.billing_portal.Session:
        """Create a customer portal session."""
        try:
            return await stripe.billing_portal.Session.create_async(
                api_key=self._api_key,
                customer=customer_id,
                return_url=self._sanitize_text(return_url),
            )
        except stripe.StripeError as e:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Failed to create portal session: {str(e)}",
            ) from e

    # Webhook operations

    def verify_webhook_signature(self, payload: bytes, signature: Optional[str]) -> None:
        """Verify the signature header against the raw payload.

        Raises:
            InvalidSignatureError: If the header or the secret is missing,
                or the signature does not match.
        """
        if not signature or not self.webhook_secret:
            raise InvalidSignatureError("Invalid signature")

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self.webhook_secret,
                self.webhook_tolerance,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise InvalidSignatureError(f"Invalid signature: {e}") from e

    def construct_event(self, payload: bytes, signature: Optional[str]) -> StripeEvent:
        """Verify and parse a webhook event.

        Raises:
            InvalidSignatureError: If verification fails.
            MalformedPayloadError: If the verified body is not a Stripe event.
        """
        self.verify_webhook_signature(payload, signature)

        try:
            return StripeEvent.model_validate(json.loads(payload))
        except (ValueError, ValidationError) as e:
            raise MalformedPayloadError(f"Malformed payload: {e}") from e
