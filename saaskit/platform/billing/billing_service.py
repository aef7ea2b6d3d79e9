"""Billing service for customers, checkout and portal sessions.

This module coordinates the customer mapping, the subscription records
and the injected Stripe client. Webhook reconciliation lives in
``webhook_handler``.
"""

from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from saaskit import crud, schemas
from saaskit.core.config import settings
from saaskit.core.exceptions import InvalidStateError, NotFoundException
from saaskit.core.logging import logger
from saaskit.integrations.stripe_client import StripeClient
from saaskit.models import Subscription
from saaskit.platform.billing.plans import resolve_price_id
from saaskit.schemas.subscription import SubscriptionInfo, SubscriptionTier

billing_logger = logger.with_prefix("Billing: ").with_context(component="billing")


class BillingService:
    """Service for managing user billing and subscriptions."""

    async def get_or_create_customer(
        self, db: AsyncSession, user: schemas.User, stripe_client: StripeClient
    ) -> str:
        """Get the user's Stripe customer ID, creating the customer on first use.

        Args:
            db: Database session
            user: The user to bill
            stripe_client: Stripe client

        Returns:
            The Stripe customer ID
        """
        mapping = await crud.customer.get_by_user(db, user_id=user.id)
        if mapping:
            return mapping.stripe_customer_id

        customer = await stripe_client.create_customer(
            email=user.email,
            name=user.full_name,
            metadata={"user_id": str(user.id)},
        )
        billing_logger.info(f"Created Stripe customer {customer.id} for user {user.id}")

        # A concurrent request may have mapped the user first; its customer wins.
        mapping = await crud.customer.create_if_absent(
            db,
            obj_in=schemas.CustomerCreate(user_id=user.id, stripe_customer_id=customer.id),
        )
        return mapping.stripe_customer_id if mapping else customer.id

    async def start_checkout(
        self,
        db: AsyncSession,
        user: schemas.User,
        plan: str,
        stripe_client: StripeClient,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> str:
        """Start a subscription checkout flow.

        Args:
            db: Database session
            user: The subscribing user
            plan: Tier name or configured price ID
            stripe_client: Stripe client
            success_url: Redirect after payment, defaults to the dashboard
            cancel_url: Redirect after cancellation, defaults to the pricing page

        Returns:
            Checkout session URL to redirect the user to

        Raises:
            InvalidPlanError: If the plan does not resolve to a configured price
            InvalidStateError: If the user already has an active subscription
        """
        price_id = resolve_price_id(plan, stripe_client.price_ids)

        if await self.get_active_subscription(db, user.id):
            raise InvalidStateError("User already has an active subscription")

        customer_id = await self.get_or_create_customer(db, user, stripe_client)
        session = await stripe_client.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=success_url or f"{settings.app_url}/dashboard?success=true",
            cancel_url=cancel_url or f"{settings.app_url}/pricing?canceled=true",
            metadata={"user_id": str(user.id)},
            client_reference_id=str(user.id),
        )

        billing_logger.info(f"Started checkout {session.id} for user {user.id} on {price_id}")
        return session.url

    async def create_portal_session(
        self,
        db: AsyncSession,
        user: schemas.User,
        stripe_client: StripeClient,
        return_url: Optional[str] = None,
    ) -> str:
        """Create Stripe customer portal session.

        Raises:
            NotFoundException: If the user has no Stripe customer yet
        """
        mapping = await crud.customer.get_by_user(db, user_id=user.id)
        if not mapping:
            raise NotFoundException("No customer found")

        session = await stripe_client.create_portal_session(
            customer_id=mapping.stripe_customer_id,
            return_url=return_url or f"{settings.app_url}/dashboard",
        )
        return session.url

    # Subscription information

    async def get_active_subscription(
        self, db: AsyncSession, user_id: UUID
    ) -> Optional[Subscription]:
        """Get the user's newest trialing or active subscription."""
        return await crud.subscription.get_active_for_user(db, user_id=user_id)

    async def get_subscription_info(self, db: AsyncSession, user_id: UUID) -> SubscriptionInfo:
        """Summarize the user's subscription for the dashboard."""
        has_customer = await crud.customer.get_by_user(db, user_id=user_id) is not None

        subscription = await self.get_active_subscription(db, user_id)
        has_active = subscription is not None
        if not has_active:
            # Lapsed subscriptions are still shown so the UI can offer to renew
            subscription = await crud.subscription.get_latest_for_user(db, user_id=user_id)
        if not subscription:
            return SubscriptionInfo(has_customer=has_customer)

        return SubscriptionInfo(
            has_active_subscription=has_active,
            tier=subscription.tier,
            status=subscription.status,
            current_period_start=subscription.current_period_start,
            current_period_end=subscription.current_period_end,
            trial_end=subscription.trial_end,
            cancel_at_period_end=subscription.cancel_at_period_end,
            has_customer=has_customer,
        )

    async def check_subscription_access(
        self,
        db: AsyncSession,
        user_id: UUID,
        allowed_tiers: Iterable[SubscriptionTier] = (),
    ) -> bool:
        """Whether the user has an active subscription on one of the allowed tiers.

        An empty ``allowed_tiers`` accepts any active subscription.
        """
        subscription = await self.get_active_subscription(db, user_id)
        if not subscription:
            return False

        allowed = {SubscriptionTier(tier).value for tier in allowed_tiers}
        if not allowed:
            return True
        return subscription.tier in allowed


billing_service = BillingService()
