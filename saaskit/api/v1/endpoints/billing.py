"""API endpoints for billing operations.

This module provides the HTTP interface for billing operations,
delegating business logic to the billing service and event
reconciliation to the subscription sync handler.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit import schemas
from saaskit.api import deps
from saaskit.api.router import TrailingSlashRouter
from saaskit.core.config import settings
from saaskit.core.exceptions import (
    InvalidSignatureError,
    MalformedPayloadError,
    StoreWriteError,
    UnresolvedUserError,
)
from saaskit.core.logging import logger
from saaskit.integrations.stripe_client import StripeClient
from saaskit.platform.billing import billing_service
from saaskit.platform.billing.plans import get_pricing_plans
from saaskit.platform.billing.webhook_handler import SubscriptionSyncHandler

router = TrailingSlashRouter()


def _ensure_same_user(requested_user_id: UUID, user: schemas.User) -> None:
    if requested_user_id != user.id:
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/checkout-session", response_model=schemas.SessionResponse)
async def create_checkout_session(
    request: schemas.CheckoutSessionRequest,
    db: AsyncSession = Depends(deps.get_db),
    user: schemas.User = Depends(deps.get_user),
    stripe_client: StripeClient = Depends(deps.get_stripe_client),
) -> schemas.SessionResponse:
    """Create a Stripe checkout session for subscription.

    Args:
        request: Checkout session request with plan and URLs
        db: Database session
        user: The authenticated user
        stripe_client: Stripe client

    Returns:
        Checkout session URL to redirect user to

    Raises:
        HTTPException: If the request is made on behalf of another user
    """
    _ensure_same_user(request.user_id, user)

    url = await billing_service.start_checkout(
        db=db,
        user=user,
        plan=request.plan,
        stripe_client=stripe_client,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
    )
    return schemas.SessionResponse(url=url)


@router.post("/portal-session", response_model=schemas.SessionResponse)
async def create_portal_session(
    request: schemas.PortalSessionRequest,
    db: AsyncSession = Depends(deps.get_db),
    user: schemas.User = Depends(deps.get_user),
    stripe_client: StripeClient = Depends(deps.get_stripe_client),
) -> schemas.SessionResponse:
    """Create a Stripe customer portal session.

    The customer portal allows users to:
    - Update payment methods
    - Download invoices
    - Cancel subscription

    Args:
        request: Portal session request with optional return URL
        db: Database session
        user: The authenticated user
        stripe_client: Stripe client

    Returns:
        Portal session URL to redirect user to
    """
    _ensure_same_user(request.user_id, user)

    url = await billing_service.create_portal_session(
        db=db,
        user=user,
        stripe_client=stripe_client,
        return_url=request.return_url,
    )
    return schemas.SessionResponse(url=url)


@router.get("/subscription", response_model=schemas.SubscriptionInfo)
async def get_subscription(
    db: AsyncSession = Depends(deps.get_db),
    user: schemas.User = Depends(deps.get_user),
) -> schemas.SubscriptionInfo:
    """Get the current user's subscription."""
    return await billing_service.get_subscription_info(db, user.id)


@router.get("/plans", response_model=List[schemas.PricingPlan])
async def get_plans(
    stripe_client: Optional[StripeClient] = Depends(deps.get_optional_stripe_client),
) -> List[schemas.PricingPlan]:
    """List the plans a user can subscribe to."""
    return get_pricing_plans(stripe_client.price_ids if stripe_client else None)


@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(deps.get_db),
    stripe_client: StripeClient = Depends(deps.get_stripe_client),
) -> JSONResponse:
    """Handle Stripe webhook events.

    The signature is verified against the raw body before anything else runs.
    Only rejected signatures and malformed payloads answer 400; every other
    outcome is acknowledged so that Stripe does not redeliver it.

    Args:
        request: Raw HTTP request
        stripe_signature: Stripe signature header
        db: Database session
        stripe_client: Stripe client

    Returns:
        200 with ``{"received": true}`` once the event was handled or ignored
    """
    payload = await request.body()

    try:
        event = stripe_client.construct_event(payload, stripe_signature)
    except InvalidSignatureError as e:
        logger.warning(f"Rejected webhook: {e.message}")
        return JSONResponse(status_code=400, content={"error": "Invalid signature"})
    except MalformedPayloadError as e:
        logger.warning(f"Rejected webhook: {e.message}")
        return JSONResponse(status_code=400, content={"error": "Malformed payload"})

    log = logger.with_context(stripe_event_id=event.id, event_type=event.type)
    handler = SubscriptionSyncHandler(db, stripe_client)
    try:
        await handler.process_event(event)
    except MalformedPayloadError as e:
        log.warning(f"Rejected webhook: {e.message}")
        return JSONResponse(status_code=400, content={"error": "Malformed payload"})
    except UnresolvedUserError as e:
        log.warning(f"Acknowledged without changes: {e.message}")
    except StoreWriteError as e:
        log.error(f"Failed to store webhook event: {e.message}", exc_info=True)
        if settings.STRIPE_WEBHOOK_RETRY_ON_STORE_FAILURE:
            return JSONResponse(status_code=500, content={"error": "Store write failed"})
    except Exception as e:
        log.error(f"Error handling webhook event: {e}", exc_info=True)

    return JSONResponse(status_code=200, content=schemas.WebhookAck().model_dump())
