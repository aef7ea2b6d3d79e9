"""Dependencies that are used in the API endpoints."""

from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request
from fastapi_auth0 import Auth0User
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit import crud, schemas
from saaskit.api.auth import auth0
from saaskit.core.config import settings
from saaskit.core.exceptions import ExternalServiceError, PaymentRequiredException
from saaskit.core.logging import logger
from saaskit.db.session import get_db
from saaskit.integrations.stripe_client import StripeClient
from saaskit.platform.billing import billing_service
from saaskit.schemas.subscription import SubscriptionTier

__all__ = [
    "get_db",
    "get_optional_stripe_client",
    "get_stripe_client",
    "get_user",
    "require_subscription",
]


async def get_user(
    db: AsyncSession = Depends(get_db),
    auth0_user: Optional[Auth0User] = Depends(auth0.get_user),
) -> schemas.User:
    """Retrieve the authenticated user from the database.

    With authentication disabled, every request acts as the first superuser.

    Args:
    ----
        db (AsyncSession): Database session.
        auth0_user (Optional[Auth0User]): User details from Auth0.

    Returns:
    -------
        schemas.User: User details from the database.

    Raises:
    ------
        HTTPException: If no identity is provided or the user is not registered locally.

    """
    if not settings.AUTH_ENABLED:
        email = settings.FIRST_SUPERUSER
    else:
        if not auth0_user or not auth0_user.email:
            raise HTTPException(status_code=401, detail="User email not found in Auth0")
        email = auth0_user.email

    user = await crud.user.get_by_email(db, email=email)
    if not user:
        logger.error(f"User {email} not found in database")
        raise HTTPException(status_code=401, detail="User not found")

    return schemas.User.model_validate(user)


async def get_optional_stripe_client(request: Request) -> Optional[StripeClient]:
    """Get the Stripe client built at startup, if billing is enabled."""
    return getattr(request.app.state, "stripe_client", None)


async def get_stripe_client(
    stripe_client: Optional[StripeClient] = Depends(get_optional_stripe_client),
) -> StripeClient:
    """Get the Stripe client built at startup.

    Raises:
    ------
        ExternalServiceError: If billing is not enabled for this instance.

    """
    if not stripe_client:
        raise ExternalServiceError(
            service_name="Billing",
            message="Billing is not enabled for this instance",
        )
    return stripe_client


def require_subscription(*tiers: SubscriptionTier) -> Callable:
    """Build a dependency that requires an active subscription on one of the tiers.

    Without tiers any trialing or active subscription passes.

    Example:
    -------
        @router.get("/reports", dependencies=[Depends(require_subscription(SubscriptionTier.PRO))])

    """

    async def _require_subscription(
        db: AsyncSession = Depends(get_db),
        user: schemas.User = Depends(get_user),
    ) -> schemas.User:
        if not await billing_service.check_subscription_access(db, user.id, tiers):
            raise PaymentRequiredException(required_tiers=[tier.value for tier in tiers])
        return user

    return _require_subscription
