"""Main module of the FastAPI application.

This module sets up the FastAPI application, the middleware to log incoming
requests and unhandled exceptions, and the Stripe client shared by the
billing endpoints.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from saaskit.api.middleware import (
    add_request_id,
    exception_logging_middleware,
    external_service_exception_handler,
    invalid_plan_exception_handler,
    invalid_state_exception_handler,
    log_requests,
    not_found_exception_handler,
    payment_required_exception_handler,
    permission_exception_handler,
    saaskit_exception_handler,
    validation_exception_handler,
)
from saaskit.api.router import TrailingSlashRouter
from saaskit.api.v1.api import api_router
from saaskit.core.config import settings
from saaskit.core.exceptions import (
    ExternalServiceError,
    InvalidPlanError,
    InvalidStateError,
    NotFoundException,
    PaymentRequiredException,
    PermissionException,
    SaasKitException,
)
from saaskit.core.logging import logger
from saaskit.db.init_db import create_tables, init_db
from saaskit.db.session import AsyncSessionLocal, async_engine
from saaskit.integrations.stripe_client import StripeClient


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Optionally creates the tables, ensures the first superuser exists and
    builds the Stripe client when billing is enabled.
    """
    if settings.CREATE_TABLES_ON_STARTUP:
        logger.info("Creating database tables...")
        await create_tables(async_engine)

    async with AsyncSessionLocal() as db:
        await init_db(db)

    if settings.STRIPE_ENABLED:
        app.state.stripe_client = StripeClient.from_settings()
    else:
        app.state.stripe_client = None
        logger.info("Billing is disabled because no Stripe secret key is configured")

    yield

    await async_engine.dispose()


# Create FastAPI app with our custom router and disable FastAPI's built-in redirects
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
    router=TrailingSlashRouter(),
    redirect_slashes=False,
)

app.include_router(api_router)

# Register middleware directly
app.middleware("http")(add_request_id)
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(PermissionException)(permission_exception_handler)
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(InvalidStateError)(invalid_state_exception_handler)
app.exception_handler(InvalidPlanError)(invalid_plan_exception_handler)
app.exception_handler(PaymentRequiredException)(payment_required_exception_handler)
app.exception_handler(ExternalServiceError)(external_service_exception_handler)
app.exception_handler(SaasKitException)(saaskit_exception_handler)

CORS_ORIGINS = [settings.app_url]

if settings.cors_origins:
    if settings.ENVIRONMENT == "local":
        CORS_ORIGINS.append("*")  # Allow all origins in local environment
    else:
        CORS_ORIGINS.extend(settings.cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
