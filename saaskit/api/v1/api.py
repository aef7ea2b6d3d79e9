"""API routes for the FastAPI application."""

from saaskit.api.router import TrailingSlashRouter
from saaskit.api.v1.endpoints import billing, health, users

# Use our custom router that handles trailing slashes
api_router = TrailingSlashRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
