"""Authentication module for the API."""

from fastapi_auth0 import Auth0, Auth0User

from saaskit.core.config import settings
from saaskit.core.logging import logger

# Subject of the development identity used while AUTH_ENABLED is off
MOCK_AUTH0_SUB = "mock-user-id"

# Initialize Auth0 only if authentication is enabled
if settings.AUTH_ENABLED:
    auth0 = Auth0(
        domain=settings.AUTH0_DOMAIN,
        api_audience=settings.AUTH0_AUDIENCE,
        auto_error=False,
    )
else:

    class MockAuth0:
        """A mock Auth0 class that doesn't make network calls for testing/development."""

        def __init__(self):
            """Initialize the mock Auth0 instance."""
            self.domain = "mock-domain.auth0.com"
            self.audience = "https://mock-api/"
            self.auth0_user_model = Auth0User

        async def get_user(self) -> Auth0User:
            """Always return the first superuser in development mode."""
            # email is declared under a namespaced alias, so it is assigned by name
            user = Auth0User(sub=MOCK_AUTH0_SUB)
            user.email = settings.FIRST_SUPERUSER
            return user

    auth0 = MockAuth0()
    logger.info("Using mock Auth0 instance because AUTH_ENABLED=False")
