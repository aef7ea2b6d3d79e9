"""Common test fixtures."""

import uuid
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit import schemas
from tests.fixtures.stripe_events import make_stripe_client


@pytest.fixture
def mock_user():
    """Create a mock user for tests."""
    return schemas.User(
        id=uuid.uuid4(),
        email="test@example.com",
        full_name="Test User",
        auth0_id="auth0|test",
        is_active=True,
    )


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def stripe_client():
    """Create a Stripe client with test credentials and prices."""
    return make_stripe_client()
