"""Common test fixtures and configuration for pytest.

Unit tests use mocks; integration tests run the real CRUD layer against an
in-memory SQLite database, which supports the same insert-on-conflict
statements as PostgreSQL.
"""

from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from saaskit import crud, schemas
from saaskit.models import Base

# Import all fixtures so they are automatically available for all tests
from tests.fixtures.common import (  # noqa
    mock_db,
    mock_user,
    stripe_client,
)


@pytest.fixture
async def db_engine():
    """Create an in-memory database engine for each test function."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new database session for integration tests."""
    async with AsyncSession(db_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def db_user(db_session):
    """A registered user."""
    return await crud.user.create(
        db_session,
        obj_in=schemas.UserCreate(email="jane@example.com", full_name="Jane Doe"),
    )
