"""Initialize the database with the first superuser."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from saaskit import crud, schemas
from saaskit.core.config import settings
from saaskit.core.logging import logger
from saaskit.models import Base


async def create_tables(engine: AsyncEngine) -> None:
    """Create missing tables. A development convenience, not a migration tool."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(db: AsyncSession) -> None:
    """Initialize the database with the first superuser.

    Args:
    ----
        db (AsyncSession): The database session.
    """
    user = await crud.user.get_by_email(db, email=settings.FIRST_SUPERUSER)
    if not user:
        logger.info(f"User {settings.FIRST_SUPERUSER} not found, creating...")
        await crud.user.create(
            db,
            obj_in=schemas.UserCreate(email=settings.FIRST_SUPERUSER, full_name="Superuser"),
        )
