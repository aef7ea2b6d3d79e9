"""The CRUD operations for the User model."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit.crud._base import CRUDBase
from saaskit.models.user import User
from saaskit.schemas.user import UserCreate, UserUpdate


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):
    """CRUD operations for the User model."""

    immutable_fields = ["id", "created_at", "email"]

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        """Get a user by email.

        Args:
            db (AsyncSession): The database session.
            email (str): The email of the user to get.

        Returns:
            Optional[User]: The user with the given email.
        """
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_auth0_id(self, db: AsyncSession, *, auth0_id: str) -> Optional[User]:
        """Get a user by the subject of their Auth0 identity.

        Args:
            db (AsyncSession): The database session.
            auth0_id (str): The Auth0 subject.

        Returns:
            Optional[User]: The user with the given Auth0 ID.
        """
        result = await db.execute(select(User).where(User.auth0_id == auth0_id))
        return result.scalar_one_or_none()


user = CRUDUser(User)
