"""CRUD operations for the customer mapping."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit.crud._base import CRUDBase, dialect_insert
from saaskit.models import Customer
from saaskit.schemas.customer import CustomerCreate


class CRUDCustomer(CRUDBase[Customer, CustomerCreate, CustomerCreate]):
    """CRUD operations for the user to Stripe customer mapping."""

    async def get_by_user(self, db: AsyncSession, *, user_id: UUID) -> Optional[Customer]:
        """Get the mapping of a user.

        Args:
            db: Database session
            user_id: Local user ID

        Returns:
            Customer or None
        """
        result = await db.execute(select(Customer).where(Customer.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_by_stripe_customer(
        self, db: AsyncSession, *, stripe_customer_id: str
    ) -> Optional[Customer]:
        """Get the mapping of a Stripe customer.

        Args:
            db: Database session
            stripe_customer_id: Stripe customer ID

        Returns:
            Customer or None
        """
        result = await db.execute(
            select(Customer).where(Customer.stripe_customer_id == stripe_customer_id)
        )
        return result.scalar_one_or_none()

    async def create_if_absent(
        self, db: AsyncSession, *, obj_in: CustomerCreate
    ) -> Optional[Customer]:
        """Insert a mapping unless the user or the Stripe customer is already mapped.

        Concurrent first checkouts race on the unique constraints; the loser's insert
        becomes a no-op and both callers read back the surviving row.

        Args:
            db: Database session
            obj_in: The mapping to create

        Returns:
            The mapping stored for the user
        """
        stmt = (
            dialect_insert(db, Customer)
            .values(**obj_in.model_dump())
            .on_conflict_do_nothing()
        )
        await db.execute(stmt)
        await db.commit()
        return await self.get_by_user(db, user_id=obj_in.user_id)


customer = CRUDCustomer(Customer)
