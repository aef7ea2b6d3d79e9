"""CRUD operations for subscription items."""

import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit.core.datetime_utils import utc_now_naive
from saaskit.crud._base import CRUDBase, dialect_insert
from saaskit.models import SubscriptionItem
from saaskit.schemas.subscription import SubscriptionItemUpsert


class CRUDSubscriptionItem(
    CRUDBase[SubscriptionItem, SubscriptionItemUpsert, SubscriptionItemUpsert]
):
    """CRUD operations for subscription line items."""

    async def get_by_subscription(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> List[SubscriptionItem]:
        """Get the items of a subscription."""
        result = await db.execute(
            select(SubscriptionItem).where(
                SubscriptionItem.subscription_id == stripe_subscription_id
            )
        )
        return list(result.scalars().all())

    async def upsert(self, db: AsyncSession, *, obj_in: SubscriptionItemUpsert) -> None:
        """Insert or update an item keyed by its Stripe ID."""
        now = utc_now_naive()
        values = obj_in.model_dump()
        stmt = dialect_insert(db, SubscriptionItem).values(
            id=uuid.uuid4(), created_at=now, modified_at=now, **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["stripe_subscription_item_id"],
            set_={
                "stripe_price_id": stmt.excluded.stripe_price_id,
                "quantity": stmt.excluded.quantity,
                "modified_at": now,
            },
        )
        await db.execute(stmt)
        await db.commit()


subscription_item = CRUDSubscriptionItem(SubscriptionItem)
