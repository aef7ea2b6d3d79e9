"""CRUD operations for invoices."""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit.core.datetime_utils import utc_now_naive
from saaskit.crud._base import CRUDBase, dialect_insert
from saaskit.models import Invoice
from saaskit.schemas.invoice import InvoiceCreate


class CRUDInvoice(CRUDBase[Invoice, InvoiceCreate, InvoiceCreate]):
    """CRUD operations for paid invoices."""

    async def get_by_stripe_invoice(
        self, db: AsyncSession, *, stripe_invoice_id: str
    ) -> Optional[Invoice]:
        """Get an invoice by its Stripe ID.

        Args:
            db: Database session
            stripe_invoice_id: Stripe invoice ID

        Returns:
            Invoice or None
        """
        result = await db.execute(
            select(Invoice).where(Invoice.stripe_invoice_id == stripe_invoice_id)
        )
        return result.scalar_one_or_none()

    async def create_if_absent(self, db: AsyncSession, *, obj_in: InvoiceCreate) -> bool:
        """Record an invoice once; redeliveries of the same invoice are no-ops.

        Args:
            db: Database session
            obj_in: The invoice to record

        Returns:
            True if a new row was inserted
        """
        now = utc_now_naive()
        stmt = (
            dialect_insert(db, Invoice)
            .values(id=uuid.uuid4(), created_at=now, modified_at=now, **obj_in.model_dump())
            .on_conflict_do_nothing(index_elements=["stripe_invoice_id"])
            .returning(Invoice.__table__.c.id)
        )
        result = await db.execute(stmt)
        inserted = result.scalar_one_or_none() is not None
        await db.commit()
        return inserted


invoice = CRUDInvoice(Invoice)
