"""Invoice schemas."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class InvoiceCreate(BaseModel):
    """Schema for recording a paid invoice."""

    user_id: UUID
    stripe_invoice_id: str
    stripe_customer_id: str
    subscription_id: Optional[UUID] = None
    amount_paid: int = 0
    amount_due: int = 0
    currency: str
    status: str = "paid"
