"""Customer mapping schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class CustomerCreate(BaseModel):
    """Schema for creating a customer mapping."""

    user_id: UUID
    stripe_customer_id: str


class Customer(CustomerCreate):
    """Customer mapping as stored."""

    model_config = {"from_attributes": True}

    id: UUID
    created_at: datetime
    modified_at: datetime
