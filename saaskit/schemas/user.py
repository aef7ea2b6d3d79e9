"""User schemas."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr


class UserBase(BaseModel):
    """Base schema for User."""

    email: EmailStr
    full_name: Optional[str] = None


class UserCreate(UserBase):
    """Schema for registering an authenticated identity locally."""

    auth0_id: Optional[str] = None


class UserUpdate(BaseModel):
    """Schema for updating a User object."""

    full_name: Optional[str] = None
    auth0_id: Optional[str] = None
    is_active: Optional[bool] = None


class User(UserBase):
    """Schema for User returned to clients."""

    model_config = {"from_attributes": True}

    id: UUID
    auth0_id: Optional[str] = None
    is_active: bool = True
