"""Pydantic models for ship-to destinations."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ShipToCreate(BaseModel):
    label: str = Field(..., min_length=1)
    postal_code: Optional[str] = None
    address: str = Field(..., min_length=1)
    phone_number: Optional[str] = None
    is_active: bool = True


class ShipToUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1)
    postal_code: Optional[str] = None
    address: Optional[str] = Field(None, min_length=1)
    phone_number: Optional[str] = None
    is_active: Optional[bool] = None


class ShipToResponse(BaseModel):
    id: str
    label: str
    postal_code: Optional[str] = None
    address: str
    phone_number: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
