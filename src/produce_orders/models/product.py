"""Pydantic models for catalog pricing and stock."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class EffectivePriceResponse(BaseModel):
    product_id: str
    unit_price: Decimal
    special_price_id: Optional[str] = None
    as_of: datetime


class CatalogProduct(BaseModel):
    """Active product with the price that would be charged right now."""

    id: str
    farmer_id: str
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    unit: str
    unit_price: Decimal
    effective_price: Decimal
    special_price_id: Optional[str] = None
    is_special: bool = False


class CatalogResponse(BaseModel):
    farmer_id: str
    farmer_name: str
    as_of: datetime
    products: List[CatalogProduct]


class InventoryBalanceResponse(BaseModel):
    product_id: str
    farmer_company_id: str
    balance: Decimal


class StockAdjustmentCreate(BaseModel):
    """Signed stock correction or receipt."""

    quantity: Decimal
    note: Optional[str] = None
