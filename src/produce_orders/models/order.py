"""Pydantic models for order data."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from produce_orders.config.constants import ORDER_LIST_DEFAULT_LIMIT
from produce_orders.models.enums import MovementType, OrderStatus


class OrderItemInput(BaseModel):
    """One requested line. Quantity is validated by the order service."""

    product_id: str
    quantity: Decimal
    notes: Optional[str] = None


class OrderUpdate(BaseModel):
    """Replacement content for an order that is still NEW."""

    farmer_company_id: str
    ship_to_id: str
    requested_delivery: Optional[date] = None
    notes: Optional[str] = None
    discount_amount: Decimal = Decimal("0")
    items: List[OrderItemInput] = Field(default_factory=list)


class OrderCreate(OrderUpdate):
    """Data for creating an order."""

    ordered_by_id: str


class ShipRequest(BaseModel):
    tracking_number: str = ""
    shipped_at: Optional[datetime] = None


class ShipToSnapshot(BaseModel):
    """Delivery address as captured when the order was placed or edited."""

    id: Optional[str] = None
    label: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: str
    line_no: int
    product_id: str
    product_name: str
    product_sku: Optional[str] = None
    unit: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    notes: Optional[str] = None


class OrderResponse(BaseModel):
    """Order aggregate as returned to callers."""

    id: str
    order_code: str
    status: OrderStatus
    orderer_company_id: str
    farmer_company_id: str
    ordered_by_id: str
    ordered_at: datetime
    requested_delivery: Optional[date] = None
    notes: Optional[str] = None
    subtotal_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    ship_to: ShipToSnapshot
    confirmed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    tracking_number: Optional[str] = None
    items: List[OrderItemResponse] = Field(default_factory=list)


class OrderListFilters(BaseModel):
    status: Optional[OrderStatus] = None
    farmer_company_id: Optional[str] = None
    ordered_from: Optional[datetime] = None
    ordered_to: Optional[datetime] = None
    limit: int = ORDER_LIST_DEFAULT_LIMIT


class LedgerEntryResponse(BaseModel):
    """Inventory ledger row."""

    id: int
    product_id: str
    farmer_company_id: str
    order_id: Optional[str] = None
    order_item_id: Optional[str] = None
    movement_type: MovementType
    quantity: Decimal
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
