"""SQLAlchemy models for companies, catalog, orders and the inventory ledger."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from produce_orders.core.clock import utcnow
from produce_orders.models.enums import CompanyType, MovementType, OrderStatus

from .base import Base

Money = Numeric(14, 2)
Quantity = Numeric(14, 3)


def new_id() -> str:
    return str(uuid.uuid4())


class Company(Base):
    """Ordering company or farmer (supplier) company."""

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[CompanyType] = mapped_column(
        Enum(CompanyType, native_enum=False, length=20), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    setting: Mapped[Optional["UserSetting"]] = relationship(
        back_populates="user", uselist=False, lazy="selectin"
    )


class UserSetting(Base):
    """Per-user notification preferences (LINE push)."""

    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), primary_key=True)
    line_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    line_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user: Mapped[User] = relationship(back_populates="setting")


class ShipTo(Base):
    """Delivery destination owned by the ordering company."""

    __tablename__ = "ship_tos"
    __table_args__ = (UniqueConstraint("company_id", "label", name="uq_ship_to_label"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id"), index=True, nullable=False
    )
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class ShipToFarmerRoute(Base):
    """
    Per-farmer switch for a ship-to.

    No row means the ship-to is routable to the farmer; a disabled row blocks it.
    """

    __tablename__ = "ship_to_farmer_routes"
    __table_args__ = (
        UniqueConstraint("ship_to_id", "farmer_company_id", name="uq_ship_to_farmer_route"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    ship_to_id: Mapped[str] = mapped_column(String(36), ForeignKey("ship_tos.id"), nullable=False)
    farmer_company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id"), nullable=False
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    farmer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class ProductSpecialPrice(Base):
    """Time-windowed price override. ``end_at`` of None means open-ended."""

    __tablename__ = "product_special_prices"
    __table_args__ = (Index("ix_special_price_product_start", "product_id", "start_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=20),
        default=OrderStatus.NEW,
        index=True,
        nullable=False,
    )
    orderer_company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id"), index=True, nullable=False
    )
    farmer_company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id"), index=True, nullable=False
    )
    ordered_by_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    ordered_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True, nullable=False)
    requested_delivery: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)

    # Ship-to snapshot, insulated from later edits of the ship-to record
    ship_to_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("ship_tos.id"), nullable=True
    )
    ship_to_label_snap: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ship_to_address_snap: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ship_to_phone_snap: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    shipped_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.line_no",
        lazy="selectin",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id"), index=True, nullable=False
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), nullable=False)

    # Product snapshot, decoupled from later product changes
    product_name_snap: Mapped[str] = mapped_column(String(255), nullable=False)
    product_sku_snap: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped[Order] = relationship(back_populates="items")


class InventoryLedgerEntry(Base):
    """
    Append-only stock movement.

    Balance of a (product, farmer) pair is the sum of ``quantity`` over all
    rows. Rows are never updated or deleted.
    """

    __tablename__ = "inventory_ledger"
    __table_args__ = (Index("ix_ledger_product_farmer", "product_id", "farmer_company_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), nullable=False)
    farmer_company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id"), nullable=False
    )
    order_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("orders.id"), index=True, nullable=True
    )
    order_item_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("order_items.id"), nullable=True
    )
    movement_type: Mapped[MovementType] = mapped_column(
        Enum(MovementType, native_enum=False, length=20), nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
