"""Shapes persisted orders into API responses."""

from decimal import Decimal

from produce_orders.config.constants import MONEY_QUANTUM
from produce_orders.db.models import InventoryLedgerEntry, Order, OrderItem
from produce_orders.models.order import (
    LedgerEntryResponse,
    OrderItemResponse,
    OrderResponse,
    ShipToSnapshot,
)


def order_subtotal(order: Order) -> Decimal:
    return sum((item.total_price for item in order.items), Decimal("0")).quantize(MONEY_QUANTUM)


def shape_item(item: OrderItem) -> OrderItemResponse:
    return OrderItemResponse(
        id=item.id,
        line_no=item.line_no,
        product_id=item.product_id,
        product_name=item.product_name_snap,
        product_sku=item.product_sku_snap,
        unit=item.unit,
        quantity=item.quantity,
        unit_price=item.unit_price,
        total_price=item.total_price,
        notes=item.notes,
    )


def shape_order(order: Order) -> OrderResponse:
    """
    Build the order aggregate: header fields, items, subtotal and the
    ship-to snapshot nested as one object.

    Pure function; the order must already have its items loaded.
    """
    return OrderResponse(
        id=order.id,
        order_code=order.order_code,
        status=order.status,
        orderer_company_id=order.orderer_company_id,
        farmer_company_id=order.farmer_company_id,
        ordered_by_id=order.ordered_by_id,
        ordered_at=order.ordered_at,
        requested_delivery=order.requested_delivery,
        notes=order.notes,
        subtotal_amount=order_subtotal(order),
        discount_amount=order.discount_amount,
        total_amount=order.total_amount,
        ship_to=ShipToSnapshot(
            id=order.ship_to_id,
            label=order.ship_to_label_snap,
            address=order.ship_to_address_snap,
            phone=order.ship_to_phone_snap,
        ),
        confirmed_at=order.confirmed_at,
        shipped_at=order.shipped_at,
        completed_at=order.completed_at,
        canceled_at=order.canceled_at,
        tracking_number=order.tracking_number,
        items=[shape_item(item) for item in order.items],
    )


def shape_ledger_entry(entry: InventoryLedgerEntry) -> LedgerEntryResponse:
    return LedgerEntryResponse.model_validate(entry)
