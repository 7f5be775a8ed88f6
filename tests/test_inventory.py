"""Tests for the append-only inventory ledger."""

from decimal import Decimal

import pytest

from conftest import CUCUMBER_ID, FARMER_ID, OTHER_FARMER_ID, TOMATO_ID
from produce_orders.core.errors import BadRequest, Unprocessable
from produce_orders.db import Order, OrderItem, UnitOfWork
from produce_orders.models.enums import MovementType
from produce_orders.services.inventory import (
    InventoryLedger,
    LedgerMovement,
    allocation_movements,
    release_movements,
    shipment_movements,
)


def sample_order() -> Order:
    return Order(
        id="order-1",
        farmer_company_id=FARMER_ID,
        items=[
            OrderItem(id="item-1", line_no=1, product_id=TOMATO_ID, quantity=Decimal("5")),
            OrderItem(id="item-2", line_no=2, product_id=CUCUMBER_ID, quantity=Decimal("3")),
        ],
    )


async def test_balance_is_zero_without_movements(balance):
    assert await balance(TOMATO_ID) == Decimal("0")


async def test_balance_is_sum_of_signed_movements(session_factory, stock, balance):
    await stock(TOMATO_ID, "10")

    async with UnitOfWork(session_factory) as uow:
        await InventoryLedger(uow.session).record_movements(
            [
                LedgerMovement(TOMATO_ID, FARMER_ID, MovementType.ALLOCATE, Decimal("-4")),
                LedgerMovement(TOMATO_ID, FARMER_ID, MovementType.DEALLOCATE, Decimal("1.5")),
            ]
        )

    assert await balance(TOMATO_ID) == Decimal("7.5")


async def test_balance_is_scoped_to_product_and_farmer(stock, balance):
    await stock(TOMATO_ID, "10")
    await stock(CUCUMBER_ID, "3")

    assert await balance(TOMATO_ID) == Decimal("10")
    assert await balance(TOMATO_ID, OTHER_FARMER_ID) == Decimal("0")


async def test_rolled_back_movements_leave_no_rows(session_factory, balance):
    """Movements recorded in a failed unit of work are discarded with it."""
    with pytest.raises(RuntimeError):
        async with UnitOfWork(session_factory) as uow:
            await InventoryLedger(uow.session).record_movements(
                [LedgerMovement(TOMATO_ID, FARMER_ID, MovementType.ADJUST, Decimal("8"))]
            )
            raise RuntimeError("abort")

    assert await balance(TOMATO_ID) == Decimal("0")


async def test_zero_adjustment_is_rejected(stock):
    with pytest.raises(BadRequest) as exc_info:
        await stock(TOMATO_ID, "0")

    assert exc_info.value.code == "INVALID_QUANTITY"


@pytest.mark.parametrize("quantity", ["0.0004", "-1.0005"])
async def test_adjustment_beyond_stored_precision_is_rejected(stock, balance, quantity):
    await stock(TOMATO_ID, "2")

    with pytest.raises(BadRequest) as exc_info:
        await stock(TOMATO_ID, quantity)

    assert exc_info.value.code == "INVALID_QUANTITY"
    assert await balance(TOMATO_ID) == Decimal("2")


async def test_negative_adjustment_cannot_overdraw(stock, balance):
    await stock(TOMATO_ID, "2")

    with pytest.raises(Unprocessable) as exc_info:
        await stock(TOMATO_ID, "-3")

    assert exc_info.value.code == "INSUFFICIENT_STOCK"
    assert Decimal(exc_info.value.details["items"][0]["available"]) == Decimal("2")
    assert await balance(TOMATO_ID) == Decimal("2")


async def test_negative_adjustment_within_stock(stock, balance):
    await stock(TOMATO_ID, "5")
    await stock(TOMATO_ID, "-5")

    assert await balance(TOMATO_ID) == Decimal("0")


def test_allocation_movements_are_negative_per_item():
    movements = allocation_movements(sample_order())

    assert [m.movement_type for m in movements] == [MovementType.ALLOCATE, MovementType.ALLOCATE]
    assert [m.quantity for m in movements] == [Decimal("-5"), Decimal("-3")]
    assert [m.order_item_id for m in movements] == ["item-1", "item-2"]
    assert all(m.order_id == "order-1" and m.farmer_company_id == FARMER_ID for m in movements)


def test_shipment_movements_net_to_zero():
    """Shipment writes DEALLOCATE then SHIP per item, summing to zero."""
    movements = shipment_movements(sample_order())

    assert [m.movement_type for m in movements] == [
        MovementType.DEALLOCATE,
        MovementType.SHIP,
        MovementType.DEALLOCATE,
        MovementType.SHIP,
    ]
    assert sum(m.quantity for m in movements) == Decimal("0")


def test_release_movements_restore_allocations():
    order = sample_order()

    released = release_movements(order)
    allocated = allocation_movements(order)

    assert all(m.movement_type == MovementType.DEALLOCATE for m in released)
    assert sum(m.quantity for m in released + allocated) == Decimal("0")
