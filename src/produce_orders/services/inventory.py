"""Append-only inventory ledger and balance computation."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from produce_orders.config.constants import QUANTITY_QUANTUM, ZERO
from produce_orders.core.clock import utcnow
from produce_orders.core.errors import BadRequest, Unprocessable
from produce_orders.core.logger import setup_logger
from produce_orders.db.models import InventoryLedgerEntry, Order, Product
from produce_orders.models.enums import MovementType

logger = setup_logger(__name__)


@dataclass(frozen=True)
class LedgerMovement:
    """A signed stock movement waiting to be recorded."""

    product_id: str
    farmer_company_id: str
    movement_type: MovementType
    quantity: Decimal
    order_id: Optional[str] = None
    order_item_id: Optional[str] = None
    note: Optional[str] = None


def checked_quantity(
    quantity: Decimal, allow_negative: bool = False, details: Optional[dict] = None
) -> Decimal:
    """
    Quantity normalized to the stored precision (0.001).

    Raises:
        BadRequest: INVALID_QUANTITY for zero, for a negative value unless
            allowed, or for more than three decimal places
    """
    if quantity == ZERO or (quantity < ZERO and not allow_negative):
        message = "Quantity must not be zero." if allow_negative else "Quantity must be greater than zero."
        raise BadRequest("INVALID_QUANTITY", message, details)

    normalized = quantity.quantize(QUANTITY_QUANTUM)
    if normalized != quantity:
        raise BadRequest(
            "INVALID_QUANTITY",
            "Quantity allows at most three decimal places.",
            {**(details or {}), "quantity": str(quantity)},
        )
    return normalized


class InventoryLedger:
    """
    Ledger of signed quantity movements per (product, farmer) pair.

    The balance is always derived from the rows; there is no stock counter.
    Rows are only ever appended, corrections are offsetting ADJUST entries.
    All methods run inside the caller's transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def current_balance(self, product_id: str, farmer_id: str) -> Decimal:
        """Sum of all signed quantities recorded for the pair (0 without rows)."""
        query = select(func.coalesce(func.sum(InventoryLedgerEntry.quantity), 0)).where(
            InventoryLedgerEntry.product_id == product_id,
            InventoryLedgerEntry.farmer_company_id == farmer_id,
        )
        result = await self.session.execute(query)
        total = result.scalar_one()
        return Decimal(str(total)) if total is not None else ZERO

    async def lock_stock(self, product_ids: Iterable[str]) -> None:
        """
        Lock the product rows whose stock is about to be checked and moved.

        Rows are locked in id order so concurrent transactions cannot deadlock.
        No-op on SQLite, where every transaction takes the write lock at BEGIN.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return
        query = select(Product.id).where(Product.id.in_(ids)).order_by(Product.id).with_for_update()
        await self.session.execute(query)

    async def record_movements(self, movements: Sequence[LedgerMovement]) -> List[InventoryLedgerEntry]:
        """Append movements to the ledger. Storage errors propagate to the unit of work."""
        now = utcnow()
        entries = [
            InventoryLedgerEntry(
                product_id=movement.product_id,
                farmer_company_id=movement.farmer_company_id,
                order_id=movement.order_id,
                order_item_id=movement.order_item_id,
                movement_type=movement.movement_type,
                quantity=movement.quantity,
                note=movement.note,
                created_at=now,
            )
            for movement in movements
        ]
        self.session.add_all(entries)
        await self.session.flush()

        logger.info(
            f"Recorded {len(entries)} ledger movements "
            f"({', '.join(sorted({m.movement_type.value for m in movements}))})"
        )
        return entries

    async def history(self, order_id: str) -> List[InventoryLedgerEntry]:
        """Ledger rows written for one order, oldest first."""
        query = (
            select(InventoryLedgerEntry)
            .where(InventoryLedgerEntry.order_id == order_id)
            .order_by(InventoryLedgerEntry.id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def record_adjustment(
        self,
        product_id: str,
        farmer_id: str,
        quantity: Decimal,
        note: Optional[str] = None,
    ) -> InventoryLedgerEntry:
        """
        Record a stock receipt (positive) or correction (negative).

        Raises:
            BadRequest: Quantity is zero or finer than 0.001
            Unprocessable: The correction would take the balance below zero
        """
        quantity = checked_quantity(quantity, allow_negative=True, details={"product_id": product_id})

        await self.lock_stock([product_id])
        if quantity < ZERO:
            available = await self.current_balance(product_id, farmer_id)
            if available + quantity < ZERO:
                raise Unprocessable(
                    "INSUFFICIENT_STOCK",
                    "Adjustment would make the stock balance negative.",
                    {
                        "items": [
                            {
                                "product_id": product_id,
                                "required": str(-quantity),
                                "available": str(available),
                            }
                        ]
                    },
                )

        entries = await self.record_movements(
            [
                LedgerMovement(
                    product_id=product_id,
                    farmer_company_id=farmer_id,
                    movement_type=MovementType.ADJUST,
                    quantity=quantity,
                    note=note,
                )
            ]
        )
        return entries[0]


def allocation_movements(order: Order) -> List[LedgerMovement]:
    """One ALLOCATE (negative) per item: stock reserved for a confirmed order."""
    return [
        LedgerMovement(
            product_id=item.product_id,
            farmer_company_id=order.farmer_company_id,
            movement_type=MovementType.ALLOCATE,
            quantity=-item.quantity,
            order_id=order.id,
            order_item_id=item.id,
        )
        for item in order.items
    ]


def release_movements(order: Order) -> List[LedgerMovement]:
    """One DEALLOCATE (positive) per item: the reservation is given back."""
    return [
        LedgerMovement(
            product_id=item.product_id,
            farmer_company_id=order.farmer_company_id,
            movement_type=MovementType.DEALLOCATE,
            quantity=item.quantity,
            order_id=order.id,
            order_item_id=item.id,
        )
        for item in order.items
    ]


def shipment_movements(order: Order) -> List[LedgerMovement]:
    """
    DEALLOCATE then SHIP per item.

    The pair nets to zero against availability but keeps "reserved" and
    "departed" separately visible in the ledger.
    """
    movements = []
    for release in release_movements(order):
        movements.append(release)
        movements.append(
            LedgerMovement(
                product_id=release.product_id,
                farmer_company_id=release.farmer_company_id,
                movement_type=MovementType.SHIP,
                quantity=-release.quantity,
                order_id=release.order_id,
                order_item_id=release.order_item_id,
            )
        )
    return movements
