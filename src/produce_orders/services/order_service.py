"""
Order lifecycle orchestration.

Every operation runs in one unit of work: validate state and ownership, price
or move stock, write the order, commit, and only then hand the committed
order to the notifier.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from functools import partial
from typing import Callable, Dict, List, Optional

from produce_orders.config.constants import (
    MONEY_QUANTUM,
    ORDER_CODE_MAX_RETRIES,
    ORDER_CODE_PREFIX,
    ORDER_CODE_RANDOM_BYTES,
    ORDER_LIST_MAX_LIMIT,
    ZERO,
)
from produce_orders.core.clock import to_naive_utc, utcnow
from produce_orders.core.errors import (
    BadRequest,
    Forbidden,
    NotFound,
    PersistenceError,
    Unprocessable,
)
from produce_orders.core.logger import setup_logger
from produce_orders.db.models import Order, OrderItem, ShipTo, new_id
from produce_orders.db.repository import DirectoryRepository, OrderRepository
from produce_orders.db.unit_of_work import UnitOfWork
from produce_orders.models.enums import CompanyType, OrderAction, OrderEvent, OrderStatus
from produce_orders.models.order import (
    LedgerEntryResponse,
    OrderCreate,
    OrderListFilters,
    OrderResponse,
    OrderUpdate,
    ShipRequest,
)
from produce_orders.services.inventory import (
    InventoryLedger,
    allocation_movements,
    checked_quantity,
    release_movements,
    shipment_movements,
)
from produce_orders.services.lifecycle import next_status
from produce_orders.services.notifications import OrderNotificationService
from produce_orders.services.order_view import shape_ledger_entry, shape_order
from produce_orders.services.pricing import PriceResolver, compute_total, line_total

logger = setup_logger(__name__)


@dataclass(frozen=True)
class OrderContext:
    """Tenant and clock an operation runs under."""

    orderer_company_id: str
    clock: Callable[[], datetime] = field(default=utcnow)

    def now(self) -> datetime:
        return self.clock()


def build_order_code(now: datetime) -> str:
    """``ORD-YYYYMMDD-XXXXXX`` with six random upper-case hex digits."""
    random_part = secrets.token_hex(ORDER_CODE_RANDOM_BYTES).upper()
    return f"{ORDER_CODE_PREFIX}-{now.strftime('%Y%m%d')}-{random_part}"


class OrderService:
    """Creates, edits and moves orders through their lifecycle."""

    def __init__(
        self,
        session_factory,
        notifications: Optional[OrderNotificationService] = None,
        code_factory: Callable[[datetime], str] = build_order_code,
    ):
        self.session_factory = session_factory
        self.notifications = notifications
        self.code_factory = code_factory

    # ==================== Create / edit ====================

    async def create_order(self, ctx: OrderContext, data: OrderCreate) -> OrderResponse:
        """
        Create a NEW order with prices snapshotted at creation time.

        Raises:
            BadRequest: Empty items, negative discount, invalid farmer/products/quantity,
                discount exceeding the subtotal
            Forbidden: Ordering user outside the orderer company, route disabled
            NotFound: Farmer or ship-to missing
        """
        discount = self._check_request(data)
        now = ctx.now()

        async with UnitOfWork(self.session_factory) as uow:
            directory = DirectoryRepository(uow.session)
            orders = OrderRepository(uow.session)

            user = await directory.get_user(data.ordered_by_id)
            if user is None or user.company_id != ctx.orderer_company_id:
                raise Forbidden("USER_FORBIDDEN", "User does not belong to the orderer company.")

            ship_to = await self._check_destination(ctx, directory, data)
            items, subtotal = await self._price_items(uow.session, data, now)
            total = compute_total(subtotal, discount)
            order_code = await self._allocate_order_code(orders, now)

            order = Order(
                id=new_id(),
                order_code=order_code,
                status=OrderStatus.NEW,
                orderer_company_id=ctx.orderer_company_id,
                farmer_company_id=data.farmer_company_id,
                ordered_by_id=data.ordered_by_id,
                ordered_at=now,
                requested_delivery=data.requested_delivery,
                notes=data.notes,
                discount_amount=discount,
                total_amount=total,
                updated_at=now,
                items=items,
            )
            _snapshot_ship_to(order, ship_to)
            await orders.add(order)

            shaped = shape_order(order)
            self._notify_after_commit(uow, OrderEvent.CREATED, shaped)

        logger.info(
            f"Created order {shaped.order_code} ({len(shaped.items)} items, total {shaped.total_amount})",
            extra=_log_fields(shaped, OrderEvent.CREATED),
        )
        return shaped

    async def update_order(self, ctx: OrderContext, order_id: str, data: OrderUpdate) -> OrderResponse:
        """
        Replace the content of a NEW order. Prices are re-resolved as of now.

        Raises:
            NotFound: Order missing
            Forbidden: Order of another company, or no longer NEW
        """
        discount = self._check_request(data)
        now = ctx.now()

        async with UnitOfWork(self.session_factory) as uow:
            order = await self._load_order(ctx, uow.session, order_id, for_update=True)
            order.status = next_status(order.status, OrderAction.EDIT)

            directory = DirectoryRepository(uow.session)
            ship_to = await self._check_destination(ctx, directory, data)
            items, subtotal = await self._price_items(uow.session, data, now)

            order.farmer_company_id = data.farmer_company_id
            order.requested_delivery = data.requested_delivery
            order.notes = data.notes
            order.discount_amount = discount
            order.total_amount = compute_total(subtotal, discount)
            order.items = items
            order.updated_at = now
            _snapshot_ship_to(order, ship_to)
            await uow.session.flush()

            shaped = shape_order(order)

        logger.info(
            f"Updated order {shaped.order_code} ({len(shaped.items)} items)", extra=_log_fields(shaped)
        )
        return shaped

    # ==================== Lifecycle transitions ====================

    async def confirm_order(self, ctx: OrderContext, order_id: str) -> OrderResponse:
        """
        Allocate stock for every item and move the order to PROCESSING.

        All items are checked before anything is written; if any is short the
        whole confirmation fails and the ledger is untouched.

        Raises:
            Unprocessable: INSUFFICIENT_STOCK, ``details.items`` lists every short item
        """
        async with UnitOfWork(self.session_factory) as uow:
            order = await self._load_order(ctx, uow.session, order_id, for_update=True)
            target = next_status(order.status, OrderAction.CONFIRM)
            if not order.items:
                raise BadRequest("ORDER_NO_ITEMS", "Orders must have at least one item.")

            ledger = InventoryLedger(uow.session)
            await ledger.lock_stock(item.product_id for item in order.items)

            balances: Dict[str, Decimal] = {}
            claimed: Dict[str, Decimal] = {}
            shortages = []
            for item in order.items:
                if item.product_id not in balances:
                    balances[item.product_id] = await ledger.current_balance(
                        item.product_id, order.farmer_company_id
                    )
                available = balances[item.product_id] - claimed.get(item.product_id, ZERO)
                if available < item.quantity:
                    shortages.append(
                        {
                            "product_id": item.product_id,
                            "order_item_id": item.id,
                            "required": str(item.quantity),
                            "available": str(available),
                        }
                    )
                claimed[item.product_id] = claimed.get(item.product_id, ZERO) + item.quantity

            if shortages:
                logger.warning(f"Cannot confirm {order.order_code}: {len(shortages)} items short of stock")
                raise Unprocessable(
                    "INSUFFICIENT_STOCK",
                    "Not enough stock to confirm the order.",
                    {"items": shortages},
                )

            await ledger.record_movements(allocation_movements(order))

            now = ctx.now()
            order.status = target
            order.confirmed_at = now
            order.updated_at = now
            await uow.session.flush()

            shaped = shape_order(order)
            self._notify_after_commit(uow, OrderEvent.CONFIRMED, shaped)

        logger.info(f"Confirmed order {shaped.order_code}", extra=_log_fields(shaped, OrderEvent.CONFIRMED))
        return shaped

    async def ship_order(self, ctx: OrderContext, order_id: str, data: ShipRequest) -> OrderResponse:
        """
        Record shipment: release each allocation and book it out as SHIP.

        Raises:
            BadRequest: TRACKING_REQUIRED when the tracking number is blank
        """
        tracking_number = (data.tracking_number or "").strip()
        if not tracking_number:
            raise BadRequest("TRACKING_REQUIRED", "Tracking number is required.")

        async with UnitOfWork(self.session_factory) as uow:
            order = await self._load_order(ctx, uow.session, order_id, for_update=True)
            target = next_status(order.status, OrderAction.SHIP)

            ledger = InventoryLedger(uow.session)
            await ledger.lock_stock(item.product_id for item in order.items)
            await ledger.record_movements(shipment_movements(order))

            now = ctx.now()
            order.status = target
            order.shipped_at = to_naive_utc(data.shipped_at) if data.shipped_at else now
            order.tracking_number = tracking_number
            order.updated_at = now
            await uow.session.flush()

            shaped = shape_order(order)
            self._notify_after_commit(uow, OrderEvent.SHIPPED, shaped)

        logger.info(
            f"Shipped order {shaped.order_code} (tracking {tracking_number})",
            extra=_log_fields(shaped, OrderEvent.SHIPPED),
        )
        return shaped

    async def complete_order(self, ctx: OrderContext, order_id: str) -> OrderResponse:
        async with UnitOfWork(self.session_factory) as uow:
            order = await self._load_order(ctx, uow.session, order_id, for_update=True)
            target = next_status(order.status, OrderAction.COMPLETE)

            now = ctx.now()
            order.status = target
            order.completed_at = now
            order.updated_at = now
            await uow.session.flush()

            shaped = shape_order(order)
            self._notify_after_commit(uow, OrderEvent.COMPLETED, shaped)

        logger.info(f"Completed order {shaped.order_code}", extra=_log_fields(shaped, OrderEvent.COMPLETED))
        return shaped

    async def cancel_order(self, ctx: OrderContext, order_id: str) -> OrderResponse:
        """
        Cancel a NEW or PROCESSING order.

        A PROCESSING order gives its allocations back with one DEALLOCATE per item.
        """
        async with UnitOfWork(self.session_factory) as uow:
            order = await self._load_order(ctx, uow.session, order_id, for_update=True)
            previous = order.status
            target = next_status(previous, OrderAction.CANCEL)

            if previous == OrderStatus.PROCESSING:
                ledger = InventoryLedger(uow.session)
                await ledger.lock_stock(item.product_id for item in order.items)
                await ledger.record_movements(release_movements(order))

            now = ctx.now()
            order.status = target
            order.canceled_at = now
            order.updated_at = now
            await uow.session.flush()

            shaped = shape_order(order)
            self._notify_after_commit(uow, OrderEvent.CANCELED, shaped)

        logger.info(
            f"Canceled order {shaped.order_code} (was {previous.value})",
            extra=_log_fields(shaped, OrderEvent.CANCELED),
        )
        return shaped

    # ==================== Queries ====================

    async def get_order(self, ctx: OrderContext, order_id: str) -> OrderResponse:
        async with UnitOfWork(self.session_factory) as uow:
            order = await self._load_order(ctx, uow.session, order_id)
            return shape_order(order)

    async def list_orders(self, ctx: OrderContext, filters: OrderListFilters) -> List[OrderResponse]:
        """Orders of the orderer company, newest first."""
        if filters.limit < 1 or filters.limit > ORDER_LIST_MAX_LIMIT:
            raise BadRequest(
                "VALIDATION_ERROR",
                f"limit must be between 1 and {ORDER_LIST_MAX_LIMIT}.",
                {"limit": filters.limit},
            )
        filters = filters.model_copy(
            update={
                "ordered_from": to_naive_utc(filters.ordered_from) if filters.ordered_from else None,
                "ordered_to": to_naive_utc(filters.ordered_to) if filters.ordered_to else None,
            }
        )

        async with UnitOfWork(self.session_factory) as uow:
            orders = await OrderRepository(uow.session).list(ctx.orderer_company_id, filters)
            return [shape_order(order) for order in orders]

    async def order_inventory_history(self, ctx: OrderContext, order_id: str) -> List[LedgerEntryResponse]:
        """Ledger rows written by the order's transitions, oldest first."""
        async with UnitOfWork(self.session_factory) as uow:
            order = await self._load_order(ctx, uow.session, order_id)
            entries = await InventoryLedger(uow.session).history(order.id)
            return [shape_ledger_entry(entry) for entry in entries]

    # ==================== Helpers ====================

    @staticmethod
    def _check_request(data: OrderUpdate) -> Decimal:
        """Checks that need no database. Returns the normalized discount."""
        if not data.items:
            raise BadRequest("EMPTY_ITEMS", "Orders must contain at least one item.")
        if data.discount_amount < ZERO:
            raise BadRequest("NEGATIVE_DISCOUNT", "Discount must be zero or positive.")
        return data.discount_amount.quantize(MONEY_QUANTUM)

    @staticmethod
    async def _load_order(ctx: OrderContext, session, order_id: str, for_update: bool = False) -> Order:
        order = await OrderRepository(session).get(order_id, for_update=for_update)
        if order is None:
            raise NotFound("ORDER_NOT_FOUND", "Order not found.", {"order_id": order_id})
        if order.orderer_company_id != ctx.orderer_company_id:
            raise Forbidden("ORDER_FORBIDDEN", "Order does not belong to the orderer company.")
        return order

    @staticmethod
    async def _check_destination(
        ctx: OrderContext, directory: DirectoryRepository, data: OrderUpdate
    ) -> ShipTo:
        """Validate the farmer and that the ship-to may receive from it."""
        farmer = await directory.get_company(data.farmer_company_id)
        if farmer is None:
            raise NotFound("FARMER_NOT_FOUND", "Farmer company not found.")
        if farmer.type != CompanyType.FARMER:
            raise BadRequest("INVALID_FARMER", "Target company is not marked as FARMER.")

        ship_to = await directory.get_ship_to(data.ship_to_id)
        if ship_to is None or ship_to.company_id != ctx.orderer_company_id or not ship_to.is_active:
            raise NotFound("SHIP_TO_NOT_FOUND", "Ship-to destination not available.")

        route = await directory.get_route(ship_to.id, farmer.id)
        if route is not None and not route.is_enabled:
            raise Forbidden("ROUTE_DISABLED", "Ship-to is disabled for the farmer.")
        return ship_to

    @staticmethod
    async def _price_items(session, data: OrderUpdate, as_of: datetime):
        """
        Build order items with name/SKU/unit/price snapshots.

        Returns:
            Tuple of (items, subtotal)
        """
        product_ids = list(dict.fromkeys(item.product_id for item in data.items))
        priced = await PriceResolver(session).resolve_for_farmer(
            data.farmer_company_id, product_ids, as_of=as_of
        )
        by_id = {entry.product.id: entry for entry in priced}

        missing = [product_id for product_id in product_ids if product_id not in by_id]
        if missing:
            raise BadRequest(
                "INVALID_PRODUCTS",
                "One or more products are not available for the farmer.",
                {"product_ids": missing},
            )

        items = []
        subtotal = ZERO
        for line_no, requested in enumerate(data.items, start=1):
            quantity = checked_quantity(requested.quantity, details={"product_id": requested.product_id})
            entry = by_id[requested.product_id]
            unit_price = entry.price.unit_price
            total_price = line_total(unit_price, quantity)
            subtotal += total_price

            items.append(
                OrderItem(
                    id=new_id(),
                    line_no=line_no,
                    product_id=entry.product.id,
                    product_name_snap=entry.product.name,
                    product_sku_snap=entry.product.sku,
                    unit=entry.product.unit,
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=total_price,
                    notes=requested.notes,
                )
            )
        return items, subtotal

    async def _allocate_order_code(self, orders: OrderRepository, now: datetime) -> str:
        """Random order code not yet taken. The unique constraint still guards the insert."""
        for attempt in range(1, ORDER_CODE_MAX_RETRIES + 1):
            code = self.code_factory(now)
            if not await orders.code_exists(code):
                return code
            logger.warning(f"Order code collision on {code} (attempt {attempt}/{ORDER_CODE_MAX_RETRIES})")
        raise PersistenceError(
            "Could not generate a unique order code.",
            {"attempts": ORDER_CODE_MAX_RETRIES},
        )

    def _notify_after_commit(self, uow: UnitOfWork, event: OrderEvent, order: OrderResponse) -> None:
        if self.notifications is None:
            return
        uow.after_commit(
            f"notify:{event.value}:{order.order_code}",
            partial(self.notifications.notify_order_event, event, order),
        )


def _snapshot_ship_to(order: Order, ship_to: ShipTo) -> None:
    order.ship_to_id = ship_to.id
    order.ship_to_label_snap = ship_to.label
    order.ship_to_address_snap = ship_to.address
    order.ship_to_phone_snap = ship_to.phone_number


def _log_fields(order: OrderResponse, event: Optional[OrderEvent] = None) -> Dict[str, str]:
    """Structured fields picked up by the JSON log formatter."""
    fields = {"order_id": order.id, "order_code": order.order_code}
    if event is not None:
        fields["event"] = event.value
    return fields
