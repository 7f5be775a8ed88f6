"""API routes for the order service."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text

from produce_orders.config.constants import ORDER_LIST_DEFAULT_LIMIT, ORDER_LIST_MAX_LIMIT
from produce_orders.core.logger import setup_logger
from produce_orders.models.enums import OrderStatus
from produce_orders.models.order import OrderCreate, OrderListFilters, OrderUpdate, ShipRequest
from produce_orders.models.product import StockAdjustmentCreate
from produce_orders.models.ship_to import ShipToCreate, ShipToUpdate
from produce_orders.services import OrderContext, ServiceRegistry

logger = setup_logger(__name__)
router = APIRouter()


def get_services_stub() -> ServiceRegistry:
    """Replaced in create_app via dependency_overrides."""
    raise NotImplementedError("Services dependency not configured")


def get_context_stub() -> OrderContext:
    """Replaced in create_app via dependency_overrides."""
    raise NotImplementedError("Order context dependency not configured")


@router.get("/")
async def root() -> dict:
    """Root endpoint with basic service info."""
    return {
        "service": "Produce Order Service",
        "version": "1.0.0",
        "endpoints": {
            "health": "GET /health",
            "catalog": "GET /farmers/{farmer_id}/products",
            "orders": "GET|POST /orders",
            "ship_tos": "GET|POST /ship-tos",
            "docs": "GET /docs",
        },
    }


@router.get("/health")
async def health_check(services: ServiceRegistry = Depends(get_services_stub)) -> dict:
    """Health check endpoint for monitoring."""
    health_status = {"status": "healthy", "service": "produce-orders", "checks": {}}

    try:
        async with services.session_factory() as session:
            await session.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "ok"
    except Exception as e:
        logger.error(f"Health check database probe failed: {e}")
        health_status["checks"]["database"] = "error"
        health_status["status"] = "degraded"

    notifier = services.orders.notifications
    health_status["checks"]["line_push"] = (
        "enabled" if notifier is not None and notifier.enabled else "disabled"
    )
    return health_status


# ==================== Catalog and stock ====================


@router.get("/farmers/{farmer_id}/products")
async def farmer_catalog(
    farmer_id: str,
    as_of: Optional[datetime] = None,
    services: ServiceRegistry = Depends(get_services_stub),
) -> dict:
    """Active products of a farmer with effective prices."""
    return {"data": await services.catalog.get_catalog(farmer_id, as_of)}


@router.get("/products/{product_id}/price")
async def product_price(
    product_id: str,
    as_of: Optional[datetime] = None,
    services: ServiceRegistry = Depends(get_services_stub),
) -> dict:
    return {"data": await services.catalog.get_effective_price(product_id, as_of)}


@router.get("/farmers/{farmer_id}/products/{product_id}/inventory")
async def product_inventory(
    farmer_id: str,
    product_id: str,
    services: ServiceRegistry = Depends(get_services_stub),
) -> dict:
    return {"data": await services.catalog.get_balance(farmer_id, product_id)}


@router.post("/farmers/{farmer_id}/products/{product_id}/inventory/adjustments", status_code=201)
async def adjust_inventory(
    farmer_id: str,
    product_id: str,
    data: StockAdjustmentCreate,
    services: ServiceRegistry = Depends(get_services_stub),
) -> dict:
    """Record a stock receipt (positive) or correction (negative)."""
    return {"data": await services.catalog.adjust_stock(farmer_id, product_id, data)}


# ==================== Ship-to destinations ====================


@router.get("/ship-tos")
async def list_ship_tos(
    active_only: bool = False,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.ship_tos.list_ship_tos(ctx, active_only)}


@router.post("/ship-tos", status_code=201)
async def create_ship_to(
    data: ShipToCreate,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.ship_tos.create_ship_to(ctx, data)}


@router.patch("/ship-tos/{ship_to_id}")
async def update_ship_to(
    ship_to_id: str,
    data: ShipToUpdate,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.ship_tos.update_ship_to(ctx, ship_to_id, data)}


@router.delete("/ship-tos/{ship_to_id}")
async def delete_ship_to(
    ship_to_id: str,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    """Soft delete: the destination is deactivated, existing orders keep it."""
    return {"data": await services.ship_tos.deactivate_ship_to(ctx, ship_to_id)}


# ==================== Orders ====================


@router.post("/orders", status_code=201)
async def create_order(
    data: OrderCreate,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.orders.create_order(ctx, data)}


@router.get("/orders")
async def list_orders(
    status: Optional[OrderStatus] = None,
    farmer_company_id: Optional[str] = None,
    ordered_from: Optional[datetime] = None,
    ordered_to: Optional[datetime] = None,
    limit: int = Query(ORDER_LIST_DEFAULT_LIMIT, ge=1, le=ORDER_LIST_MAX_LIMIT),
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    filters = OrderListFilters(
        status=status,
        farmer_company_id=farmer_company_id,
        ordered_from=ordered_from,
        ordered_to=ordered_to,
        limit=limit,
    )
    return {"data": await services.orders.list_orders(ctx, filters)}


@router.get("/orders/{order_id}")
async def get_order(
    order_id: str,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.orders.get_order(ctx, order_id)}


@router.put("/orders/{order_id}")
async def update_order(
    order_id: str,
    data: OrderUpdate,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.orders.update_order(ctx, order_id, data)}


@router.post("/orders/{order_id}/confirm")
async def confirm_order(
    order_id: str,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.orders.confirm_order(ctx, order_id)}


@router.post("/orders/{order_id}/ship")
async def ship_order(
    order_id: str,
    data: Optional[ShipRequest] = None,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.orders.ship_order(ctx, order_id, data or ShipRequest())}


@router.post("/orders/{order_id}/complete")
async def complete_order(
    order_id: str,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.orders.complete_order(ctx, order_id)}


@router.post("/orders/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    return {"data": await services.orders.cancel_order(ctx, order_id)}


@router.get("/orders/{order_id}/inventory")
async def order_inventory(
    order_id: str,
    services: ServiceRegistry = Depends(get_services_stub),
    ctx: OrderContext = Depends(get_context_stub),
) -> dict:
    """Ledger movements written by the order's transitions."""
    return {"data": await services.orders.order_inventory_history(ctx, order_id)}
