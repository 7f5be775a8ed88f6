"""Business logic services."""

from dataclasses import dataclass

from produce_orders.integrations.line import LineNotifier
from produce_orders.services.catalog import CatalogService
from produce_orders.services.notifications import OrderNotificationService
from produce_orders.services.order_service import OrderContext, OrderService
from produce_orders.services.ship_to_service import ShipToService


@dataclass
class ServiceRegistry:
    """Services bound to one session factory, shared by the HTTP layer."""

    session_factory: object
    orders: OrderService
    catalog: CatalogService
    ship_tos: ShipToService


def build_services(session_factory, notifier: LineNotifier) -> ServiceRegistry:
    notifications = OrderNotificationService(session_factory, notifier)
    return ServiceRegistry(
        session_factory=session_factory,
        orders=OrderService(session_factory, notifications),
        catalog=CatalogService(session_factory),
        ship_tos=ShipToService(session_factory),
    )


__all__ = [
    "CatalogService",
    "OrderContext",
    "OrderNotificationService",
    "OrderService",
    "ServiceRegistry",
    "ShipToService",
    "build_services",
]
