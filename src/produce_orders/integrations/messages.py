"""Text of the push messages sent for each order event."""

from datetime import datetime
from typing import Callable, Dict, List, Optional

from produce_orders.config.constants import MESSAGE_TIME_FORMAT
from produce_orders.models.enums import OrderEvent
from produce_orders.models.order import OrderResponse


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime(MESSAGE_TIME_FORMAT) if value else "-"


def _summary(order: OrderResponse) -> List[str]:
    return [f"Order: {order.order_code}", f"Ordered at: {_fmt(order.ordered_at)}"]


def build_created_message(order: OrderResponse) -> str:
    return "\n".join(["[New order]", *_summary(order)])


def build_confirmed_message(order: OrderResponse) -> str:
    return "\n".join(["[Order confirmed]", *_summary(order), f"Confirmed at: {_fmt(order.confirmed_at)}"])


def build_shipped_message(order: OrderResponse) -> str:
    lines = ["[Shipped]", *_summary(order), f"Shipped at: {_fmt(order.shipped_at)}"]
    if order.tracking_number:
        lines.append(f"Tracking number: {order.tracking_number}")
    return "\n".join(lines)


def build_completed_message(order: OrderResponse) -> str:
    return "\n".join(["[Completed]", *_summary(order), f"Completed at: {_fmt(order.completed_at)}"])


def build_canceled_message(order: OrderResponse) -> str:
    return "\n".join(["[Canceled]", *_summary(order), f"Canceled at: {_fmt(order.canceled_at)}"])


MESSAGE_BUILDERS: Dict[OrderEvent, Callable[[OrderResponse], str]] = {
    OrderEvent.CREATED: build_created_message,
    OrderEvent.CONFIRMED: build_confirmed_message,
    OrderEvent.SHIPPED: build_shipped_message,
    OrderEvent.COMPLETED: build_completed_message,
    OrderEvent.CANCELED: build_canceled_message,
}


def build_message(event: OrderEvent, order: OrderResponse) -> str:
    return MESSAGE_BUILDERS[event](order)
