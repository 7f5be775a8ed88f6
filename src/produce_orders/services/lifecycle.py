"""Order lifecycle state machine.

The whole lifecycle is the ``TRANSITIONS`` table below; anything missing from
it is rejected with the action's error code.
"""

from typing import Dict, FrozenSet, Tuple

from produce_orders.core.errors import Forbidden
from produce_orders.models.enums import OrderAction, OrderStatus

TRANSITIONS: Dict[Tuple[OrderStatus, OrderAction], OrderStatus] = {
    (OrderStatus.NEW, OrderAction.EDIT): OrderStatus.NEW,
    (OrderStatus.NEW, OrderAction.CONFIRM): OrderStatus.PROCESSING,
    (OrderStatus.NEW, OrderAction.CANCEL): OrderStatus.CANCELED,
    (OrderStatus.PROCESSING, OrderAction.SHIP): OrderStatus.SHIPPED,
    (OrderStatus.PROCESSING, OrderAction.CANCEL): OrderStatus.CANCELED,
    (OrderStatus.SHIPPED, OrderAction.COMPLETE): OrderStatus.COMPLETED,
}

REJECTION_CODES: Dict[OrderAction, Tuple[str, str]] = {
    OrderAction.EDIT: ("ORDER_NOT_EDITABLE", "Only NEW orders can be edited."),
    OrderAction.CONFIRM: ("ORDER_CONFIRM_FORBIDDEN", "Only NEW orders can be confirmed."),
    OrderAction.SHIP: ("ORDER_SHIP_FORBIDDEN", "Only PROCESSING orders can be shipped."),
    OrderAction.COMPLETE: ("ORDER_COMPLETE_FORBIDDEN", "Only SHIPPED orders can be completed."),
    OrderAction.CANCEL: (
        "ORDER_CANCEL_FORBIDDEN",
        "Only NEW or PROCESSING orders can be canceled.",
    ),
}

TERMINAL_STATES: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELED}
)


def can_apply(current: OrderStatus, action: OrderAction) -> bool:
    return (current, action) in TRANSITIONS


def next_status(current: OrderStatus, action: OrderAction) -> OrderStatus:
    """
    Status an order moves to when ``action`` is applied.

    Raises:
        Forbidden: The action is not allowed from ``current``
    """
    target = TRANSITIONS.get((current, action))
    if target is None:
        code, message = REJECTION_CODES[action]
        raise Forbidden(code, message, {"status": current.value, "action": action.value})
    return target
