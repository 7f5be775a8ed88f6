"""Lifecycle notifications sent after an order transaction commits."""

from typing import Dict

from produce_orders.core.logger import setup_logger
from produce_orders.core.monitoring import order_scope
from produce_orders.db.repository import DirectoryRepository
from produce_orders.integrations.line import LineNotifier
from produce_orders.integrations.messages import build_message
from produce_orders.models.enums import OrderEvent
from produce_orders.models.order import OrderResponse

logger = setup_logger(__name__)


class OrderNotificationService:
    """
    Pushes an order event to the orderer company's LINE recipients.

    Runs outside the order's transaction with its own read-only session, so
    nothing here can affect committed order state.
    """

    def __init__(self, session_factory, notifier: LineNotifier):
        self.session_factory = session_factory
        self.notifier = notifier

    @property
    def enabled(self) -> bool:
        return self.notifier.enabled

    async def notify_order_event(self, event: OrderEvent, order: OrderResponse) -> Dict[str, bool]:
        """
        Send the message for ``event`` to every opted-in user.

        Args:
            event: Lifecycle event that just committed
            order: Shaped order as committed

        Returns:
            Delivery result per LINE user id (empty when disabled or no recipients)
        """
        if not self.enabled:
            logger.debug(f"Skipping {event.value} notification for {order.order_code} (push disabled)")
            return {}

        with order_scope(order.id, order.order_code, event.value):
            return await self._send(event, order)

    async def _send(self, event: OrderEvent, order: OrderResponse) -> Dict[str, bool]:
        async with self.session_factory() as session:
            recipients = await DirectoryRepository(session).line_recipients(order.orderer_company_id)

        if not recipients:
            logger.info(f"No LINE recipients for {event.value} notification of {order.order_code}")
            return {}

        results = await self.notifier.notify(recipients, build_message(event, order))
        failed = [recipient for recipient, ok in results.items() if not ok]
        if failed:
            logger.warning(
                f"{event.value} notification for {order.order_code} failed for {len(failed)} recipients"
            )
        return results
