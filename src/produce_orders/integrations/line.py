"""
LINE push notifications for order lifecycle events.

Messages go through the LINE Messaging API push endpoint. Delivery is best
effort: failures are logged and reported as ``False``, never raised.
"""

import asyncio
from typing import Dict, Iterable, Optional

import httpx

from produce_orders.config.constants import (
    LINE_MAX_MESSAGE_LENGTH,
    LINE_PUSH_ENDPOINT,
    LINE_REQUEST_TIMEOUT,
)
from produce_orders.config.settings import Settings
from produce_orders.core.logger import setup_logger

logger = setup_logger(__name__)


class LinePushClient:
    """Thin async client for one push request per recipient."""

    def __init__(
        self,
        access_token: str,
        endpoint: str = LINE_PUSH_ENDPOINT,
        timeout: float = LINE_REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.endpoint = endpoint
        self.timeout = timeout
        self._transport = transport

    async def send(self, recipient: str, text: str) -> bool:
        """
        Push one text message.

        Args:
            recipient: LINE user id
            text: Message body (truncated to the API limit)

        Returns:
            True if LINE accepted the message
        """
        if len(text) > LINE_MAX_MESSAGE_LENGTH:
            text = text[: LINE_MAX_MESSAGE_LENGTH - 3] + "..."

        payload = {"to": recipient, "messages": [{"type": "text", "text": text}]}
        headers = {"Authorization": f"Bearer {self.access_token}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
                response.raise_for_status()
            logger.debug(f"LINE push delivered to {recipient}")
            return True

        except httpx.TimeoutException:
            logger.error(f"LINE push to {recipient} timed out after {self.timeout}s")
            return False

        except httpx.HTTPStatusError as e:
            logger.error(
                f"LINE push to {recipient} rejected: HTTP {e.response.status_code} "
                f"{e.response.text[:200]}"
            )
            return False

        except httpx.HTTPError as e:
            logger.error(f"LINE push to {recipient} failed: {type(e).__name__}: {e}")
            return False


class LineNotifier:
    """Fan-out of one message to many LINE recipients."""

    def __init__(self, client: Optional[LinePushClient] = None, enabled: bool = True):
        self.client = client
        self.enabled = bool(enabled and client is not None)

        if not self.enabled:
            logger.info("LINE notifications disabled (push off or no credentials)")

    async def notify(self, recipient_ids: Iterable[str], message: str) -> Dict[str, bool]:
        """
        Send ``message`` to every recipient concurrently.

        Returns:
            Delivery result per recipient id (empty when disabled)
        """
        recipients = list(dict.fromkeys(r for r in recipient_ids if r))
        if not self.enabled or not recipients:
            return {}

        results = await asyncio.gather(
            *(self.client.send(recipient, message) for recipient in recipients),
            return_exceptions=True,
        )

        delivered: Dict[str, bool] = {}
        for recipient, result in zip(recipients, results):
            if isinstance(result, Exception):
                logger.error(f"LINE push to {recipient} raised: {result}")
                delivered[recipient] = False
            else:
                delivered[recipient] = bool(result)

        sent = sum(1 for ok in delivered.values() if ok)
        logger.info(f"LINE push sent to {sent}/{len(recipients)} recipients")
        return delivered


_notifier: Optional[LineNotifier] = None


def build_notifier(app_settings: Settings) -> LineNotifier:
    """Notifier for the given settings; disabled unless push and credentials are set."""
    if not app_settings.line_push_enabled:
        return LineNotifier(client=None, enabled=False)
    return LineNotifier(client=LinePushClient(app_settings.line_channel_access_token))


def get_notifier(app_settings: Optional[Settings] = None) -> LineNotifier:
    """Get or create the process-wide notifier."""
    global _notifier
    if _notifier is None:
        if app_settings is None:
            from produce_orders.config.settings import settings as app_settings
        _notifier = build_notifier(app_settings)
    return _notifier
