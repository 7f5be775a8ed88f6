"""
GlitchTip Error Monitoring Utilities

Helper functions for error tracking and context management.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from produce_orders.core.logger import setup_logger

logger = setup_logger(__name__)


def init_monitoring(dsn: Optional[str], environment: str) -> bool:
    """
    Initialize GlitchTip (Sentry-compatible) monitoring.

    Args:
        dsn: GlitchTip DSN, monitoring stays off when empty
        environment: Deployment environment name

    Returns:
        True if monitoring was initialized
    """
    if not dsn:
        logger.info("GlitchTip monitoring disabled (no DSN)")
        return False

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                LoggingIntegration(
                    level=None,  # Capture all log levels as breadcrumbs
                    event_level=logging.ERROR,  # Send ERROR logs as events
                ),
            ],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.0,
            send_default_pii=False,
        )
        logger.info("GlitchTip error monitoring initialized")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize GlitchTip: {e}")
        return False


@contextmanager
def order_scope(
    order_id: str,
    order_code: Optional[str] = None,
    event: Optional[str] = None,
) -> Iterator[None]:
    """
    Fork the current scope and tag it with one order for error tracking.

    Tags live only inside the ``with`` block, so concurrent notification
    tasks never see each other's order.

    Args:
        order_id: Order primary key
        order_code: Human-readable order code
        event: Lifecycle event being processed
    """
    with sentry_sdk.new_scope() as scope:
        try:
            scope.set_tag("order.id", order_id)
            if order_code:
                scope.set_tag("order.code", order_code)
            if event:
                scope.set_tag("order.event", event)
            scope.set_context(
                "order",
                {"order_id": order_id, "order_code": order_code, "event": event},
            )
        except Exception as e:
            logger.warning(f"Failed to set order context: {e}")
        yield


def capture_exception(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
) -> None:
    """
    Capture an exception and send to GlitchTip.

    Args:
        error: The exception to capture
        context: Additional context data
        level: Error level (error, warning, info)
    """
    try:
        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context("custom", context)
            scope.set_level(level)
            sentry_sdk.capture_exception(error)
    except Exception as e:
        logger.warning(f"Failed to capture exception in GlitchTip: {e}")
