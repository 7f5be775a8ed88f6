"""Integrations module - Third-party service integrations (LINE Messaging API)."""

from produce_orders.integrations.line import LineNotifier, LinePushClient, get_notifier

__all__ = ["LineNotifier", "LinePushClient", "get_notifier"]
