"""Tests for LINE push delivery and lifecycle message texts."""

import asyncio
import json
from datetime import datetime
from decimal import Decimal

import httpx
import pytest
import sentry_sdk

from conftest import FARMER_ID, ORDERER_ID, RecordingPushClient
from produce_orders.config.settings import Settings
from produce_orders.core.monitoring import order_scope
from produce_orders.integrations.line import LineNotifier, LinePushClient, build_notifier
from produce_orders.integrations.messages import build_message
from produce_orders.models.enums import OrderEvent, OrderStatus
from produce_orders.models.order import OrderResponse, ShipToSnapshot
from produce_orders.services.notifications import OrderNotificationService


def shaped_order(**overrides) -> OrderResponse:
    data = {
        "id": "order-1",
        "order_code": "ORD-20250601-ABC123",
        "status": OrderStatus.NEW,
        "orderer_company_id": ORDERER_ID,
        "farmer_company_id": FARMER_ID,
        "ordered_by_id": "user-1",
        "ordered_at": datetime(2025, 6, 1, 9, 5),
        "subtotal_amount": Decimal("1050.00"),
        "discount_amount": Decimal("50.00"),
        "total_amount": Decimal("1000.00"),
        "ship_to": ShipToSnapshot(label="Tokyo Warehouse"),
    }
    data.update(overrides)
    return OrderResponse(**data)


# ==================== Push client ====================


async def test_push_client_posts_text_message():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={})

    client = LinePushClient("secret-token", transport=httpx.MockTransport(handler))

    assert await client.send("U-1", "hello") is True

    sent = requests[0]
    assert sent.headers["Authorization"] == "Bearer secret-token"
    assert str(sent.url) == "https://api.line.me/v2/bot/message/push"
    assert json.loads(sent.content) == {"to": "U-1", "messages": [{"type": "text", "text": "hello"}]}


async def test_push_client_truncates_long_messages():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={})

    client = LinePushClient("token", transport=httpx.MockTransport(handler))
    await client.send("U-1", "x" * 6000)

    assert len(bodies[0]["messages"][0]["text"]) == 5000


async def test_push_client_reports_http_errors_as_false():
    client = LinePushClient(
        "token", transport=httpx.MockTransport(lambda request: httpx.Response(400, text="bad"))
    )

    assert await client.send("U-1", "hello") is False


async def test_push_client_reports_timeouts_as_false():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    client = LinePushClient("token", transport=httpx.MockTransport(handler))

    assert await client.send("U-1", "hello") is False


# ==================== Notifier ====================


async def test_notifier_fans_out_and_reports_per_recipient():
    client = RecordingPushClient(fail_for=("U-2",))
    notifier = LineNotifier(client)

    results = await notifier.notify(["U-1", "U-2", "U-1"], "hi")

    assert results == {"U-1": True, "U-2": False}
    assert sorted(call.recipient for call in client.calls) == ["U-1", "U-2"]


async def test_notifier_contains_client_exceptions():
    notifier = LineNotifier(RecordingPushClient(raise_error=RuntimeError("boom")))

    assert await notifier.notify(["U-1"], "hi") == {"U-1": False}


async def test_disabled_notifier_sends_nothing():
    client = RecordingPushClient()
    notifier = LineNotifier(client, enabled=False)

    assert await notifier.notify(["U-1"], "hi") == {}
    assert client.calls == []


@pytest.mark.parametrize(
    "flag,token,secret,enabled",
    [
        (True, "token", "secret", True),
        (False, "token", "secret", False),
        (True, None, "secret", False),
        (True, "token", None, False),
    ],
)
def test_push_requires_flag_and_both_credentials(flag, token, secret, enabled):
    app_settings = Settings(
        enable_line_push=flag,
        line_channel_access_token=token,
        line_channel_secret=secret,
    )

    assert app_settings.line_push_enabled is enabled
    assert build_notifier(app_settings).enabled is enabled


# ==================== Recipients ====================


async def test_only_active_opted_in_orderer_users_are_notified(session_factory, push_client, notifier):
    service = OrderNotificationService(session_factory, notifier)

    results = await service.notify_order_event(OrderEvent.CREATED, shaped_order())

    assert results == {"U-buyer": True}
    assert [call.recipient for call in push_client.calls] == ["U-buyer"]


async def test_notification_service_skips_when_disabled(session_factory):
    client = RecordingPushClient()
    service = OrderNotificationService(session_factory, LineNotifier(client, enabled=False))

    assert await service.notify_order_event(OrderEvent.CREATED, shaped_order()) == {}
    assert client.calls == []


# ==================== Messages ====================


def test_created_message():
    text = build_message(OrderEvent.CREATED, shaped_order())

    assert text.splitlines() == [
        "[New order]",
        "Order: ORD-20250601-ABC123",
        "Ordered at: 2025-06-01 09:05",
    ]


def test_shipped_message_includes_tracking_number():
    order = shaped_order(shipped_at=datetime(2025, 6, 2, 14, 0), tracking_number="TRK-1")

    text = build_message(OrderEvent.SHIPPED, order)

    assert "Shipped at: 2025-06-02 14:00" in text
    assert text.endswith("Tracking number: TRK-1")


def test_missing_timestamp_renders_dash():
    text = build_message(OrderEvent.CONFIRMED, shaped_order())

    assert text.splitlines()[-1] == "Confirmed at: -"


@pytest.mark.parametrize("event", list(OrderEvent))
def test_every_event_has_a_message(event):
    assert "ORD-20250601-ABC123" in build_message(event, shaped_order())


# ==================== Error tracking scope ====================


@pytest.fixture
def sentry_events():
    """Route sentry-sdk events into a list instead of the network."""
    events = []

    def keep(event, hint):
        events.append(event)
        return None

    sentry_sdk.init(
        dsn="https://public@glitchtip.example.invalid/1",
        before_send=keep,
        default_integrations=False,
    )
    yield events
    sentry_sdk.init()


def order_code_tags(events) -> list:
    return [event.get("tags", {}).get("order.code") for event in events]


async def test_order_scope_tags_stay_with_their_task(sentry_events):
    async def report(order_code):
        with order_scope(f"id-{order_code}", order_code, "created"):
            await asyncio.sleep(0)
            sentry_sdk.capture_message(f"failure for {order_code}")

    await asyncio.gather(report("ORD-A"), report("ORD-B"))
    sentry_sdk.capture_message("unrelated")

    assert sorted(order_code_tags(sentry_events[:2])) == ["ORD-A", "ORD-B"]
    assert order_code_tags(sentry_events[2:]) == [None]


async def test_notification_leaves_no_order_tags_behind(session_factory, notifier, sentry_events):
    service = OrderNotificationService(session_factory, notifier)

    await service.notify_order_event(OrderEvent.CREATED, shaped_order())
    sentry_sdk.capture_message("after notification")

    assert order_code_tags(sentry_events) == [None]
