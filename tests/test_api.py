"""HTTP API tests through the ASGI app."""

from decimal import Decimal

import httpx
import pytest

from conftest import BUYER_ID, CUCUMBER_ID, FARMER_ID, ORDERER_ID, SHIP_TO_ID, TOMATO_ID
from produce_orders.config.settings import Settings
from produce_orders.core.tasks import wait_for_pending_tasks
from produce_orders.server.app import create_app


def order_body(**overrides) -> dict:
    body = {
        "farmer_company_id": FARMER_ID,
        "ship_to_id": SHIP_TO_ID,
        "ordered_by_id": BUYER_ID,
        "discount_amount": "50",
        "items": [
            {"product_id": TOMATO_ID, "quantity": "5"},
            {"product_id": CUCUMBER_ID, "quantity": "3"},
        ],
    }
    body.update(overrides)
    return body


@pytest.fixture
async def client(session_factory, notifier):
    app = create_app(
        Settings(orderer_company_id=ORDERER_ID, glitchtip_dsn=None),
        session_factory=session_factory,
        notifier=notifier,
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
    await wait_for_pending_tasks()


async def add_stock(client, product_id, quantity):
    response = await client.post(
        f"/farmers/{FARMER_ID}/products/{product_id}/inventory/adjustments",
        json={"quantity": quantity, "note": "delivery"},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_root_and_health(client):
    root = await client.get("/")
    health = await client.get("/health")

    assert root.status_code == 200
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["checks"]["database"] == "ok"


async def test_catalog_lists_active_products(client):
    response = await client.get(f"/farmers/{FARMER_ID}/products")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["farmer_name"] == "Farmer Tanaka"
    assert {p["name"] for p in data["products"]} == {"Tomato", "Cucumber"}
    assert all(p["is_special"] is False for p in data["products"])


async def test_catalog_of_unknown_farmer(client):
    response = await client.get("/farmers/nobody/products")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "FARMER_NOT_FOUND"


async def test_effective_price_endpoint(client):
    response = await client.get(f"/products/{TOMATO_ID}/price", params={"as_of": "2025-06-01T00:00:00"})

    assert response.status_code == 200
    assert Decimal(response.json()["data"]["unit_price"]) == Decimal("150")

    missing = await client.get("/products/nope/price")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "PRODUCT_NOT_FOUND"


async def test_stock_adjustment_and_balance(client):
    entry = await add_stock(client, TOMATO_ID, "12.5")
    assert entry["movement_type"] == "ADJUST"

    response = await client.get(f"/farmers/{FARMER_ID}/products/{TOMATO_ID}/inventory")
    assert Decimal(response.json()["data"]["balance"]) == Decimal("12.5")

    overdraw = await client.post(
        f"/farmers/{FARMER_ID}/products/{TOMATO_ID}/inventory/adjustments", json={"quantity": "-20"}
    )
    assert overdraw.status_code == 422
    assert overdraw.json()["error"]["code"] == "INSUFFICIENT_STOCK"


async def test_order_lifecycle_over_http(client, push_client):
    await add_stock(client, TOMATO_ID, "5")
    await add_stock(client, CUCUMBER_ID, "3")

    created = await client.post("/orders", json=order_body())
    assert created.status_code == 201, created.text
    order = created.json()["data"]
    assert Decimal(order["subtotal_amount"]) == Decimal("1050")
    assert Decimal(order["total_amount"]) == Decimal("1000")
    assert order["ship_to"]["label"] == "Tokyo Warehouse"

    order_id = order["id"]
    confirmed = await client.post(f"/orders/{order_id}/confirm")
    assert confirmed.status_code == 200
    assert confirmed.json()["data"]["status"] == "PROCESSING"

    shipped = await client.post(f"/orders/{order_id}/ship", json={"tracking_number": "TRK-42"})
    assert shipped.json()["data"]["status"] == "SHIPPED"

    completed = await client.post(f"/orders/{order_id}/complete")
    assert completed.json()["data"]["status"] == "COMPLETED"

    history = await client.get(f"/orders/{order_id}/inventory")
    assert [row["movement_type"] for row in history.json()["data"]] == [
        "ALLOCATE",
        "ALLOCATE",
        "DEALLOCATE",
        "SHIP",
        "DEALLOCATE",
        "SHIP",
    ]

    listed = await client.get("/orders", params={"status": "COMPLETED"})
    assert [o["id"] for o in listed.json()["data"]] == [order_id]

    await wait_for_pending_tasks()
    assert len(push_client.calls) == 4


async def test_insufficient_stock_error_body(client):
    await add_stock(client, TOMATO_ID, "4")
    await add_stock(client, CUCUMBER_ID, "3")
    order_id = (await client.post("/orders", json=order_body())).json()["data"]["id"]

    response = await client.post(f"/orders/{order_id}/confirm")

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "INSUFFICIENT_STOCK"
    assert error["details"]["items"][0]["product_id"] == TOMATO_ID


async def test_edit_order_over_http(client):
    order_id = (await client.post("/orders", json=order_body())).json()["data"]["id"]
    body = order_body(items=[{"product_id": CUCUMBER_ID, "quantity": "1"}], discount_amount="0")
    body.pop("ordered_by_id")

    response = await client.put(f"/orders/{order_id}", json=body)

    assert response.status_code == 200
    assert Decimal(response.json()["data"]["total_amount"]) == Decimal("100")


async def test_ship_without_tracking_number(client):
    order_id = (await client.post("/orders", json=order_body())).json()["data"]["id"]

    response = await client.post(f"/orders/{order_id}/ship")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "TRACKING_REQUIRED"


async def test_forbidden_transition_maps_to_403(client):
    order_id = (await client.post("/orders", json=order_body())).json()["data"]["id"]

    response = await client.post(f"/orders/{order_id}/complete")

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ORDER_COMPLETE_FORBIDDEN"


async def test_unknown_order_maps_to_404(client):
    response = await client.get("/orders/missing")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ORDER_NOT_FOUND"


async def test_malformed_body_is_validation_error(client):
    response = await client.post("/orders", json={"items": "nope"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_ship_to_crud(client):
    created = await client.post("/ship-tos", json={"label": "Nagoya Hub", "address": "5 Sakae, Nagoya"})
    assert created.status_code == 201
    ship_to_id = created.json()["data"]["id"]

    duplicate = await client.post("/ship-tos", json={"label": "Nagoya Hub", "address": "elsewhere"})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "SHIP_TO_DUPLICATE"

    renamed = await client.patch(f"/ship-tos/{ship_to_id}", json={"phone_number": "052-000-0000"})
    assert renamed.json()["data"]["phone_number"] == "052-000-0000"

    clash = await client.patch(f"/ship-tos/{ship_to_id}", json={"label": "Tokyo Warehouse"})
    assert clash.status_code == 409

    deleted = await client.delete(f"/ship-tos/{ship_to_id}")
    assert deleted.json()["data"]["is_active"] is False

    active = await client.get("/ship-tos", params={"active_only": "true"})
    labels = [s["label"] for s in active.json()["data"]]
    assert "Nagoya Hub" not in labels
    assert "Tokyo Warehouse" in labels

    missing = await client.patch("/ship-tos/nope", json={"label": "x"})
    assert missing.status_code == 404
