"""Pytest fixtures: an on-disk SQLite database per test with a small seeded tenant."""

import os

os.environ.setdefault("LOG_TO_FILE", "false")

from dataclasses import dataclass  # noqa: E402
from datetime import datetime  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402

from produce_orders.core.tasks import wait_for_pending_tasks  # noqa: E402
from produce_orders.db import (  # noqa: E402
    Company,
    Product,
    ProductSpecialPrice,
    ShipTo,
    ShipToFarmerRoute,
    UnitOfWork,
    User,
    UserSetting,
    get_engine,
    get_session_factory,
    init_db,
)
from produce_orders.integrations.line import LineNotifier  # noqa: E402
from produce_orders.models.enums import CompanyType  # noqa: E402
from produce_orders.models.order import OrderCreate, OrderItemInput  # noqa: E402
from produce_orders.services.inventory import InventoryLedger  # noqa: E402
from produce_orders.services.notifications import OrderNotificationService  # noqa: E402
from produce_orders.services.order_service import OrderContext, OrderService  # noqa: E402

ORDERER_ID = "00000000-0000-0000-0000-000000000001"
OTHER_ORDERER_ID = "00000000-0000-0000-0000-000000000009"
FARMER_ID = "00000000-0000-0000-0000-000000000002"
OTHER_FARMER_ID = "00000000-0000-0000-0000-000000000003"

BUYER_ID = "40000000-0000-0000-0000-000000000001"
SILENT_BUYER_ID = "40000000-0000-0000-0000-000000000002"
OUTSIDER_ID = "40000000-0000-0000-0000-000000000003"

TOMATO_ID = "10000000-0000-0000-0000-000000000001"
CUCUMBER_ID = "10000000-0000-0000-0000-000000000002"
RETIRED_ID = "10000000-0000-0000-0000-000000000003"
SPINACH_ID = "10000000-0000-0000-0000-000000000004"

SHIP_TO_ID = "30000000-0000-0000-0000-000000000001"
BLOCKED_SHIP_TO_ID = "30000000-0000-0000-0000-000000000002"
FOREIGN_SHIP_TO_ID = "30000000-0000-0000-0000-000000000003"

FIXED_NOW = datetime(2025, 6, 1, 9, 0, 0)


@dataclass
class PushCall:
    recipient: str
    text: str


class RecordingPushClient:
    """Stands in for LinePushClient; records every push."""

    def __init__(self, fail_for: Tuple[str, ...] = (), raise_error: Optional[Exception] = None):
        self.calls: List[PushCall] = []
        self.fail_for = set(fail_for)
        self.raise_error = raise_error

    async def send(self, recipient: str, text: str) -> bool:
        if self.raise_error is not None:
            raise self.raise_error
        self.calls.append(PushCall(recipient, text))
        return recipient not in self.fail_for


def seed_rows() -> list:
    return [
        Company(id=ORDERER_ID, name="Acme Corp", type=CompanyType.ORDERER),
        Company(id=OTHER_ORDERER_ID, name="Rival Corp", type=CompanyType.ORDERER),
        Company(id=FARMER_ID, name="Farmer Tanaka", type=CompanyType.FARMER),
        Company(id=OTHER_FARMER_ID, name="Farmer Suzuki", type=CompanyType.FARMER),
        User(id=BUYER_ID, company_id=ORDERER_ID, name="Buyer"),
        User(id=SILENT_BUYER_ID, company_id=ORDERER_ID, name="Silent Buyer"),
        User(id=OUTSIDER_ID, company_id=OTHER_ORDERER_ID, name="Outsider"),
        UserSetting(user_id=BUYER_ID, line_user_id="U-buyer", line_enabled=True),
        UserSetting(user_id=SILENT_BUYER_ID, line_user_id="U-silent", line_enabled=False),
        UserSetting(user_id=OUTSIDER_ID, line_user_id="U-outsider", line_enabled=True),
        Product(id=TOMATO_ID, farmer_id=FARMER_ID, name="Tomato", sku="TOM-1", unit="kg",
                unit_price=Decimal("150.00")),
        Product(id=CUCUMBER_ID, farmer_id=FARMER_ID, name="Cucumber", sku="CUC-1", unit="kg",
                unit_price=Decimal("100.00")),
        Product(id=RETIRED_ID, farmer_id=FARMER_ID, name="Old Leek", sku="LEE-1", unit="kg",
                unit_price=Decimal("90.00"), is_active=False),
        Product(id=SPINACH_ID, farmer_id=OTHER_FARMER_ID, name="Spinach", sku="SPN-1", unit="bunch",
                unit_price=Decimal("80.00")),
        ShipTo(id=SHIP_TO_ID, company_id=ORDERER_ID, label="Tokyo Warehouse",
               address="123 Shibuya, Tokyo", phone_number="+81-90-1234-5678"),
        ShipTo(id=BLOCKED_SHIP_TO_ID, company_id=ORDERER_ID, label="Osaka Depot",
               address="1 Namba, Osaka"),
        ShipTo(id=FOREIGN_SHIP_TO_ID, company_id=OTHER_ORDERER_ID, label="Rival Dock",
               address="9 Harbor, Yokohama"),
        ShipToFarmerRoute(ship_to_id=BLOCKED_SHIP_TO_ID, farmer_company_id=FARMER_ID, is_enabled=False),
    ]


@pytest.fixture
async def engine(tmp_path):
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await init_db(engine)
    yield engine
    await wait_for_pending_tasks()
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    factory = get_session_factory(engine)
    async with UnitOfWork(factory) as uow:
        for row in seed_rows():
            uow.session.add(row)
            await uow.session.flush()
    return factory


@pytest.fixture
def ctx() -> OrderContext:
    return OrderContext(orderer_company_id=ORDERER_ID, clock=lambda: FIXED_NOW)


@pytest.fixture
def push_client() -> RecordingPushClient:
    return RecordingPushClient()


@pytest.fixture
def notifier(push_client) -> LineNotifier:
    return LineNotifier(client=push_client)


@pytest.fixture
def service(session_factory, notifier) -> OrderService:
    return OrderService(session_factory, OrderNotificationService(session_factory, notifier))


@pytest.fixture
def stock(session_factory):
    """Book stock for a product: ``await stock(TOMATO_ID, "5")``."""

    async def add(product_id: str, quantity, farmer_id: str = FARMER_ID):
        async with UnitOfWork(session_factory) as uow:
            await InventoryLedger(uow.session).record_adjustment(
                product_id, farmer_id, Decimal(str(quantity)), "test stock"
            )

    return add


@pytest.fixture
def balance(session_factory):
    """Current ledger balance: ``await balance(TOMATO_ID)``."""

    async def read(product_id: str, farmer_id: str = FARMER_ID) -> Decimal:
        async with UnitOfWork(session_factory) as uow:
            return await InventoryLedger(uow.session).current_balance(product_id, farmer_id)

    return read


@pytest.fixture
def special_price(session_factory):
    """Insert a special price window and return its id."""

    async def add(product_id: str, price, start_at: datetime, end_at: Optional[datetime] = None,
                  created_at: Optional[datetime] = None, window_id: Optional[str] = None) -> str:
        window = ProductSpecialPrice(
            product_id=product_id,
            price=Decimal(str(price)),
            start_at=start_at,
            end_at=end_at,
        )
        if created_at is not None:
            window.created_at = created_at
        if window_id is not None:
            window.id = window_id
        async with UnitOfWork(session_factory) as uow:
            uow.session.add(window)
            await uow.session.flush()
            return window.id

    return add


def order_payload(items=None, **overrides) -> OrderCreate:
    """Worked example by default: 5 tomatoes at 150 and 3 cucumbers at 100, discount 50."""
    if items is None:
        items = [(TOMATO_ID, "5"), (CUCUMBER_ID, "3")]
    data = {
        "farmer_company_id": FARMER_ID,
        "ship_to_id": SHIP_TO_ID,
        "ordered_by_id": BUYER_ID,
        "discount_amount": Decimal("50"),
        "items": [OrderItemInput(product_id=pid, quantity=Decimal(qty)) for pid, qty in items],
    }
    data.update(overrides)
    return OrderCreate(**data)
