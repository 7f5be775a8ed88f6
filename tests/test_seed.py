"""Tests for the development seed script."""

from decimal import Decimal

from produce_orders import seed
from produce_orders.db import UnitOfWork, get_engine, get_session_factory
from produce_orders.services.inventory import InventoryLedger

ORDERER = "00000000-0000-0000-0000-000000000001"


async def test_seed_is_idempotent(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'seed.db'}"

    first = await seed.seed(url, ORDERER)
    second = await seed.seed(url, ORDERER)

    assert first == len(seed.seed_rows(ORDERER))
    assert second == 0

    engine = get_engine(url)
    try:
        async with UnitOfWork(get_session_factory(engine)) as uow:
            stock = await InventoryLedger(uow.session).current_balance(seed.TOMATO_ID, seed.FARMER_TANAKA_ID)
    finally:
        await engine.dispose()

    assert stock == Decimal("50")
