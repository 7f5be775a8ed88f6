"""
Seed a development database with one orderer, two farmers and a small catalog.

Usage:
    python -m produce_orders.seed

Existing rows (matched by id) are left untouched, so the script can be rerun.
"""

import asyncio
from datetime import datetime
from decimal import Decimal

from produce_orders.config.settings import settings
from produce_orders.core.logger import setup_logger
from produce_orders.db import (
    Company,
    InventoryLedgerEntry,
    Product,
    ProductSpecialPrice,
    ShipTo,
    UnitOfWork,
    User,
    UserSetting,
    get_engine,
    get_session_factory,
    init_db,
)
from produce_orders.models.enums import CompanyType, MovementType

logger = setup_logger(__name__)

FARMER_TANAKA_ID = "00000000-0000-0000-0000-000000000002"
FARMER_SUZUKI_ID = "00000000-0000-0000-0000-000000000003"
TOMATO_ID = "10000000-0000-0000-0000-000000000001"
CUCUMBER_ID = "10000000-0000-0000-0000-000000000002"
SPINACH_ID = "10000000-0000-0000-0000-000000000003"
SPECIAL_PRICE_ID = "20000000-0000-0000-0000-000000000001"
SHIP_TO_ID = "30000000-0000-0000-0000-000000000001"
BUYER_ID = "40000000-0000-0000-0000-000000000001"


def seed_rows(orderer_company_id: str) -> list:
    """Rows to create, parents before children."""
    return [
        Company(id=orderer_company_id, name="Acme Corp (Orderer)", type=CompanyType.ORDERER),
        Company(id=FARMER_TANAKA_ID, name="Farmer Tanaka", type=CompanyType.FARMER),
        Company(id=FARMER_SUZUKI_ID, name="Farmer Suzuki", type=CompanyType.FARMER),
        User(id=BUYER_ID, company_id=orderer_company_id, name="Purchasing Desk"),
        UserSetting(user_id=BUYER_ID, line_user_id=None, line_enabled=False),
        Product(
            id=TOMATO_ID,
            farmer_id=FARMER_TANAKA_ID,
            name="Tomato",
            sku="TOM-001",
            unit="kg",
            unit_price=Decimal("150.00"),
        ),
        Product(
            id=CUCUMBER_ID,
            farmer_id=FARMER_TANAKA_ID,
            name="Cucumber",
            sku="CUC-001",
            unit="kg",
            unit_price=Decimal("100.00"),
        ),
        Product(
            id=SPINACH_ID,
            farmer_id=FARMER_SUZUKI_ID,
            name="Spinach",
            sku="SPN-001",
            unit="bunch",
            unit_price=Decimal("80.00"),
        ),
        ProductSpecialPrice(
            id=SPECIAL_PRICE_ID,
            product_id=TOMATO_ID,
            price=Decimal("120.00"),
            start_at=datetime(2025, 1, 1),
            end_at=datetime(2025, 12, 31, 23, 59, 59),
        ),
        ShipTo(
            id=SHIP_TO_ID,
            company_id=orderer_company_id,
            label="Tokyo Warehouse",
            postal_code="150-0002",
            address="123 Shibuya, Tokyo, Japan",
            phone_number="+81-90-1234-5678",
        ),
    ]


async def seed(database_url: str, orderer_company_id: str) -> int:
    """
    Create missing seed rows and opening stock.

    Returns:
        Number of rows created
    """
    engine = get_engine(database_url)
    created = 0
    try:
        await init_db(engine)

        async with UnitOfWork(get_session_factory(engine)) as uow:
            for row in seed_rows(orderer_company_id):
                key = row.user_id if isinstance(row, UserSetting) else row.id
                if await uow.session.get(type(row), key) is None:
                    uow.session.add(row)
                    await uow.session.flush()
                    created += 1

            # Opening stock is only booked on the first run
            if created:
                for product_id, farmer_id, quantity in (
                    (TOMATO_ID, FARMER_TANAKA_ID, Decimal("50")),
                    (CUCUMBER_ID, FARMER_TANAKA_ID, Decimal("30")),
                    (SPINACH_ID, FARMER_SUZUKI_ID, Decimal("40")),
                ):
                    uow.session.add(
                        InventoryLedgerEntry(
                            product_id=product_id,
                            farmer_company_id=farmer_id,
                            movement_type=MovementType.ADJUST,
                            quantity=quantity,
                            note="Opening stock",
                        )
                    )
    finally:
        await engine.dispose()

    logger.info(f"Seed complete: {created} rows created")
    return created


def main() -> None:
    asyncio.run(seed(settings.database_url, settings.orderer_company_id))


if __name__ == "__main__":
    main()
