"""Farmer catalog, price lookups and stock adjustments."""

from datetime import datetime
from typing import Optional

from produce_orders.core.clock import to_naive_utc, utcnow
from produce_orders.core.errors import BadRequest, NotFound, ProductNotFound
from produce_orders.core.logger import setup_logger
from produce_orders.db.repository import DirectoryRepository, ProductRepository
from produce_orders.db.unit_of_work import UnitOfWork
from produce_orders.models.enums import CompanyType
from produce_orders.models.order import LedgerEntryResponse
from produce_orders.models.product import (
    CatalogProduct,
    CatalogResponse,
    EffectivePriceResponse,
    InventoryBalanceResponse,
    StockAdjustmentCreate,
)
from produce_orders.services.inventory import InventoryLedger
from produce_orders.services.order_view import shape_ledger_entry
from produce_orders.services.pricing import PriceResolver

logger = setup_logger(__name__)


class CatalogService:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def get_catalog(self, farmer_id: str, as_of: Optional[datetime] = None) -> CatalogResponse:
        """Active products of a farmer with their effective prices."""
        as_of = to_naive_utc(as_of) if as_of else utcnow()

        async with UnitOfWork(self.session_factory) as uow:
            farmer = await self._get_farmer(uow.session, farmer_id)
            priced = await PriceResolver(uow.session).list_catalog(farmer.id, as_of=as_of)

            products = [
                CatalogProduct(
                    id=entry.product.id,
                    farmer_id=entry.product.farmer_id,
                    name=entry.product.name,
                    sku=entry.product.sku,
                    description=entry.product.description,
                    unit=entry.product.unit,
                    unit_price=entry.product.unit_price,
                    effective_price=entry.price.unit_price,
                    special_price_id=entry.price.special_price_id,
                    is_special=entry.price.is_special,
                )
                for entry in priced
            ]
            return CatalogResponse(farmer_id=farmer.id, farmer_name=farmer.name, as_of=as_of, products=products)

    async def get_effective_price(
        self, product_id: str, as_of: Optional[datetime] = None
    ) -> EffectivePriceResponse:
        as_of = to_naive_utc(as_of) if as_of else utcnow()
        async with UnitOfWork(self.session_factory) as uow:
            price = await PriceResolver(uow.session).resolve_effective_price(product_id, as_of)
        return EffectivePriceResponse(
            product_id=product_id,
            unit_price=price.unit_price,
            special_price_id=price.special_price_id,
            as_of=as_of,
        )

    async def get_balance(self, farmer_id: str, product_id: str) -> InventoryBalanceResponse:
        async with UnitOfWork(self.session_factory) as uow:
            await self._get_farmer_product(uow.session, farmer_id, product_id)
            balance = await InventoryLedger(uow.session).current_balance(product_id, farmer_id)
        return InventoryBalanceResponse(product_id=product_id, farmer_company_id=farmer_id, balance=balance)

    async def adjust_stock(
        self, farmer_id: str, product_id: str, data: StockAdjustmentCreate
    ) -> LedgerEntryResponse:
        """
        Record a stock receipt or correction as an ADJUST ledger entry.

        Raises:
            NotFound: Farmer or product missing, or product of another farmer
            BadRequest: Zero quantity
            Unprocessable: Correction below zero stock
        """
        async with UnitOfWork(self.session_factory) as uow:
            await self._get_farmer_product(uow.session, farmer_id, product_id)
            entry = await InventoryLedger(uow.session).record_adjustment(
                product_id, farmer_id, data.quantity, data.note
            )
            shaped = shape_ledger_entry(entry)

        logger.info(f"Stock of product {product_id} adjusted by {data.quantity} for farmer {farmer_id}")
        return shaped

    @staticmethod
    async def _get_farmer(session, farmer_id: str):
        farmer = await DirectoryRepository(session).get_company(farmer_id)
        if farmer is None:
            raise NotFound("FARMER_NOT_FOUND", "Farmer company not found.")
        if farmer.type != CompanyType.FARMER:
            raise BadRequest("INVALID_FARMER", "Target company is not marked as FARMER.")
        return farmer

    async def _get_farmer_product(self, session, farmer_id: str, product_id: str):
        await self._get_farmer(session, farmer_id)
        product = await ProductRepository(session).get(product_id)
        if product is None or product.farmer_id != farmer_id:
            raise ProductNotFound(product_id)
        return product
