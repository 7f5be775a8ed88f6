"""Effective price resolution (base price vs. time-windowed special price)."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from produce_orders.config.constants import MONEY_QUANTUM, ZERO
from produce_orders.core.clock import to_naive_utc, utcnow
from produce_orders.core.errors import BadRequest, ProductNotFound
from produce_orders.core.logger import setup_logger
from produce_orders.db.models import Product, ProductSpecialPrice
from produce_orders.db.repository import ProductRepository

logger = setup_logger(__name__)


@dataclass(frozen=True)
class EffectivePrice:
    unit_price: Decimal
    special_price_id: Optional[str] = None

    @property
    def is_special(self) -> bool:
        return self.special_price_id is not None


@dataclass(frozen=True)
class PricedProduct:
    """Product paired with the price that applies at the resolution time."""

    product: Product
    price: EffectivePrice


def _covering(as_of: datetime):
    """Window predicate: start <= as_of and (open-ended or end >= as_of)."""
    return (
        ProductSpecialPrice.start_at <= as_of,
        or_(ProductSpecialPrice.end_at.is_(None), ProductSpecialPrice.end_at >= as_of),
    )


# Latest start wins; identical starts fall back to creation time, then id
_WINDOW_PRECEDENCE = (
    ProductSpecialPrice.start_at.desc(),
    ProductSpecialPrice.created_at.desc(),
    ProductSpecialPrice.id.desc(),
)


class PriceResolver:
    """Resolves the unit price a product is charged at a point in time. Read-only."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.products = ProductRepository(session)

    async def resolve_effective_price(
        self, product_id: str, as_of: Optional[datetime] = None
    ) -> EffectivePrice:
        """
        Resolve the effective unit price of one product.

        Args:
            product_id: Product to price
            as_of: Point in time (defaults to now)

        Returns:
            EffectivePrice with the winning window id, or None for the base price

        Raises:
            ProductNotFound: Product does not exist or is inactive
        """
        product = await self.products.get(product_id)
        if product is None or not product.is_active:
            raise ProductNotFound(product_id)

        as_of = to_naive_utc(as_of) if as_of else utcnow()
        query = (
            select(ProductSpecialPrice)
            .where(ProductSpecialPrice.product_id == product_id, *_covering(as_of))
            .order_by(*_WINDOW_PRECEDENCE)
            .limit(1)
        )
        result = await self.session.execute(query)
        window = result.scalars().first()

        if window is None:
            return EffectivePrice(unit_price=product.unit_price)
        return EffectivePrice(unit_price=window.price, special_price_id=window.id)

    async def resolve_for_farmer(
        self,
        farmer_id: str,
        product_ids: Optional[Iterable[str]] = None,
        as_of: Optional[datetime] = None,
    ) -> List[PricedProduct]:
        """
        Batch form: effective price of every active product of a farmer.

        Args:
            farmer_id: Owning farmer company
            product_ids: Optional restriction to these product ids
            as_of: Point in time (defaults to now)

        Returns:
            One PricedProduct per active matching product
        """
        as_of = to_naive_utc(as_of) if as_of else utcnow()
        products = await self.products.get_active_for_farmer(farmer_id, product_ids)
        if not products:
            return []

        query = (
            select(ProductSpecialPrice)
            .where(ProductSpecialPrice.product_id.in_([p.id for p in products]), *_covering(as_of))
            .order_by(ProductSpecialPrice.product_id, *_WINDOW_PRECEDENCE)
        )
        result = await self.session.execute(query)

        winners: Dict[str, ProductSpecialPrice] = {}
        for window in result.scalars().all():
            winners.setdefault(window.product_id, window)

        priced = []
        for product in products:
            window = winners.get(product.id)
            if window is None:
                price = EffectivePrice(unit_price=product.unit_price)
            else:
                price = EffectivePrice(unit_price=window.price, special_price_id=window.id)
            priced.append(PricedProduct(product=product, price=price))

        logger.debug(f"Priced {len(priced)} products for farmer {farmer_id} as of {as_of}")
        return priced

    async def list_catalog(self, farmer_id: str, as_of: Optional[datetime] = None) -> List[PricedProduct]:
        """Effective prices for the farmer's whole active catalog."""
        return await self.resolve_for_farmer(farmer_id, as_of=as_of)


def line_total(unit_price: Decimal, quantity: Decimal) -> Decimal:
    return (unit_price * quantity).quantize(MONEY_QUANTUM)


def compute_total(subtotal: Decimal, discount: Decimal) -> Decimal:
    """
    Order total after discount.

    A discount larger than the subtotal is rejected instead of clamped.
    """
    total = subtotal - discount
    if total < ZERO:
        raise BadRequest(
            "DISCOUNT_EXCEEDS_SUBTOTAL",
            "Discount exceeds order subtotal.",
            {"subtotal": str(subtotal), "discount": str(discount)},
        )
    return total.quantize(MONEY_QUANTUM)
