"""Repositories for order, catalog and directory data access."""

from typing import Iterable, List, Optional

from sqlalchemy import and_, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from produce_orders.models.order import OrderListFilters

from .models import Company, Order, Product, ShipTo, ShipToFarmerRoute, User, UserSetting


class OrderRepository:
    """Data access layer for Order (items are loaded with the order)."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with async session."""
        self.session = session

    async def get(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        """
        Get an order with its items.

        Args:
            order_id: Order primary key
            for_update: Lock the order row until the transaction ends

        Returns:
            The order, or None when it does not exist
        """
        query = select(Order).where(Order.id == order_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalars().first()

    async def code_exists(self, order_code: str) -> bool:
        result = await self.session.execute(select(exists().where(Order.order_code == order_code)))
        return bool(result.scalar())

    async def add(self, order: Order) -> Order:
        self.session.add(order)
        await self.session.flush()
        return order

    async def list(self, orderer_company_id: str, filters: OrderListFilters) -> List[Order]:
        """List the orderer's orders, newest first."""
        query = select(Order).where(Order.orderer_company_id == orderer_company_id)

        if filters.status is not None:
            query = query.where(Order.status == filters.status)
        if filters.farmer_company_id:
            query = query.where(Order.farmer_company_id == filters.farmer_company_id)
        if filters.ordered_from is not None:
            query = query.where(Order.ordered_at >= filters.ordered_from)
        if filters.ordered_to is not None:
            query = query.where(Order.ordered_at <= filters.ordered_to)

        query = query.order_by(Order.ordered_at.desc(), Order.order_code.desc()).limit(filters.limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())


class ProductRepository:
    """Read-only access to farmer products."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, product_id: str) -> Optional[Product]:
        return await self.session.get(Product, product_id)

    async def get_active_for_farmer(
        self, farmer_id: str, product_ids: Optional[Iterable[str]] = None
    ) -> List[Product]:
        """Active products owned by the farmer, optionally restricted to ids."""
        query = select(Product).where(Product.farmer_id == farmer_id, Product.is_active.is_(True))
        if product_ids is not None:
            query = query.where(Product.id.in_(list(product_ids)))
        result = await self.session.execute(query.order_by(Product.name, Product.id))
        return list(result.scalars().all())


class DirectoryRepository:
    """Companies, users, ship-to destinations and their farmer routes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_company(self, company_id: str) -> Optional[Company]:
        return await self.session.get(Company, company_id)

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_ship_to(self, ship_to_id: str) -> Optional[ShipTo]:
        return await self.session.get(ShipTo, ship_to_id)

    async def get_route(self, ship_to_id: str, farmer_company_id: str) -> Optional[ShipToFarmerRoute]:
        query = select(ShipToFarmerRoute).where(
            ShipToFarmerRoute.ship_to_id == ship_to_id,
            ShipToFarmerRoute.farmer_company_id == farmer_company_id,
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def list_ship_tos(self, company_id: str, active_only: bool = False) -> List[ShipTo]:
        query = select(ShipTo).where(ShipTo.company_id == company_id)
        if active_only:
            query = query.where(ShipTo.is_active.is_(True))
        result = await self.session.execute(query.order_by(ShipTo.created_at, ShipTo.label))
        return list(result.scalars().all())

    async def find_ship_to_by_label(
        self, company_id: str, label: str, exclude_id: Optional[str] = None
    ) -> Optional[ShipTo]:
        query = select(ShipTo).where(ShipTo.company_id == company_id, ShipTo.label == label)
        if exclude_id:
            query = query.where(ShipTo.id != exclude_id)
        result = await self.session.execute(query)
        return result.scalars().first()

    async def add(self, instance) -> None:
        self.session.add(instance)
        await self.session.flush()

    async def line_recipients(self, company_id: str) -> List[str]:
        """LINE user ids of active users of the company that opted into push."""
        query = (
            select(UserSetting.line_user_id)
            .join(User, User.id == UserSetting.user_id)
            .where(
                and_(
                    User.company_id == company_id,
                    User.is_active.is_(True),
                    UserSetting.line_enabled.is_(True),
                    UserSetting.line_user_id.is_not(None),
                )
            )
            .order_by(UserSetting.line_user_id)
        )
        result = await self.session.execute(query)
        return [line_user_id for line_user_id in result.scalars().all() if line_user_id]
