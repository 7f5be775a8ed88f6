"""Ship-to destinations of the ordering company."""

from typing import List

from sqlalchemy.exc import IntegrityError

from produce_orders.core.errors import Conflict, NotFound
from produce_orders.core.logger import setup_logger
from produce_orders.db.models import ShipTo, new_id
from produce_orders.db.repository import DirectoryRepository
from produce_orders.db.unit_of_work import UnitOfWork
from produce_orders.models.ship_to import ShipToCreate, ShipToResponse, ShipToUpdate
from produce_orders.services.order_service import OrderContext

logger = setup_logger(__name__)


class ShipToService:
    """
    CRUD for ship-to destinations.

    Labels are unique per company. Deleting only deactivates, since orders
    keep referencing the destination.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def list_ship_tos(self, ctx: OrderContext, active_only: bool = False) -> List[ShipToResponse]:
        async with UnitOfWork(self.session_factory) as uow:
            ship_tos = await DirectoryRepository(uow.session).list_ship_tos(
                ctx.orderer_company_id, active_only=active_only
            )
            return [ShipToResponse.model_validate(ship_to) for ship_to in ship_tos]

    async def create_ship_to(self, ctx: OrderContext, data: ShipToCreate) -> ShipToResponse:
        async with UnitOfWork(self.session_factory) as uow:
            directory = DirectoryRepository(uow.session)
            await self._check_label(directory, ctx, data.label)

            now = ctx.now()
            ship_to = ShipTo(
                id=new_id(),
                company_id=ctx.orderer_company_id,
                label=data.label,
                postal_code=data.postal_code,
                address=data.address,
                phone_number=data.phone_number,
                is_active=data.is_active,
                created_at=now,
                updated_at=now,
            )
            try:
                await directory.add(ship_to)
            except IntegrityError as e:
                _raise_if_label_taken(e, data.label)
                raise
            shaped = ShipToResponse.model_validate(ship_to)

        logger.info(f"Created ship-to '{shaped.label}' ({shaped.id})")
        return shaped

    async def update_ship_to(self, ctx: OrderContext, ship_to_id: str, data: ShipToUpdate) -> ShipToResponse:
        async with UnitOfWork(self.session_factory) as uow:
            directory = DirectoryRepository(uow.session)
            ship_to = await self._get_owned(directory, ctx, ship_to_id)

            changes = data.model_dump(exclude_unset=True)
            if changes.get("label") and changes["label"] != ship_to.label:
                await self._check_label(directory, ctx, changes["label"], exclude_id=ship_to.id)

            for name, value in changes.items():
                if value is None and name in ("label", "address", "is_active"):
                    continue
                setattr(ship_to, name, value)
            ship_to.updated_at = ctx.now()
            label = ship_to.label
            try:
                await uow.session.flush()
            except IntegrityError as e:
                _raise_if_label_taken(e, label)
                raise
            shaped = ShipToResponse.model_validate(ship_to)

        logger.info(f"Updated ship-to {ship_to_id}: {sorted(changes)}")
        return shaped

    async def deactivate_ship_to(self, ctx: OrderContext, ship_to_id: str) -> ShipToResponse:
        async with UnitOfWork(self.session_factory) as uow:
            ship_to = await self._get_owned(DirectoryRepository(uow.session), ctx, ship_to_id)
            ship_to.is_active = False
            ship_to.updated_at = ctx.now()
            await uow.session.flush()
            shaped = ShipToResponse.model_validate(ship_to)

        logger.info(f"Deactivated ship-to {ship_to_id}")
        return shaped

    @staticmethod
    async def _get_owned(directory: DirectoryRepository, ctx: OrderContext, ship_to_id: str) -> ShipTo:
        ship_to = await directory.get_ship_to(ship_to_id)
        if ship_to is None or ship_to.company_id != ctx.orderer_company_id:
            raise NotFound("SHIP_TO_NOT_FOUND", "Ship-to destination not found.")
        return ship_to

    @staticmethod
    async def _check_label(directory, ctx: OrderContext, label: str, exclude_id=None) -> None:
        existing = await directory.find_ship_to_by_label(ctx.orderer_company_id, label, exclude_id)
        if existing is not None:
            raise Conflict("SHIP_TO_DUPLICATE", "A ship-to with this label already exists.", {"label": label})


def _raise_if_label_taken(error: IntegrityError, label: str) -> None:
    """A concurrent insert won the per-company label slot."""
    reason = str(error.orig)
    if "uq_ship_to_label" in reason or "ship_tos.label" in reason:
        raise Conflict(
            "SHIP_TO_DUPLICATE", "A ship-to with this label already exists.", {"label": label}
        ) from error
