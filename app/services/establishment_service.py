from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.scope import AccessValidator, Scope
from app.core.service_utils import ensure_exists
from app.models.establishment import Establishment
from app.schemas.establishment import EstablishmentFilters


class EstablishmentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, establishment_id: int) -> Optional[Establishment]:
        stmt = select(Establishment).where(Establishment.id == establishment_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, establishment_id: int, scope: Scope) -> Establishment:
        AccessValidator.enforce(scope, establishment_id, "establishment")
        establishment = await self.get_by_id(establishment_id)
        return ensure_exists(establishment, "Establishment", establishment_id)

    async def list(
        self, scope: Scope, filters: Optional[EstablishmentFilters] = None
    ) -> List[Establishment]:
        filters = AccessValidator.apply_filter(scope, filters or EstablishmentFilters())

        stmt = select(Establishment)
        if filters.establishment_id is not None:
            stmt = stmt.where(Establishment.id == filters.establishment_id)
        if filters.is_active is not None:
            stmt = stmt.where(Establishment.is_active == filters.is_active)

        result = await self.db.execute(stmt.order_by(Establishment.name))
        return list(result.scalars().all())
