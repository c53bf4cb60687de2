import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.core.query_builders import AccommodationQueryBuilder
from app.core.scope import AccessValidator, Scope
from app.core.service_utils import ensure_exists
from app.models.accommodation import Accommodation, AccommodationStatus, PricingMode
from app.models.establishment import Establishment
from app.schemas.accommodation import AccommodationCreate, AccommodationFilters

logger = logging.getLogger(__name__)


class AccommodationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, accommodation_id: int) -> Optional[Accommodation]:
        stmt = select(Accommodation).where(Accommodation.id == accommodation_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, accommodation_id: int, scope: Scope) -> Accommodation:
        accommodation = await self.get_by_id(accommodation_id)
        accommodation = ensure_exists(accommodation, "Accommodation", accommodation_id)
        AccessValidator.enforce(scope, accommodation.establishment_id, "accommodation")
        return accommodation

    async def list(
        self, scope: Scope, filters: Optional[AccommodationFilters] = None
    ) -> List[Accommodation]:
        filters = AccessValidator.apply_filter(scope, filters or AccommodationFilters())

        stmt = (
            AccommodationQueryBuilder(Accommodation)
            .filter_by_establishment(filters.establishment_id)
            .filter_by_type(filters.type)
            .filter_by_status(filters.status)
            .filter_by_capacity(filters.min_guests)
            .order_by(Accommodation.name)
            .build()
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create(self, data: AccommodationCreate, scope: Scope) -> Accommodation:
        establishment_id = (
            data.establishment_id if scope.is_unrestricted else scope.establishment_id
        )
        if establishment_id is None:
            raise ValidationError(
                "establishment_id is required", "establishment_id", None
            )
        AccessValidator.enforce_modify(scope, establishment_id, "accommodation")

        stmt = select(Establishment).where(Establishment.id == establishment_id)
        result = await self.db.execute(stmt)
        establishment = ensure_exists(
            result.scalar_one_or_none(), "Establishment", establishment_id
        )

        values = data.model_dump(exclude={"establishment_id"}, exclude_none=True)
        values.setdefault("pricing_mode", PricingMode(establishment.pricing_mode.value))

        db_accommodation = Accommodation(
            **values,
            establishment_id=establishment.id,
            status=AccommodationStatus.AVAILABLE,
        )
        self.db.add(db_accommodation)
        await self.db.commit()
        await self.db.refresh(db_accommodation)

        logger.info(
            f"Created accommodation {db_accommodation.id} in establishment "
            f"{establishment.id}"
        )
        return db_accommodation
