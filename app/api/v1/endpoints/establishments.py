from typing import List, Optional

from fastapi import APIRouter, Query

from app.core.common_deps import EstablishmentServiceDep, ScopeDep
from app.schemas.establishment import Establishment, EstablishmentFilters

router = APIRouter()


@router.get("/", response_model=List[Establishment])
async def get_establishments(
    service: EstablishmentServiceDep,
    scope: ScopeDep,
    is_active: Optional[bool] = Query(True, description="Filter by active flag"),
):
    """Establishments visible to the current user"""
    return await service.list(scope, EstablishmentFilters(is_active=is_active))


@router.get("/{establishment_id}", response_model=Establishment)
async def get_establishment(
    establishment_id: int,
    service: EstablishmentServiceDep,
    scope: ScopeDep,
):
    return await service.get(establishment_id, scope)
