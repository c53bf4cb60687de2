from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query, status

from app.core.common_deps import (
    AccommodationServiceDep,
    BookingServiceDep,
    ScopeDep,
    WriteUserDep,
)
from app.models.accommodation import AccommodationStatus, AccommodationType
from app.models.booking import BookingKind
from app.schemas.accommodation import (
    Accommodation,
    AccommodationCreate,
    AccommodationFilters,
)
from app.schemas.booking import PricingBreakdown
from app.schemas.responses import AccommodationAvailabilityResponse

router = APIRouter()


@router.get("/", response_model=List[Accommodation])
async def get_accommodations(
    service: AccommodationServiceDep,
    scope: ScopeDep,
    establishment_id: Optional[int] = Query(None),
    type: Optional[AccommodationType] = Query(None, description="Filter by type"),
    status: Optional[AccommodationStatus] = Query(
        None, description="Filter by accommodation status"
    ),
    min_guests: Optional[int] = Query(None, ge=1),
):
    filters = AccommodationFilters(
        establishment_id=establishment_id,
        type=type,
        status=status,
        min_guests=min_guests,
    )
    return await service.list(scope, filters)


@router.post("/", response_model=Accommodation, status_code=status.HTTP_201_CREATED)
async def create_accommodation(
    accommodation_data: AccommodationCreate,
    service: AccommodationServiceDep,
    scope: ScopeDep,
    current_user: WriteUserDep,
):
    return await service.create(accommodation_data, scope)


@router.get("/{accommodation_id}", response_model=Accommodation)
async def get_accommodation(
    accommodation_id: int,
    service: AccommodationServiceDep,
    scope: ScopeDep,
):
    return await service.get(accommodation_id, scope)


@router.get(
    "/{accommodation_id}/availability",
    response_model=AccommodationAvailabilityResponse,
)
async def check_accommodation_availability(
    accommodation_id: int,
    service: BookingServiceDep,
    scope: ScopeDep,
    check_in: datetime = Query(..., description="Check-in instant"),
    check_out: datetime = Query(..., description="Check-out instant"),
    kind: BookingKind = Query(BookingKind.ONLINE),
):
    """Check whether an accommodation is free for a range"""
    is_available = await service.check_availability(
        accommodation_id, check_in, check_out, kind, scope
    )
    return AccommodationAvailabilityResponse(
        accommodation_id=accommodation_id,
        check_in=check_in,
        check_out=check_out,
        kind=kind,
        is_available=is_available,
    )


@router.get("/{accommodation_id}/pricing", response_model=PricingBreakdown)
async def quote_accommodation_price(
    accommodation_id: int,
    service: BookingServiceDep,
    scope: ScopeDep,
    check_in: datetime = Query(..., description="Check-in instant"),
    check_out: datetime = Query(..., description="Check-out instant"),
    kind: BookingKind = Query(BookingKind.ONLINE),
):
    """Price quote for a stay, without reserving anything"""
    return await service.calculate_pricing(
        accommodation_id, check_in, check_out, kind, scope
    )
