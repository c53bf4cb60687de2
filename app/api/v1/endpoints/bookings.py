from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Query, status

from app.core.common_deps import (
    BookingServiceDep,
    ScopeDep,
    WriteUserDep,
)
from app.core.pagination import Page
from app.models.booking import BookingKind, BookingStatus, PaymentStatus
from app.schemas.booking import (
    Booking,
    BookingCreate,
    BookingFilters,
    BookingUpdate,
    PublicBooking,
    WalkInBookingCreate,
    WalkInDailyRevenue,
    WalkInStatistics,
)
from app.schemas.responses import MessageResponse

router = APIRouter()


@router.get("/", response_model=Page[Booking])
async def get_bookings(
    service: BookingServiceDep,
    scope: ScopeDep,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    establishment_id: Optional[int] = Query(
        None, description="Ignored for users bound to one establishment"
    ),
    accommodation_id: Optional[int] = Query(None),
    status: Optional[BookingStatus] = Query(None, description="Filter by status"),
    payment_status: Optional[PaymentStatus] = Query(None),
    kind: Optional[BookingKind] = Query(None),
    client_email: Optional[str] = Query(None),
    booking_code: Optional[str] = Query(None),
    check_in_from: Optional[datetime] = Query(None),
    check_in_to: Optional[datetime] = Query(None),
    search: Optional[str] = Query(
        None, description="Search in booking code, client name and email"
    ),
):
    """List bookings visible to the current user"""
    filters = BookingFilters(
        establishment_id=establishment_id,
        accommodation_id=accommodation_id,
        status=status,
        payment_status=payment_status,
        kind=kind,
        client_email=client_email,
        booking_code=booking_code,
        check_in_from=check_in_from,
        check_in_to=check_in_to,
        search=search,
    )
    return await service.list(filters, scope, page, page_size)


@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    service: BookingServiceDep,
    scope: ScopeDep,
    current_user: WriteUserDep,
):
    """Create a pending booking and reserve its accommodation"""
    return await service.create(booking_data, scope, created_by=current_user.id)


@router.post("/walkin", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_walkin_booking(
    booking_data: WalkInBookingCreate,
    service: BookingServiceDep,
    scope: ScopeDep,
    current_user: WriteUserDep,
):
    """Create a same-day walk-in booking"""
    return await service.create_walkin(booking_data, scope, created_by=current_user.id)


@router.get("/walkin", response_model=List[Booking])
async def get_walkin_bookings(
    service: BookingServiceDep,
    scope: ScopeDep,
    accommodation_id: int = Query(...),
    day: date = Query(..., alias="date", description="Day (YYYY-MM-DD)"),
):
    """Walk-ins of an accommodation for one day"""
    return await service.get_walkin_bookings_by_date(accommodation_id, day, scope)


@router.get("/walkin/daily-revenue", response_model=WalkInDailyRevenue)
async def get_walkin_daily_revenue(
    service: BookingServiceDep,
    scope: ScopeDep,
    accommodation_id: int = Query(...),
    day: date = Query(..., alias="date", description="Day (YYYY-MM-DD)"),
):
    """Confirmed and completed walk-in revenue of an accommodation for one day"""
    total_revenue = await service.calculate_daily_walkin_revenue(
        accommodation_id, day, scope
    )
    return WalkInDailyRevenue(
        accommodation_id=accommodation_id, date=day, total_revenue=total_revenue
    )


@router.get("/walkin/statistics", response_model=WalkInStatistics)
async def get_walkin_statistics(
    service: BookingServiceDep,
    scope: ScopeDep,
    start_date: date = Query(...),
    end_date: date = Query(...),
    establishment_id: Optional[int] = Query(None),
):
    """Walk-in counts and revenue per accommodation over a date window"""
    return await service.get_walkin_statistics(
        scope, start_date, end_date, establishment_id=establishment_id
    )


@router.get("/by-code/{booking_code}", response_model=PublicBooking)
async def track_booking(booking_code: str, service: BookingServiceDep):
    """Public booking tracking by code; no authentication required"""
    return await service.get_by_code(booking_code)


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: int,
    service: BookingServiceDep,
    scope: ScopeDep,
):
    return await service.get(booking_id, scope)


@router.put("/{booking_id}", response_model=Booking)
async def update_booking(
    booking_id: int,
    booking_data: BookingUpdate,
    service: BookingServiceDep,
    scope: ScopeDep,
    current_user: WriteUserDep,
):
    """Update booking details; date changes are re-checked and re-priced"""
    return await service.update(booking_id, booking_data, scope)


@router.delete("/{booking_id}", response_model=MessageResponse)
async def delete_booking(
    booking_id: int,
    service: BookingServiceDep,
    scope: ScopeDep,
    current_user: WriteUserDep,
):
    await service.delete(booking_id, scope)
    return MessageResponse(message="Booking deleted successfully")


# Status management operations
@router.post("/{booking_id}/confirm", response_model=Booking)
async def confirm_booking(
    booking_id: int,
    service: BookingServiceDep,
    scope: ScopeDep,
    current_user: WriteUserDep,
):
    """Confirm a pending booking and mark it paid"""
    return await service.confirm(booking_id, scope)


@router.post("/{booking_id}/complete", response_model=Booking)
async def complete_booking(
    booking_id: int,
    service: BookingServiceDep,
    scope: ScopeDep,
    current_user: WriteUserDep,
):
    """Complete a confirmed booking and release its accommodation"""
    return await service.complete(booking_id, scope)


@router.post("/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: int,
    service: BookingServiceDep,
    scope: ScopeDep,
    current_user: WriteUserDep,
):
    return await service.cancel(booking_id, scope)
