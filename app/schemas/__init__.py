from .accommodation import Accommodation, AccommodationCreate, AccommodationFilters
from .booking import (
    Booking,
    BookingCreate,
    BookingFilters,
    BookingUpdate,
    ClientInfo,
    Companion,
    PricingBreakdown,
    PublicBooking,
    WalkInAccommodationStatistics,
    WalkInBookingCreate,
    WalkInDailyRevenue,
    WalkInStatistics,
    WalkInStatisticsFilters,
)
from .establishment import Establishment, EstablishmentFilters
from .user import LoginRequest, Token

__all__ = [
    # User schemas
    "Token", "LoginRequest",
    # Establishment schemas
    "Establishment", "EstablishmentFilters",
    # Accommodation schemas
    "Accommodation", "AccommodationCreate", "AccommodationFilters",
    # Booking schemas
    "Booking", "BookingCreate", "WalkInBookingCreate", "BookingUpdate",
    "BookingFilters", "ClientInfo", "Companion", "PricingBreakdown",
    "PublicBooking", "WalkInDailyRevenue",
    "WalkInStatistics", "WalkInStatisticsFilters", "WalkInAccommodationStatistics",
]
