from .accommodation_service import AccommodationService
from .auth_service import AuthService
from .availability_service import AvailabilityService, ranges_overlap
from .booking_code_service import (
    BookingCodeAllocator,
    extract_date_from_booking_code,
    generate_booking_code,
    is_valid_booking_code,
)
from .booking_service import BookingService
from .client_service import ClientService
from .establishment_service import EstablishmentService
from .pricing_service import PricingService, calculate_pricing

__all__ = [
    "AuthService",
    "AccommodationService",
    "AvailabilityService",
    "BookingCodeAllocator",
    "BookingService",
    "ClientService",
    "EstablishmentService",
    "PricingService",
    "calculate_pricing",
    "ranges_overlap",
    "generate_booking_code",
    "is_valid_booking_code",
    "extract_date_from_booking_code",
]
