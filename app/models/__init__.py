from app.models.accommodation import (
    Accommodation,
    AccommodationStatus,
    AccommodationType,
    PricingMode,
)
from app.models.booking import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingKind,
    BookingStatus,
    PaymentStatus,
)
from app.models.client import Client, ClientClassification
from app.models.establishment import Establishment, EstablishmentPricingMode
from app.models.user import User, UserRole

__all__ = [
    "Establishment",
    "EstablishmentPricingMode",
    "Accommodation",
    "AccommodationType",
    "AccommodationStatus",
    "PricingMode",
    "User",
    "UserRole",
    "Client",
    "ClientClassification",
    "Booking",
    "BookingKind",
    "BookingStatus",
    "PaymentStatus",
    "ACTIVE_BOOKING_STATUSES",
]
