from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from app.models.accommodation import PricingMode
from app.models.booking import BookingKind, BookingStatus, PaymentStatus


class ClientInfo(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    id_number: Optional[str] = None


class Companion(BaseModel):
    first_name: str
    last_name: str
    id_number: Optional[str] = None


class PricingBreakdown(BaseModel):
    """Deterministic price of a stay; discount and tax are applied downstream."""

    model_config = ConfigDict(frozen=True)

    mode: PricingMode
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    total: Decimal
    currency: str = "BIF"
    discount: Optional[Decimal] = None
    tax: Optional[Decimal] = None


class BookingBase(BaseModel):
    accommodation_id: int
    check_in: datetime
    check_out: datetime
    number_of_guests: int = Field(
        gt=0, description="Number of guests must be greater than 0"
    )
    client_info: ClientInfo
    companions: List[Companion] = Field(default_factory=list)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_range_order(self):
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self


class BookingCreate(BookingBase):
    # Ignored for restricted principals; their own establishment is used
    establishment_id: Optional[int] = None
    kind: BookingKind = BookingKind.ONLINE


class WalkInBookingCreate(BookingBase):
    """Schema for walk-in bookings; the kind is implied by the endpoint"""

    establishment_id: Optional[int] = None


class BookingUpdate(BaseModel):
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    number_of_guests: Optional[int] = Field(None, gt=0)
    payment_status: Optional[PaymentStatus] = None
    client_info: Optional[ClientInfo] = None
    companions: Optional[List[Companion]] = None
    notes: Optional[str] = None


class BookingFilters(BaseModel):
    """List filters; establishment_id is overwritten for restricted scopes"""

    establishment_id: Optional[int] = None
    accommodation_id: Optional[int] = None
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    kind: Optional[BookingKind] = None
    client_email: Optional[str] = None
    booking_code: Optional[str] = None
    check_in_from: Optional[datetime] = None
    check_in_to: Optional[datetime] = None
    search: Optional[str] = None


class Booking(BaseModel):
    id: int
    booking_code: str
    establishment_id: int
    accommodation_id: int
    client_id: int
    kind: BookingKind
    check_in: datetime
    check_out: datetime
    number_of_guests: int
    status: BookingStatus
    payment_status: PaymentStatus
    client_first_name: str
    client_last_name: str
    client_email: str
    client_phone: Optional[str] = None
    companions: Optional[List[Companion]] = None
    pricing_mode: PricingMode
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    discount: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    total: Decimal
    currency: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PublicBooking(BaseModel):
    """Booking as shown to a guest tracking it by code"""

    booking_code: str
    establishment_id: int
    accommodation_id: int
    kind: BookingKind
    check_in: datetime
    check_out: datetime
    number_of_guests: int
    status: BookingStatus
    payment_status: PaymentStatus
    total: Decimal
    currency: str

    model_config = ConfigDict(from_attributes=True)


class WalkInDailyRevenue(BaseModel):
    accommodation_id: int
    date: date
    total_revenue: Decimal


class WalkInStatisticsFilters(BaseModel):
    """Statistics window; establishment_id is overwritten for restricted scopes"""

    establishment_id: Optional[int] = None
    start_date: date
    end_date: date


class WalkInAccommodationStatistics(BaseModel):
    accommodation_id: int
    accommodation_name: str
    booking_count: int
    revenue: Decimal


class WalkInStatistics(BaseModel):
    establishment_id: int
    start_date: date
    end_date: date
    total_bookings: int
    total_revenue: Decimal
    average_revenue_per_booking: Decimal
    accommodation_breakdown: List[WalkInAccommodationStatistics] = Field(
        default_factory=list
    )
