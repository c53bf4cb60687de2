import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.models.accommodation import PricingMode
from app.models.base import Base


class BookingKind(enum.Enum):
    ONLINE = "online"
    ONSITE = "onsite"
    WALKIN = "walkin"


class BookingStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(enum.Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


# Statuses that hold an accommodation for their date range
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_code = Column(String(16), nullable=False, unique=True, index=True)

    # Denormalized copy of the accommodation's owner
    establishment_id = Column(Integer, ForeignKey("establishments.id"), nullable=False)
    accommodation_id = Column(Integer, ForeignKey("accommodations.id"), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)

    kind = Column(Enum(BookingKind), default=BookingKind.ONLINE, nullable=False)
    check_in = Column(DateTime, nullable=False)
    check_out = Column(DateTime, nullable=False)
    number_of_guests = Column(Integer, nullable=False)

    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False)
    payment_status = Column(
        Enum(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False
    )

    # Client contact as given on this booking
    client_first_name = Column(String, nullable=False)
    client_last_name = Column(String, nullable=False)
    client_email = Column(String, nullable=False, index=True)
    client_phone = Column(String, nullable=True)
    client_id_number = Column(String, nullable=True)
    companions = Column(JSON, nullable=True)  # [{"first_name": ..., "last_name": ...}]

    # Pricing breakdown; discount and tax are filled in downstream by invoicing
    pricing_mode = Column(Enum(PricingMode), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Numeric(14, 2), nullable=False)
    discount = Column(Numeric(14, 2), nullable=True)
    tax = Column(Numeric(14, 2), nullable=True)
    total = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), default="BIF", nullable=False)

    notes = Column(Text)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    establishment = relationship("Establishment", back_populates="bookings")
    accommodation = relationship("Accommodation", back_populates="bookings")
    client = relationship("Client", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("check_out > check_in", name="check_booking_range_order"),
        CheckConstraint("number_of_guests >= 1", name="check_booking_guests_positive"),
        Index(
            "idx_bookings_accommodation_range",
            "accommodation_id",
            "check_in",
            "check_out",
        ),
        Index(
            "idx_bookings_establishment_status_check_in",
            "establishment_id",
            "status",
            "check_in",
        ),
        Index("idx_bookings_created_at", "created_at"),
    )
