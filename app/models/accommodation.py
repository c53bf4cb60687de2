import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.models.base import Base


class AccommodationStatus(enum.Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class AccommodationType(enum.Enum):
    ROOM = "room"
    SUITE = "suite"
    HOUSE = "house"
    APARTMENT = "apartment"


class PricingMode(enum.Enum):
    NIGHTLY = "nightly"
    MONTHLY = "monthly"
    HOURLY = "hourly"


class Accommodation(Base):
    __tablename__ = "accommodations"

    id = Column(Integer, primary_key=True, index=True)
    # Owner is immutable once set
    establishment_id = Column(
        Integer, ForeignKey("establishments.id"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    type = Column(Enum(AccommodationType), default=AccommodationType.ROOM, nullable=False)
    max_guests = Column(Integer, nullable=False)

    # Rate card
    pricing_mode = Column(Enum(PricingMode), default=PricingMode.NIGHTLY, nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)
    seasonal_price = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), default="BIF", nullable=False)

    status = Column(
        Enum(AccommodationStatus), default=AccommodationStatus.AVAILABLE, nullable=False
    )
    comments = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Optimistic concurrency counter bumped on every UPDATE
    version = Column(Integer, nullable=False, default=1)

    establishment = relationship("Establishment", back_populates="accommodations")
    bookings = relationship("Booking", back_populates="accommodation")

    __mapper_args__ = {"version_id_col": version}

    @property
    def unit_price(self):
        if self.seasonal_price is not None:
            return self.seasonal_price
        return self.base_price
