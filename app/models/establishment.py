import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base


class EstablishmentPricingMode(enum.Enum):
    NIGHTLY = "nightly"
    MONTHLY = "monthly"


class Establishment(Base):
    __tablename__ = "establishments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    city = Column(String, nullable=True)
    description = Column(Text)
    total_capacity = Column(Integer, default=0, nullable=False)
    pricing_mode = Column(
        Enum(EstablishmentPricingMode),
        default=EstablishmentPricingMode.NIGHTLY,
        nullable=False,
    )
    # Deactivated, never hard-deleted
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    accommodations = relationship("Accommodation", back_populates="establishment")
    bookings = relationship("Booking", back_populates="establishment")
