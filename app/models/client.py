import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base


class ClientClassification(enum.Enum):
    REGULAR = "regular"
    WALKIN = "walkin"
    VIP = "vip"


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    # Stored lower-cased
    email = Column(String, nullable=False, unique=True, index=True)
    phone = Column(String, nullable=True, index=True)
    id_number = Column(String, nullable=True)
    classification = Column(
        Enum(ClientClassification), default=ClientClassification.REGULAR, nullable=False
    )
    total_stays = Column(Integer, default=0, nullable=False)
    total_spent = Column(Numeric(14, 2), default=0, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Booking history
    bookings = relationship("Booking", back_populates="client")
