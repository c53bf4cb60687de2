from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.accommodation import (
    AccommodationStatus,
    AccommodationType,
    PricingMode,
)


class AccommodationCreate(BaseModel):
    establishment_id: Optional[int] = None
    name: str = Field(min_length=1)
    type: AccommodationType = AccommodationType.ROOM
    max_guests: int = Field(gt=0)
    # Defaults to the establishment's pricing mode
    pricing_mode: Optional[PricingMode] = None
    base_price: Decimal = Field(ge=0)
    seasonal_price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    comments: Optional[str] = None


class AccommodationFilters(BaseModel):
    """List filters; establishment_id is overwritten for restricted scopes"""

    establishment_id: Optional[int] = None
    type: Optional[AccommodationType] = None
    status: Optional[AccommodationStatus] = None
    min_guests: Optional[int] = Field(None, gt=0)


class Accommodation(BaseModel):
    id: int
    establishment_id: int
    name: str
    type: AccommodationType
    max_guests: int
    pricing_mode: PricingMode
    base_price: Decimal
    seasonal_price: Optional[Decimal] = None
    currency: str
    status: AccommodationStatus
    comments: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
