from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.establishment import EstablishmentPricingMode


class EstablishmentFilters(BaseModel):
    establishment_id: Optional[int] = None
    is_active: Optional[bool] = True


class Establishment(BaseModel):
    id: int
    name: str
    city: Optional[str] = None
    total_capacity: int
    pricing_mode: EstablishmentPricingMode
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
