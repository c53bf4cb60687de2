"""
Pricing of a stay from an accommodation's rate card.

``calculate_pricing`` is pure: the same accommodation, range and kind always
produce the same breakdown. Quantities are whole units rounded up with exact
``timedelta`` arithmetic, so a 25 hour nightly stay costs two nights.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.service_utils import ensure_exists, normalize_instant, validate_date_range
from app.models.accommodation import Accommodation, PricingMode
from app.models.booking import BookingKind
from app.schemas.booking import PricingBreakdown

PRICING_UNITS = {
    PricingMode.HOURLY: timedelta(hours=1),
    PricingMode.NIGHTLY: timedelta(hours=24),
    # Flat month; calendar months are not used
    PricingMode.MONTHLY: timedelta(days=30),
}


def units_between(check_in: datetime, check_out: datetime, unit: timedelta) -> int:
    """Number of whole ``unit`` periods covering the range, rounded up."""
    return -((check_in - check_out) // unit)


def calculate_pricing(
    accommodation: Accommodation,
    check_in: datetime,
    check_out: datetime,
    kind: BookingKind = BookingKind.ONLINE,
) -> PricingBreakdown:
    validate_date_range(check_in, check_out, "check_in", "check_out")

    unit_price = Decimal(accommodation.unit_price)

    if kind == BookingKind.WALKIN:
        # Walk-ins are sold as one night whatever the hours
        mode = PricingMode.NIGHTLY
        quantity = 1
    else:
        mode = accommodation.pricing_mode
        quantity = units_between(check_in, check_out, PRICING_UNITS[mode])

    subtotal = unit_price * quantity

    return PricingBreakdown(
        mode=mode,
        unit_price=unit_price,
        quantity=quantity,
        subtotal=subtotal,
        total=subtotal,
        currency=accommodation.currency or settings.DEFAULT_CURRENCY,
    )


class PricingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def calculate(
        self,
        accommodation_id: int,
        check_in: datetime,
        check_out: datetime,
        kind: BookingKind = BookingKind.ONLINE,
    ) -> PricingBreakdown:
        stmt = select(Accommodation).where(Accommodation.id == accommodation_id)
        result = await self.db.execute(stmt)
        accommodation = ensure_exists(
            result.scalar_one_or_none(), "Accommodation", accommodation_id
        )
        return calculate_pricing(
            accommodation,
            normalize_instant(check_in),
            normalize_instant(check_out),
            kind,
        )
