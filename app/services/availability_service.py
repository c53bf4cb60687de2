"""
Availability checks for accommodations.

Standard bookings (online, onsite) are checked with a single SQL query over
every active booking of the accommodation. Walk-ins must not overlap any active
standard booking, and are otherwise checked against the same day's walk-ins
only, so one room can be sold to several short same-day stays.
"""

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.service_utils import day_bounds, normalize_instant
from app.models.booking import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingKind,
    BookingStatus,
)

logger = logging.getLogger(__name__)


def ranges_overlap(
    new_start: datetime,
    new_end: datetime,
    existing_start: datetime,
    existing_end: datetime,
) -> bool:
    """
    Three-way overlap test on half-open ranges.

    A new range conflicts when it starts inside the existing one, ends inside
    it, or swallows it. Touching endpoints (one ends when the other starts) do
    not overlap.
    """
    starts_inside = existing_start <= new_start < existing_end
    ends_inside = existing_start < new_end <= existing_end
    contains = new_start <= existing_start and existing_end <= new_end
    return starts_inside or ends_inside or contains


def overlap_condition(check_in: datetime, check_out: datetime):
    """SQL form of ``ranges_overlap`` against ``Booking.check_in/check_out``."""
    return or_(
        and_(Booking.check_in <= check_in, Booking.check_out > check_in),
        and_(Booking.check_in < check_out, Booking.check_out >= check_out),
        and_(Booking.check_in >= check_in, Booking.check_out <= check_out),
    )


class AvailabilityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_available(
        self,
        accommodation_id: int,
        check_in: datetime,
        check_out: datetime,
        kind: BookingKind = BookingKind.ONLINE,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        """Return True when no active booking conflicts with the range."""
        check_in = normalize_instant(check_in)
        check_out = normalize_instant(check_out)

        if kind == BookingKind.WALKIN:
            available = await self._walkin_available(
                accommodation_id, check_in, check_out, exclude_booking_id
            )
        else:
            available = await self._standard_available(
                accommodation_id, check_in, check_out, exclude_booking_id
            )

        logger.debug(
            f"Availability of accommodation {accommodation_id} "
            f"[{check_in} - {check_out}] ({kind.value}): {available}"
        )
        return available

    async def _standard_available(
        self,
        accommodation_id: int,
        check_in: datetime,
        check_out: datetime,
        exclude_booking_id: Optional[int],
        ignore_walkins: bool = False,
    ) -> bool:
        conditions = [
            Booking.accommodation_id == accommodation_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            overlap_condition(check_in, check_out),
        ]

        if exclude_booking_id:
            conditions.append(Booking.id != exclude_booking_id)
        if ignore_walkins:
            conditions.append(Booking.kind != BookingKind.WALKIN)

        stmt = select(func.count(Booking.id)).where(and_(*conditions))
        result = await self.db.execute(stmt)
        return result.scalar() == 0

    async def _walkin_available(
        self,
        accommodation_id: int,
        check_in: datetime,
        check_out: datetime,
        exclude_booking_id: Optional[int],
    ) -> bool:
        # A walk-in never fits inside a running online or onsite stay
        if not await self._standard_available(
            accommodation_id,
            check_in,
            check_out,
            exclude_booking_id,
            ignore_walkins=True,
        ):
            return False

        same_day = await self.get_walkins_for_day(
            accommodation_id, check_in, statuses=ACTIVE_BOOKING_STATUSES
        )
        for booking in same_day:
            if exclude_booking_id and booking.id == exclude_booking_id:
                continue
            if ranges_overlap(check_in, check_out, booking.check_in, booking.check_out):
                return False
        return True

    async def get_walkins_for_day(
        self,
        accommodation_id: int,
        day: date,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> List[Booking]:
        """Walk-ins of an accommodation whose check-in falls on ``day``."""
        start_of_day, end_of_day = day_bounds(
            day.date() if isinstance(day, datetime) else day
        )
        conditions = [
            Booking.accommodation_id == accommodation_id,
            Booking.kind == BookingKind.WALKIN,
            Booking.check_in >= start_of_day,
            Booking.check_in <= end_of_day,
        ]
        if statuses is not None:
            conditions.append(Booking.status.in_(list(statuses)))

        stmt = select(Booking).where(and_(*conditions)).order_by(Booking.check_in)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
