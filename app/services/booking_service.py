"""
Booking lifecycle: create, modify, confirm, complete, cancel and delete.

Every write runs in one transaction on the request's session. ``create`` locks
the accommodation row (``SELECT ... FOR UPDATE`` where the database supports
it) and bumps the accommodation's version counter, so two requests racing for
the same range serialize: the loser either waits on the lock and then sees the
winner's booking, or fails the version check on flush. Either way it gets
``NotAvailableError`` and nothing partial is stored.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import (
    AccommodationNotBookableError,
    BusinessRuleViolationError,
    CapacityExceededError,
    ConflictError,
    CrossEstablishmentRelationshipError,
    DomainException,
    InvalidStatusTransitionError,
    NotAvailableError,
    ValidationError,
)
from app.core.pagination import Page
from app.core.query_builders import BookingQueryBuilder
from app.core.scope import AccessValidator, Scope
from app.core.service_utils import (
    day_bounds,
    ensure_exists,
    local_now,
    normalize_instant,
    validate_date_range,
    validate_positive_integer,
)
from app.models.accommodation import Accommodation, AccommodationStatus
from app.models.booking import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingKind,
    BookingStatus,
    PaymentStatus,
)
from app.models.establishment import Establishment
from app.schemas.booking import Booking as BookingSchema
from app.schemas.booking import (
    BookingCreate,
    BookingFilters,
    BookingUpdate,
    PricingBreakdown,
    WalkInAccommodationStatistics,
    WalkInBookingCreate,
    WalkInStatistics,
    WalkInStatisticsFilters,
)
from app.services.availability_service import AvailabilityService
from app.services.booking_code_service import BookingCodeAllocator
from app.services.client_service import ClientService
from app.services.pricing_service import PricingService, calculate_pricing

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
}

# Walk-ins may share a reserved accommodation with other same-day walk-ins
WALKIN_BOOKABLE_STATUSES = (AccommodationStatus.AVAILABLE, AccommodationStatus.RESERVED)

# Statuses counted as walk-in revenue
REVENUE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)

WALKIN_LISTED_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.COMPLETED,
)

CONCURRENT_UPDATE_MESSAGE = "Accommodation was modified concurrently, please retry"


def ensure_same_day(check_in: datetime, check_out: datetime) -> None:
    """Walk-ins must check in and out on the same local day."""
    if check_in.date() != check_out.date():
        raise ValidationError(
            "Walk-in bookings must have check-in and check-out on the same day",
            "check_out",
            check_out.isoformat(),
        )


class BookingService:
    def __init__(
        self,
        db: AsyncSession,
        code_allocator: BookingCodeAllocator,
        clock: Callable[[], datetime] = local_now,
    ):
        self.db = db
        self.code_allocator = code_allocator
        self.clock = clock
        self.availability = AvailabilityService(db)
        self.clients = ClientService(db)

    # Reads

    async def get_by_id(self, booking_id: int) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, booking_id: int, scope: Scope) -> Booking:
        booking = ensure_exists(await self.get_by_id(booking_id), "Booking", booking_id)
        AccessValidator.enforce(scope, booking.establishment_id, "booking")
        return booking

    async def get_by_code(self, booking_code: str) -> Booking:
        """Public booking tracking; the code itself is the credential."""
        code = (booking_code or "").strip().upper()
        stmt = select(Booking).where(Booking.booking_code == code)
        result = await self.db.execute(stmt)
        return ensure_exists(
            result.scalar_one_or_none(), "Booking", field_name="booking_code"
        )

    async def list(
        self,
        filters: BookingFilters,
        scope: Scope,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[BookingSchema]:
        """Paged booking list, pinned to the scope's establishment before querying."""
        filters = AccessValidator.apply_filter(scope, filters)

        builder = (
            BookingQueryBuilder(Booking)
            .filter_by_establishment(filters.establishment_id)
            .filter_by_accommodation(filters.accommodation_id)
            .filter_by_status(filters.status)
            .filter_by_payment_status(filters.payment_status)
            .filter_by_kind(filters.kind)
            .filter_by_client_email(filters.client_email)
            .filter_by_code(filters.booking_code)
            .filter_by_check_in(
                normalize_instant(filters.check_in_from)
                if filters.check_in_from
                else None,
                normalize_instant(filters.check_in_to) if filters.check_in_to else None,
            )
            .search_by_text(filters.search)
        )

        count_result = await self.db.execute(builder.build_count())
        total_count = count_result.scalar() or 0

        stmt = (
            builder.order_by(Booking.check_in, "desc")
            .order_by(Booking.id, "desc")
            .paginate((page - 1) * page_size, page_size)
            .build()
        )
        result = await self.db.execute(stmt)
        items = [BookingSchema.model_validate(b) for b in result.scalars().all()]

        return Page[BookingSchema].create(items, total_count, page, page_size)

    async def check_availability(
        self,
        accommodation_id: int,
        check_in: datetime,
        check_out: datetime,
        kind: BookingKind = BookingKind.ONLINE,
        scope: Optional[Scope] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        check_in = normalize_instant(check_in)
        check_out = normalize_instant(check_out)
        validate_date_range(check_in, check_out, "check_in", "check_out")
        await self._load_accommodation(accommodation_id, scope)
        return await self.availability.is_available(
            accommodation_id, check_in, check_out, kind, exclude_booking_id
        )

    async def calculate_pricing(
        self,
        accommodation_id: int,
        check_in: datetime,
        check_out: datetime,
        kind: BookingKind = BookingKind.ONLINE,
        scope: Optional[Scope] = None,
    ) -> PricingBreakdown:
        if scope is not None:
            await self._load_accommodation(accommodation_id, scope)
        return await PricingService(self.db).calculate(
            accommodation_id, check_in, check_out, kind
        )

    # Creation

    async def create(
        self,
        data: BookingCreate,
        scope: Scope,
        created_by: Optional[int] = None,
    ) -> Booking:
        check_in = normalize_instant(data.check_in)
        check_out = normalize_instant(data.check_out)
        validate_date_range(check_in, check_out, "check_in", "check_out")
        validate_positive_integer(data.number_of_guests, "number_of_guests")
        if data.kind == BookingKind.WALKIN:
            ensure_same_day(check_in, check_out)

        try:
            booking = await self._create_in_transaction(
                data, scope, check_in, check_out, created_by
            )
        except DomainException as exc:
            await self.db.rollback()
            exc.add_context(
                accommodation_id=data.accommodation_id, booking_kind=data.kind.value
            )
            raise
        except Exception:
            await self.db.rollback()
            raise

        return booking

    async def create_walkin(
        self,
        data: WalkInBookingCreate,
        scope: Scope,
        created_by: Optional[int] = None,
    ) -> Booking:
        """Create a walk-in; check-in and check-out must fall on the same local day."""
        return await self.create(
            BookingCreate(**data.model_dump(), kind=BookingKind.WALKIN),
            scope,
            created_by,
        )

    async def _create_in_transaction(
        self,
        data: BookingCreate,
        scope: Scope,
        check_in: datetime,
        check_out: datetime,
        created_by: Optional[int],
    ) -> Booking:
        kind = data.kind

        # A restricted principal always books into its own establishment
        requested_establishment_id = (
            data.establishment_id if scope.is_unrestricted else scope.establishment_id
        )

        establishment = None
        if requested_establishment_id is not None:
            establishment = await self._load_establishment(requested_establishment_id)

        accommodation = await self._lock_accommodation(data.accommodation_id)

        if establishment is None:
            establishment = await self._load_establishment(
                accommodation.establishment_id
            )
        elif accommodation.establishment_id != establishment.id:
            raise CrossEstablishmentRelationshipError(
                accommodation.id, accommodation.establishment_id, establishment.id
            )

        AccessValidator.enforce_modify(scope, establishment.id, "booking")

        replay = await self._find_replay(
            accommodation.id, check_in, check_out, data.client_info.email
        )
        if replay is not None:
            logger.info(
                f"Returning existing booking {replay.booking_code} for repeated request"
            )
            await self.db.commit()
            return replay

        self._ensure_bookable(accommodation, kind)

        if data.number_of_guests > accommodation.max_guests:
            raise CapacityExceededError(data.number_of_guests, accommodation.max_guests)

        if not await self.availability.is_available(
            accommodation.id, check_in, check_out, kind
        ):
            raise NotAvailableError(accommodation.id)

        pricing = calculate_pricing(accommodation, check_in, check_out, kind)
        booking_code = await self.code_allocator.allocate(self.db)
        client = await self.clients.find_or_create(data.client_info, kind)

        booking = Booking(
            booking_code=booking_code,
            establishment_id=establishment.id,
            accommodation_id=accommodation.id,
            client_id=client.id,
            kind=kind,
            check_in=check_in,
            check_out=check_out,
            number_of_guests=data.number_of_guests,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
            client_first_name=data.client_info.first_name,
            client_last_name=data.client_info.last_name,
            client_email=data.client_info.email.strip().lower(),
            client_phone=data.client_info.phone,
            client_id_number=data.client_info.id_number,
            companions=[c.model_dump() for c in data.companions] or None,
            pricing_mode=pricing.mode,
            unit_price=pricing.unit_price,
            quantity=pricing.quantity,
            subtotal=pricing.subtotal,
            discount=pricing.discount,
            tax=pricing.tax,
            total=pricing.total,
            currency=pricing.currency,
            notes=data.notes,
            created_by=created_by,
        )
        self.db.add(booking)

        self._set_accommodation_status(accommodation, AccommodationStatus.RESERVED)

        await self._flush_versioned(NotAvailableError(accommodation.id))
        await self.db.commit()
        await self.db.refresh(booking)

        logger.info(
            f"Created {kind.value} booking {booking.booking_code} for accommodation "
            f"{accommodation.id} in establishment {establishment.id}"
        )
        return booking

    # Modification

    async def update(self, booking_id: int, patch: BookingUpdate, scope: Scope) -> Booking:
        try:
            booking = await self._update_in_transaction(booking_id, patch, scope)
        except DomainException as exc:
            await self.db.rollback()
            exc.add_context(booking_id=booking_id)
            raise
        except Exception:
            await self.db.rollback()
            raise
        return booking

    async def _update_in_transaction(
        self, booking_id: int, patch: BookingUpdate, scope: Scope
    ) -> Booking:
        booking = ensure_exists(await self.get_by_id(booking_id), "Booking", booking_id)
        AccessValidator.enforce_modify(scope, booking.establishment_id, "booking")

        if booking.status not in ACTIVE_BOOKING_STATUSES:
            raise BusinessRuleViolationError(
                "booking_not_modifiable",
                f"A {booking.status.value} booking cannot be modified",
                {"current_status": booking.status.value},
            )

        update_data = patch.model_dump(exclude_unset=True)

        new_check_in = (
            normalize_instant(patch.check_in) if patch.check_in else booking.check_in
        )
        new_check_out = (
            normalize_instant(patch.check_out) if patch.check_out else booking.check_out
        )
        dates_changed = (
            new_check_in != booking.check_in or new_check_out != booking.check_out
        )
        guests_changed = (
            patch.number_of_guests is not None
            and patch.number_of_guests != booking.number_of_guests
        )

        # Re-link before touching the accommodation; find_or_create flushes
        if patch.client_info is not None:
            new_email = patch.client_info.email.strip().lower()
            if new_email != booking.client_email:
                client = await self.clients.find_or_create(
                    patch.client_info, booking.kind
                )
                booking.client_id = client.id
            booking.client_first_name = patch.client_info.first_name
            booking.client_last_name = patch.client_info.last_name
            booking.client_email = new_email
            booking.client_phone = patch.client_info.phone
            booking.client_id_number = patch.client_info.id_number

        if dates_changed or guests_changed:
            accommodation = await self._lock_accommodation(booking.accommodation_id)

            if guests_changed and patch.number_of_guests > accommodation.max_guests:
                raise CapacityExceededError(
                    patch.number_of_guests, accommodation.max_guests
                )

            if dates_changed:
                validate_date_range(new_check_in, new_check_out, "check_in", "check_out")
                if booking.kind == BookingKind.WALKIN:
                    ensure_same_day(new_check_in, new_check_out)
                if not await self.availability.is_available(
                    accommodation.id,
                    new_check_in,
                    new_check_out,
                    booking.kind,
                    exclude_booking_id=booking.id,
                ):
                    raise NotAvailableError(accommodation.id)

                pricing = calculate_pricing(
                    accommodation, new_check_in, new_check_out, booking.kind
                )
                booking.check_in = new_check_in
                booking.check_out = new_check_out
                booking.pricing_mode = pricing.mode
                booking.unit_price = pricing.unit_price
                booking.quantity = pricing.quantity
                booking.subtotal = pricing.subtotal
                booking.total = pricing.total
                booking.currency = pricing.currency

            if guests_changed:
                booking.number_of_guests = patch.number_of_guests

            # Bump the version so concurrent writers on this accommodation conflict
            accommodation.updated_at = self.clock()

        if "companions" in update_data:
            booking.companions = (
                [c.model_dump() for c in patch.companions] if patch.companions else None
            )
        if patch.payment_status is not None:
            booking.payment_status = patch.payment_status
        if "notes" in update_data:
            booking.notes = patch.notes

        await self._flush_versioned(NotAvailableError(booking.accommodation_id))
        await self.db.commit()
        await self.db.refresh(booking)

        logger.info(f"Updated booking {booking.booking_code}")
        return booking

    # Status transitions

    async def confirm(self, booking_id: int, scope: Optional[Scope] = None) -> Booking:
        """Confirm a pending booking and mark it paid in the same UPDATE."""
        booking = await self._load_for_transition(
            booking_id, BookingStatus.CONFIRMED, scope
        )
        booking.status = BookingStatus.CONFIRMED
        booking.payment_status = PaymentStatus.PAID

        await self.db.commit()
        await self.db.refresh(booking)
        logger.info(f"Confirmed booking {booking.booking_code}")
        return booking

    async def complete(self, booking_id: int, scope: Optional[Scope] = None) -> Booking:
        """
        Complete a confirmed booking and release its accommodation.

        Walk-ins only free the accommodation when no other active booking
        covers the current time. The client's stay count and spend are updated.
        """
        try:
            booking = await self._load_for_transition(
                booking_id, BookingStatus.COMPLETED, scope
            )
            booking.status = BookingStatus.COMPLETED

            accommodation = await self._lock_accommodation(booking.accommodation_id)
            if booking.kind == BookingKind.WALKIN:
                await self._auto_release_after_checkout(booking, accommodation)
            else:
                self._release(accommodation)

            await self.clients.record_completed_stay(booking.client_id, booking.total)

            await self._flush_versioned(
                ConflictError(CONCURRENT_UPDATE_MESSAGE, "Accommodation")
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(booking)
        logger.info(f"Completed booking {booking.booking_code}")
        return booking

    async def cancel(self, booking_id: int, scope: Scope) -> Booking:
        try:
            booking = await self._load_for_transition(
                booking_id, BookingStatus.CANCELLED, scope
            )
            booking.status = BookingStatus.CANCELLED
            await self._release_if_unheld(booking.accommodation_id, booking.id)

            await self._flush_versioned(
                ConflictError(CONCURRENT_UPDATE_MESSAGE, "Accommodation")
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(booking)
        logger.info(f"Cancelled booking {booking.booking_code}")
        return booking

    async def delete(self, booking_id: int, scope: Scope) -> bool:
        try:
            booking = ensure_exists(
                await self.get_by_id(booking_id), "Booking", booking_id
            )
            AccessValidator.enforce_modify(scope, booking.establishment_id, "booking")

            booking_code = booking.booking_code
            await self._release_if_unheld(booking.accommodation_id, booking.id)
            await self.db.delete(booking)

            await self._flush_versioned(
                ConflictError(CONCURRENT_UPDATE_MESSAGE, "Accommodation")
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Deleted booking {booking_code}")
        return True

    # Walk-in helpers

    async def get_walkin_bookings_by_date(
        self, accommodation_id: int, day: date, scope: Scope
    ) -> List[Booking]:
        await self._load_accommodation(accommodation_id, scope)
        return await self.availability.get_walkins_for_day(
            accommodation_id, day, statuses=WALKIN_LISTED_STATUSES
        )

    async def calculate_daily_walkin_revenue(
        self, accommodation_id: int, day: date, scope: Scope
    ) -> Decimal:
        """Sum of confirmed and completed walk-in totals checked in on ``day``."""
        await self._load_accommodation(accommodation_id, scope)
        bookings = await self.availability.get_walkins_for_day(
            accommodation_id, day, statuses=REVENUE_STATUSES
        )
        return sum((Decimal(b.total) for b in bookings), Decimal("0"))

    async def get_walkin_statistics(
        self,
        scope: Scope,
        start_date: date,
        end_date: date,
        establishment_id: Optional[int] = None,
    ) -> WalkInStatistics:
        """
        Walk-in statistics of one establishment over ``[start_date, end_date]``.

        Counts confirmed and completed walk-ins checked in within the window and
        breaks count and revenue down per accommodation. Restricted scopes always
        report on their own establishment.
        """
        if end_date < start_date:
            raise ValidationError(
                "end_date must not be before start_date", "end_date", end_date.isoformat()
            )

        filters = AccessValidator.apply_filter(
            scope,
            WalkInStatisticsFilters(
                establishment_id=establishment_id,
                start_date=start_date,
                end_date=end_date,
            ),
        )
        if filters.establishment_id is None:
            raise ValidationError("establishment_id is required", "establishment_id")

        stmt = select(Establishment).where(Establishment.id == filters.establishment_id)
        result = await self.db.execute(stmt)
        ensure_exists(
            result.scalar_one_or_none(), "Establishment", filters.establishment_id
        )

        window_start, _ = day_bounds(filters.start_date)
        _, window_end = day_bounds(filters.end_date)
        stmt = (
            select(Booking, Accommodation.name)
            .join(Accommodation, Booking.accommodation_id == Accommodation.id)
            .where(
                and_(
                    Booking.establishment_id == filters.establishment_id,
                    Booking.kind == BookingKind.WALKIN,
                    Booking.status.in_(REVENUE_STATUSES),
                    Booking.check_in >= window_start,
                    Booking.check_in <= window_end,
                )
            )
            .order_by(Accommodation.name, Booking.accommodation_id)
        )
        result = await self.db.execute(stmt)

        breakdown: Dict[int, dict] = {}
        for booking, accommodation_name in result.all():
            entry = breakdown.setdefault(
                booking.accommodation_id,
                {
                    "accommodation_id": booking.accommodation_id,
                    "accommodation_name": accommodation_name,
                    "booking_count": 0,
                    "revenue": Decimal("0"),
                },
            )
            entry["booking_count"] += 1
            entry["revenue"] += Decimal(booking.total)

        total_bookings = sum(entry["booking_count"] for entry in breakdown.values())
        total_revenue = sum(
            (entry["revenue"] for entry in breakdown.values()), Decimal("0")
        )
        average = (
            (total_revenue / total_bookings).quantize(Decimal("0.01"))
            if total_bookings
            else Decimal("0")
        )

        return WalkInStatistics(
            establishment_id=filters.establishment_id,
            start_date=filters.start_date,
            end_date=filters.end_date,
            total_bookings=total_bookings,
            total_revenue=total_revenue,
            average_revenue_per_booking=average,
            accommodation_breakdown=[
                WalkInAccommodationStatistics(**entry) for entry in breakdown.values()
            ],
        )

    # Internals

    async def _load_establishment(self, establishment_id: int) -> Establishment:
        stmt = select(Establishment).where(Establishment.id == establishment_id)
        result = await self.db.execute(stmt)
        establishment = ensure_exists(
            result.scalar_one_or_none(), "Establishment", establishment_id
        )
        if not establishment.is_active:
            raise BusinessRuleViolationError(
                "establishment_inactive",
                "Establishment is not accepting bookings",
                {"establishment_id": establishment_id},
            )
        return establishment

    async def _load_accommodation(
        self, accommodation_id: int, scope: Optional[Scope]
    ) -> Accommodation:
        stmt = select(Accommodation).where(Accommodation.id == accommodation_id)
        result = await self.db.execute(stmt)
        accommodation = ensure_exists(
            result.scalar_one_or_none(), "Accommodation", accommodation_id
        )
        if scope is not None:
            AccessValidator.enforce(
                scope, accommodation.establishment_id, "accommodation"
            )
        return accommodation

    async def _lock_accommodation(self, accommodation_id: int) -> Accommodation:
        stmt = (
            select(Accommodation)
            .where(Accommodation.id == accommodation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return ensure_exists(
            result.scalar_one_or_none(), "Accommodation", accommodation_id
        )

    async def _find_replay(
        self,
        accommodation_id: int,
        check_in: datetime,
        check_out: datetime,
        client_email: str,
    ) -> Optional[Booking]:
        stmt = select(Booking).where(
            and_(
                Booking.accommodation_id == accommodation_id,
                Booking.check_in == check_in,
                Booking.check_out == check_out,
                Booking.client_email == client_email.strip().lower(),
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def _load_for_transition(
        self,
        booking_id: int,
        target_status: BookingStatus,
        scope: Optional[Scope],
    ) -> Booking:
        booking = ensure_exists(await self.get_by_id(booking_id), "Booking", booking_id)
        if scope is not None:
            AccessValidator.enforce_modify(scope, booking.establishment_id, "booking")

        if target_status not in ALLOWED_TRANSITIONS.get(booking.status, set()):
            raise InvalidStatusTransitionError(
                booking.status.value, target_status.value
            ).add_context(booking_id=booking.id)
        return booking

    def _ensure_bookable(self, accommodation: Accommodation, kind: BookingKind) -> None:
        allowed = (
            WALKIN_BOOKABLE_STATUSES
            if kind == BookingKind.WALKIN
            else (AccommodationStatus.AVAILABLE,)
        )
        if accommodation.status not in allowed:
            raise AccommodationNotBookableError(
                accommodation.id, accommodation.status.value
            )

    def _set_accommodation_status(
        self, accommodation: Accommodation, status: AccommodationStatus
    ) -> None:
        accommodation.status = status
        # Always touch the row so the version counter is bumped
        accommodation.updated_at = self.clock()

    def _release(self, accommodation: Accommodation) -> None:
        if accommodation.status in (
            AccommodationStatus.RESERVED,
            AccommodationStatus.OCCUPIED,
        ):
            self._set_accommodation_status(accommodation, AccommodationStatus.AVAILABLE)

    async def _auto_release_after_checkout(
        self, booking: Booking, accommodation: Accommodation
    ) -> None:
        now = self.clock()
        stmt = select(func.count(Booking.id)).where(
            and_(
                Booking.accommodation_id == accommodation.id,
                Booking.id != booking.id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                Booking.check_in <= now,
                Booking.check_out >= now,
            )
        )
        result = await self.db.execute(stmt)
        if result.scalar() == 0:
            self._release(accommodation)
        else:
            logger.debug(
                f"Accommodation {accommodation.id} still held after walk-in "
                f"{booking.booking_code}"
            )

    async def _release_if_unheld(self, accommodation_id: int, booking_id: int) -> None:
        accommodation = await self._lock_accommodation(accommodation_id)
        if accommodation.status != AccommodationStatus.RESERVED:
            return

        stmt = select(func.count(Booking.id)).where(
            and_(
                Booking.accommodation_id == accommodation_id,
                Booking.id != booking_id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        result = await self.db.execute(stmt)
        if result.scalar() == 0:
            self._set_accommodation_status(accommodation, AccommodationStatus.AVAILABLE)

    async def _flush_versioned(self, conflict: DomainException) -> None:
        try:
            await self.db.flush()
        except StaleDataError as exc:
            logger.info(f"Optimistic version check failed: {exc}")
            raise conflict from exc