import asyncio
from datetime import date, datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import (
    AccommodationNotBookableError,
    BusinessRuleViolationError,
    CapacityExceededError,
    CrossEstablishmentRelationshipError,
    EntityNotFoundError,
    EstablishmentAccessDeniedError,
    InvalidStatusTransitionError,
    NotAvailableError,
    ValidationError,
)
from app.core.scope import Scope
from app.models import (
    Accommodation,
    AccommodationStatus,
    Booking,
    BookingKind,
    BookingStatus,
    Client,
    ClientClassification,
    Establishment,
    EstablishmentPricingMode,
    PaymentStatus,
    PricingMode,
    UserRole,
)
from app.models.base import Base
from app.schemas.booking import BookingFilters, BookingUpdate, WalkInBookingCreate
from app.services.booking_code_service import BookingCodeAllocator, is_valid_booking_code
from app.services.booking_service import BookingService
from app.services.client_service import ClientService

JUNE_1 = datetime(2024, 6, 1)
JUNE_2 = datetime(2024, 6, 2)
JUNE_3 = datetime(2024, 6, 3)
JUNE_4 = datetime(2024, 6, 4)


async def count_bookings(db) -> int:
    result = await db.execute(select(func.count(Booking.id)))
    return result.scalar()


class TestCreate:
    async def test_end_to_end_reserve_conflict_cancel_retry(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        first = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )
        first_id = first.id

        assert first.status == BookingStatus.PENDING
        assert first.payment_status == PaymentStatus.UNPAID
        assert first.pricing_mode == PricingMode.NIGHTLY
        assert first.unit_price == Decimal("50000")
        assert first.quantity == 2
        assert first.subtotal == Decimal("100000")
        assert first.total == Decimal("100000")
        assert is_valid_booking_code(first.booking_code)
        await db.refresh(accommodation)
        assert accommodation.status == AccommodationStatus.RESERVED

        second_request = booking_request(
            accommodation,
            JUNE_2,
            JUNE_4,
            client_info={
                "first_name": "Eric",
                "last_name": "Ndayishimiye",
                "email": "eric@example.com",
            },
        )
        with pytest.raises(NotAvailableError):
            await booking_service.create(second_request, root_scope)

        await booking_service.cancel(first_id, root_scope)
        await db.refresh(accommodation)
        assert accommodation.status == AccommodationStatus.AVAILABLE

        second = await booking_service.create(second_request, root_scope)
        assert second.status == BookingStatus.PENDING
        assert second.booking_code != first.booking_code

    async def test_cross_establishment_pairing_is_rejected(
        self,
        db,
        accommodation,
        other_establishment,
        booking_service,
        booking_request,
        root_scope,
    ):
        other_id = other_establishment.id
        request = booking_request(
            accommodation, JUNE_1, JUNE_3, establishment_id=other_id
        )

        with pytest.raises(CrossEstablishmentRelationshipError):
            await booking_service.create(request, root_scope)

        with pytest.raises(CrossEstablishmentRelationshipError):
            await booking_service.create(
                request, Scope.restricted_to(other_id, UserRole.MANAGER)
            )

        assert await count_bookings(db) == 0

    async def test_restricted_scope_overrides_requested_establishment(
        self,
        accommodation,
        other_establishment,
        booking_service,
        booking_request,
        manager_scope,
        establishment,
    ):
        booking = await booking_service.create(
            booking_request(
                accommodation, JUNE_1, JUNE_3, establishment_id=other_establishment.id
            ),
            manager_scope,
        )

        assert booking.establishment_id == establishment.id

    async def test_staff_cannot_create(
        self, db, accommodation, booking_service, booking_request, staff_scope
    ):
        with pytest.raises(EstablishmentAccessDeniedError):
            await booking_service.create(
                booking_request(accommodation, JUNE_1, JUNE_3), staff_scope
            )

        assert await count_bookings(db) == 0

    async def test_capacity_is_enforced(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        accommodation_id = accommodation.id

        with pytest.raises(CapacityExceededError) as exc_info:
            await booking_service.create(
                booking_request(accommodation, JUNE_1, JUNE_3, number_of_guests=3),
                root_scope,
            )

        assert exc_info.value.details["max_guests"] == 2
        assert exc_info.value.details["accommodation_id"] == accommodation_id
        assert await count_bookings(db) == 0

    async def test_maintenance_accommodation_is_not_bookable(
        self, make_accommodation, establishment, booking_service, booking_request, root_scope
    ):
        accommodation = await make_accommodation(
            establishment, status=AccommodationStatus.MAINTENANCE
        )

        with pytest.raises(AccommodationNotBookableError) as exc_info:
            await booking_service.create(
                booking_request(accommodation, JUNE_1, JUNE_3), root_scope
            )

        assert exc_info.value.current_status == "maintenance"

    async def test_missing_accommodation(self, booking_service, booking_request, root_scope):
        class Missing:
            id = 999

        with pytest.raises(EntityNotFoundError):
            await booking_service.create(
                booking_request(Missing, JUNE_1, JUNE_3), root_scope
            )

    async def test_inactive_establishment_refuses_bookings(
        self, db, accommodation, establishment, booking_service, booking_request, root_scope
    ):
        establishment.is_active = False
        await db.commit()

        with pytest.raises(BusinessRuleViolationError) as exc_info:
            await booking_service.create(
                booking_request(
                    accommodation, JUNE_1, JUNE_3, establishment_id=establishment.id
                ),
                root_scope,
            )

        assert exc_info.value.rule_name == "establishment_inactive"

    async def test_repeated_request_returns_existing_booking(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        request = booking_request(accommodation, JUNE_1, JUNE_3)

        first = await booking_service.create(request, root_scope)
        replay = await booking_service.create(request, root_scope)

        assert replay.id == first.id
        assert await count_bookings(db) == 1

    async def test_version_conflict_on_flush_rolls_back(
        self, db, accommodation, booking_service, booking_request, root_scope, monkeypatch
    ):
        original_flush = db.flush

        async def flush_with_conflict(*args, **kwargs):
            if any(isinstance(obj, Booking) for obj in db.new):
                raise StaleDataError("accommodations row version mismatch")
            return await original_flush(*args, **kwargs)

        monkeypatch.setattr(db, "flush", flush_with_conflict)

        with pytest.raises(NotAvailableError):
            await booking_service.create(
                booking_request(accommodation, JUNE_1, JUNE_3), root_scope
            )

        monkeypatch.undo()
        assert await count_bookings(db) == 0
        assert (await db.execute(select(func.count(Client.id)))).scalar() == 0
        await db.refresh(accommodation)
        assert accommodation.status == AccommodationStatus.AVAILABLE

    async def test_create_bumps_accommodation_version(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        initial_version = accommodation.version

        await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )
        await db.refresh(accommodation)

        assert accommodation.version == initial_version + 1

    async def test_client_is_created_once_per_email(
        self, db, make_accommodation, establishment, booking_service, booking_request, root_scope
    ):
        first_room = await make_accommodation(establishment, name="Chambre 1")
        second_room = await make_accommodation(establishment, name="Chambre 2")

        first = await booking_service.create(
            booking_request(first_room, JUNE_1, JUNE_3), root_scope
        )
        second = await booking_service.create(
            booking_request(
                second_room,
                JUNE_1,
                JUNE_3,
                client_info={
                    "first_name": "Aline",
                    "last_name": "Niyonzima",
                    "email": "ALINE@example.com",
                },
            ),
            root_scope,
        )

        assert first.client_id == second.client_id
        client = await ClientService(db).get_with_history("aline@example.com")
        assert client.classification == ClientClassification.REGULAR
        assert {b.id for b in client.bookings} == {first.id, second.id}

    async def test_walkin_kind_must_stay_within_one_day(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        with pytest.raises(ValidationError):
            await booking_service.create(
                booking_request(
                    accommodation,
                    datetime(2024, 6, 1, 22),
                    datetime(2024, 6, 2, 10),
                    kind=BookingKind.WALKIN,
                ),
                root_scope,
            )

        assert await count_bookings(db) == 0


class TestTransitions:
    async def test_confirm_sets_status_and_payment_together(
        self, accommodation, booking_service, booking_request, root_scope
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )

        confirmed = await booking_service.confirm(booking.id)

        assert confirmed.status == BookingStatus.CONFIRMED
        assert confirmed.payment_status == PaymentStatus.PAID

    async def test_complete_releases_and_updates_client(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )
        await booking_service.confirm(booking.id)

        completed = await booking_service.complete(booking.id)

        assert completed.status == BookingStatus.COMPLETED
        await db.refresh(accommodation)
        assert accommodation.status == AccommodationStatus.AVAILABLE
        client = await ClientService(db).get_by_email("aline@example.com")
        assert client.total_stays == 1
        assert client.total_spent == Decimal("100000")

    async def test_complete_requires_confirmation(
        self, accommodation, booking_service, booking_request, root_scope
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )

        with pytest.raises(InvalidStatusTransitionError):
            await booking_service.complete(booking.id)

    @pytest.mark.parametrize("final_step", ["complete", "cancel"])
    async def test_no_transition_out_of_final_states(
        self, accommodation, booking_service, booking_request, root_scope, final_step
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )
        booking_id = booking.id
        await booking_service.confirm(booking_id)
        if final_step == "complete":
            await booking_service.complete(booking_id)
        else:
            await booking_service.cancel(booking_id, root_scope)

        with pytest.raises(InvalidStatusTransitionError):
            await booking_service.cancel(booking_id, root_scope)
        with pytest.raises(InvalidStatusTransitionError):
            await booking_service.confirm(booking_id)

    async def test_cancel_keeps_reservation_held_by_other_booking(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        walkin_request = booking_request(
            accommodation,
            datetime(2024, 6, 1, 9),
            datetime(2024, 6, 1, 11),
            kind=BookingKind.WALKIN,
        )
        first = await booking_service.create(walkin_request, root_scope)
        await booking_service.create(
            booking_request(
                accommodation,
                datetime(2024, 6, 1, 12),
                datetime(2024, 6, 1, 14),
                kind=BookingKind.WALKIN,
            ),
            root_scope,
        )

        await booking_service.cancel(first.id, root_scope)

        await db.refresh(accommodation)
        assert accommodation.status == AccommodationStatus.RESERVED

    async def test_cross_tenant_cancel_is_denied(
        self,
        other_accommodation,
        booking_service,
        booking_request,
        root_scope,
        manager_scope,
    ):
        booking = await booking_service.create(
            booking_request(other_accommodation, JUNE_1, JUNE_3), root_scope
        )

        booking_id = booking.id

        with pytest.raises(EstablishmentAccessDeniedError):
            await booking_service.cancel(booking_id, manager_scope)
        with pytest.raises(EstablishmentAccessDeniedError):
            await booking_service.get(booking_id, manager_scope)

    async def test_complete_credits_the_client_the_booking_points_at(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )
        updated = await booking_service.update(
            booking.id,
            BookingUpdate(
                client_info={
                    "first_name": "Aline",
                    "last_name": "Niyonzima",
                    "email": "Aline.N@Example.com",
                }
            ),
            root_scope,
        )
        await booking_service.confirm(booking.id)

        await booking_service.complete(booking.id)

        clients = ClientService(db)
        relinked = await clients.get_by_email("aline.n@example.com")
        previous = await clients.get_by_email("aline@example.com")
        assert updated.client_id == relinked.id
        assert updated.client_email == "aline.n@example.com"
        assert relinked.total_stays == 1
        assert relinked.total_spent == Decimal("100000")
        assert previous.total_stays == 0


class TestUpdate:
    async def test_date_change_is_rechecked_and_repriced(
        self, accommodation, booking_service, booking_request, root_scope
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )

        updated = await booking_service.update(
            booking.id, BookingUpdate(check_out=JUNE_4), root_scope
        )

        assert updated.check_out == JUNE_4
        assert updated.quantity == 3
        assert updated.total == Decimal("150000")

    async def test_date_change_into_another_booking_fails(
        self, db, make_accommodation, establishment, booking_service, booking_request, root_scope
    ):
        room = await make_accommodation(establishment, pricing_mode=PricingMode.HOURLY)
        morning = await booking_service.create(
            booking_request(
                room,
                datetime(2024, 6, 1, 8),
                datetime(2024, 6, 1, 10),
                kind=BookingKind.WALKIN,
            ),
            root_scope,
        )
        await booking_service.create(
            booking_request(
                room,
                datetime(2024, 6, 1, 12),
                datetime(2024, 6, 1, 14),
                kind=BookingKind.WALKIN,
                client_info={
                    "first_name": "Eric",
                    "last_name": "Ndayishimiye",
                    "email": "eric@example.com",
                },
            ),
            root_scope,
        )

        morning_id = morning.id

        with pytest.raises(NotAvailableError) as exc_info:
            await booking_service.update(
                morning_id,
                BookingUpdate(check_out=datetime(2024, 6, 1, 13)),
                root_scope,
            )

        assert exc_info.value.details["booking_id"] == morning_id
        await db.refresh(morning)
        assert morning.check_out == datetime(2024, 6, 1, 10)

    async def test_guest_increase_beyond_capacity(
        self, accommodation, booking_service, booking_request, root_scope
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3, number_of_guests=1),
            root_scope,
        )

        with pytest.raises(CapacityExceededError):
            await booking_service.update(
                booking.id, BookingUpdate(number_of_guests=5), root_scope
            )

    async def test_completed_booking_cannot_be_modified(
        self, accommodation, booking_service, booking_request, root_scope
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )
        await booking_service.confirm(booking.id)
        await booking_service.complete(booking.id)

        with pytest.raises(BusinessRuleViolationError):
            await booking_service.update(
                booking.id, BookingUpdate(notes="late checkout"), root_scope
            )


class TestDelete:
    async def test_delete_removes_booking_and_releases(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )

        assert await booking_service.delete(booking.id, root_scope) is True

        assert await count_bookings(db) == 0
        await db.refresh(accommodation)
        assert accommodation.status == AccommodationStatus.AVAILABLE

    async def test_delete_other_tenant_booking_is_denied(
        self, db, other_accommodation, booking_service, booking_request, root_scope, manager_scope
    ):
        booking = await booking_service.create(
            booking_request(other_accommodation, JUNE_1, JUNE_3), root_scope
        )

        with pytest.raises(EstablishmentAccessDeniedError):
            await booking_service.delete(booking.id, manager_scope)

        assert await count_bookings(db) == 1


class TestWalkIns:
    def walkin(
        self, accommodation, start_hour, end_hour, email="walkin@example.com", day=1
    ):
        return WalkInBookingCreate(
            accommodation_id=accommodation.id,
            check_in=datetime(2024, 6, day, start_hour),
            check_out=datetime(2024, 6, day, end_hour),
            number_of_guests=1,
            client_info={"first_name": "Jean", "last_name": "Habonimana", "email": email},
        )

    async def test_disjoint_walkins_share_a_day(
        self, accommodation, booking_service, root_scope
    ):
        first = await booking_service.create_walkin(
            self.walkin(accommodation, 8, 11), root_scope
        )
        second = await booking_service.create_walkin(
            self.walkin(accommodation, 11, 14, email="other@example.com"), root_scope
        )

        assert first.kind == second.kind == BookingKind.WALKIN
        assert first.quantity == second.quantity == 1

        with pytest.raises(NotAvailableError):
            await booking_service.create_walkin(
                self.walkin(accommodation, 13, 16, email="third@example.com"),
                root_scope,
            )

    async def test_walkin_must_stay_within_one_day(
        self, accommodation, booking_service, root_scope
    ):
        request = WalkInBookingCreate(
            accommodation_id=accommodation.id,
            check_in=datetime(2024, 6, 1, 22),
            check_out=datetime(2024, 6, 2, 2),
            number_of_guests=1,
            client_info={"first_name": "Jean", "last_name": "Habonimana", "email": "j@example.com"},
        )

        with pytest.raises(ValidationError):
            await booking_service.create_walkin(request, root_scope)

    async def test_walkin_cannot_take_a_reserved_online_stay(
        self, db, accommodation, booking_service, booking_request, root_scope
    ):
        await booking_service.create(
            booking_request(
                accommodation, datetime(2024, 6, 1, 14), datetime(2024, 6, 3, 11)
            ),
            root_scope,
        )

        with pytest.raises(NotAvailableError):
            await booking_service.create_walkin(
                self.walkin(accommodation, 9, 12, day=2), root_scope
            )

        assert await count_bookings(db) == 1
        await db.refresh(accommodation)
        # The reserved status alone does not block walk-ins on a free day
        later = await booking_service.create_walkin(
            self.walkin(accommodation, 9, 12, day=4), root_scope
        )
        assert later.kind == BookingKind.WALKIN

    async def test_walkin_client_is_classified(
        self, db, accommodation, booking_service, root_scope
    ):
        await booking_service.create_walkin(self.walkin(accommodation, 8, 11), root_scope)

        client = await ClientService(db).get_by_email("walkin@example.com")
        assert client.classification == ClientClassification.WALKIN

    async def test_complete_walkin_keeps_accommodation_held_while_another_is_active(
        self, db, accommodation, code_allocator, root_scope
    ):
        service = BookingService(
            db, code_allocator, clock=lambda: datetime(2024, 6, 1, 12, 30)
        )
        first = await service.create_walkin(self.walkin(accommodation, 8, 11), root_scope)
        await service.create_walkin(
            self.walkin(accommodation, 12, 15, email="other@example.com"), root_scope
        )
        await service.confirm(first.id)

        await service.complete(first.id)

        await db.refresh(accommodation)
        assert accommodation.status == AccommodationStatus.RESERVED

    async def test_daily_listing_and_revenue(
        self, accommodation, booking_service, root_scope
    ):
        confirmed = await booking_service.create_walkin(
            self.walkin(accommodation, 8, 10), root_scope
        )
        await booking_service.confirm(confirmed.id)
        await booking_service.create_walkin(
            self.walkin(accommodation, 10, 12, email="pending@example.com"), root_scope
        )
        cancelled = await booking_service.create_walkin(
            self.walkin(accommodation, 12, 14, email="gone@example.com"), root_scope
        )
        await booking_service.cancel(cancelled.id, root_scope)

        listed = await booking_service.get_walkin_bookings_by_date(
            accommodation.id, date(2024, 6, 1), root_scope
        )
        revenue = await booking_service.calculate_daily_walkin_revenue(
            accommodation.id, date(2024, 6, 1), root_scope
        )

        assert len(listed) == 2
        assert revenue == Decimal("50000")
        assert await booking_service.calculate_daily_walkin_revenue(
            accommodation.id, date(2024, 6, 2), root_scope
        ) == Decimal("0")

    async def test_statistics_break_down_walkins_per_accommodation(
        self,
        db,
        make_accommodation,
        establishment,
        accommodation,
        other_establishment,
        booking_service,
        root_scope,
        manager_scope,
    ):
        annexe = await make_accommodation(
            establishment, name="Annexe 2", base_price=Decimal("30000")
        )
        counted = [
            await booking_service.create_walkin(self.walkin(accommodation, 8, 10), root_scope),
            await booking_service.create_walkin(
                self.walkin(accommodation, 8, 10, day=2), root_scope
            ),
            await booking_service.create_walkin(
                self.walkin(annexe, 8, 10, email="annexe@example.com"), root_scope
            ),
        ]
        for booking in counted:
            await booking_service.confirm(booking.id)
        # Pending and out-of-window walk-ins are left out
        await booking_service.create_walkin(
            self.walkin(annexe, 10, 12, email="pending@example.com"), root_scope
        )
        later = await booking_service.create_walkin(
            self.walkin(annexe, 8, 10, day=5), root_scope
        )
        await booking_service.confirm(later.id)

        stats = await booking_service.get_walkin_statistics(
            manager_scope,
            date(2024, 6, 1),
            date(2024, 6, 2),
            establishment_id=other_establishment.id,
        )

        assert stats.establishment_id == establishment.id
        assert stats.total_bookings == 3
        assert stats.total_revenue == Decimal("130000")
        assert stats.average_revenue_per_booking == Decimal("43333.33")
        assert [
            (entry.accommodation_name, entry.booking_count, entry.revenue)
            for entry in stats.accommodation_breakdown
        ] == [("Annexe 2", 1, Decimal("30000")), ("Chambre 101", 2, Decimal("100000"))]

    async def test_statistics_window_and_establishment_are_validated(
        self, establishment, booking_service, root_scope
    ):
        with pytest.raises(ValidationError):
            await booking_service.get_walkin_statistics(
                root_scope, date(2024, 6, 1), date(2024, 6, 2)
            )
        with pytest.raises(ValidationError):
            await booking_service.get_walkin_statistics(
                root_scope,
                date(2024, 6, 2),
                date(2024, 6, 1),
                establishment_id=establishment.id,
            )

        empty = await booking_service.get_walkin_statistics(
            root_scope, date(2024, 6, 1), date(2024, 6, 2), establishment_id=establishment.id
        )
        assert empty.total_bookings == 0
        assert empty.average_revenue_per_booking == Decimal("0")
        assert empty.accommodation_breakdown == []


class TestQueries:
    async def test_list_is_pinned_to_restricted_scope(
        self,
        accommodation,
        other_accommodation,
        booking_service,
        booking_request,
        root_scope,
        manager_scope,
        other_establishment,
    ):
        own = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )
        await booking_service.create(
            booking_request(other_accommodation, JUNE_1, JUNE_3), root_scope
        )

        page = await booking_service.list(
            BookingFilters(establishment_id=other_establishment.id), manager_scope
        )

        assert [b.id for b in page.items] == [own.id]
        assert page.pagination["total_count"] == 1

        everything = await booking_service.list(BookingFilters(), root_scope)
        assert everything.pagination["total_count"] == 2

    async def test_list_filters_and_pages(
        self, make_accommodation, establishment, booking_service, booking_request, root_scope
    ):
        rooms = [
            await make_accommodation(establishment, name=f"Chambre {i}") for i in range(3)
        ]
        created = [
            await booking_service.create(
                booking_request(room, JUNE_1, JUNE_3), root_scope
            )
            for room in rooms
        ]
        await booking_service.confirm(created[0].id)

        confirmed = await booking_service.list(
            BookingFilters(status=BookingStatus.CONFIRMED), root_scope
        )
        by_code = await booking_service.list(
            BookingFilters(booking_code=created[1].booking_code.lower()), root_scope
        )
        searched = await booking_service.list(BookingFilters(search="niyonz"), root_scope)
        second_page = await booking_service.list(
            BookingFilters(), root_scope, page=2, page_size=2
        )

        assert [b.id for b in confirmed.items] == [created[0].id]
        assert [b.id for b in by_code.items] == [created[1].id]
        assert searched.pagination["total_count"] == 3
        assert second_page.pagination["count"] == 1
        assert second_page.pagination["has_previous"] is True
        assert second_page.pagination["has_next"] is False

    async def test_get_by_code_is_case_insensitive(
        self, accommodation, booking_service, booking_request, root_scope
    ):
        booking = await booking_service.create(
            booking_request(accommodation, JUNE_1, JUNE_3), root_scope
        )

        found = await booking_service.get_by_code(booking.booking_code.lower())

        assert found.id == booking.id

        with pytest.raises(EntityNotFoundError):
            await booking_service.get_by_code("RZ-0101-ZZZ")


class TestConcurrentCreates:
    @pytest_asyncio.fixture
    async def file_engine(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")

        @event.listens_for(engine.sync_engine, "connect")
        def do_connect(dbapi_connection, connection_record):
            # The begin hook below issues BEGIN itself
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def do_begin(conn):
            # Writers take the database lock up front, like SELECT ... FOR UPDATE
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield engine
        await engine.dispose()

    async def test_racing_creates_store_exactly_one_booking(
        self, file_engine, clock, booking_request, root_scope
    ):
        factory = async_sessionmaker(
            file_engine, class_=AsyncSession, expire_on_commit=False
        )
        async with factory() as session:
            establishment = Establishment(
                name="Source du Nil",
                city="Bujumbura",
                total_capacity=20,
                pricing_mode=EstablishmentPricingMode.NIGHTLY,
                is_active=True,
            )
            session.add(establishment)
            await session.flush()
            accommodation = Accommodation(
                establishment_id=establishment.id,
                name="Chambre 101",
                max_guests=2,
                pricing_mode=PricingMode.NIGHTLY,
                base_price=Decimal("50000"),
                currency="BIF",
                status=AccommodationStatus.AVAILABLE,
            )
            session.add(accommodation)
            await session.commit()

        allocator = BookingCodeAllocator(factory, pool_size=0, clock=clock)

        async def attempt(email):
            request = booking_request(
                accommodation,
                JUNE_1,
                JUNE_3,
                client_info={"first_name": "Aline", "last_name": "Niyonzima", "email": email},
            )
            async with factory() as session:
                service = BookingService(session, allocator, clock=clock)
                return await service.create(request, root_scope)

        results = await asyncio.gather(
            attempt("aline@example.com"),
            attempt("eric@example.com"),
            return_exceptions=True,
        )

        created = [r for r in results if isinstance(r, Booking)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(created) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], NotAvailableError)
        async with factory() as session:
            assert await count_bookings(session) == 1
