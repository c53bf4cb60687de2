import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

from datetime import datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.scope import Scope  # noqa: E402
from app.models import (  # noqa: E402
    Accommodation,
    AccommodationStatus,
    Establishment,
    EstablishmentPricingMode,
    PricingMode,
    UserRole,
)
from app.models.base import Base  # noqa: E402
from app.models.booking import BookingKind  # noqa: E402
from app.schemas.booking import BookingCreate, ClientInfo  # noqa: E402
from app.services.booking_code_service import BookingCodeAllocator  # noqa: E402
from app.services.booking_service import BookingService  # noqa: E402

FIXED_NOW = datetime(2024, 5, 20, 10, 0)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def establishment(db):
    establishment = Establishment(
        name="Source du Nil",
        city="Bujumbura",
        total_capacity=20,
        pricing_mode=EstablishmentPricingMode.NIGHTLY,
        is_active=True,
    )
    db.add(establishment)
    await db.commit()
    return establishment


@pytest_asyncio.fixture
async def other_establishment(db):
    establishment = Establishment(
        name="Lac Tanganyika Lodge",
        city="Rumonge",
        total_capacity=10,
        pricing_mode=EstablishmentPricingMode.MONTHLY,
        is_active=True,
    )
    db.add(establishment)
    await db.commit()
    return establishment


@pytest.fixture
def make_accommodation(db):
    async def factory(establishment, **overrides):
        values = {
            "name": "Chambre 101",
            "max_guests": 2,
            "pricing_mode": PricingMode.NIGHTLY,
            "base_price": Decimal("50000"),
            "currency": "BIF",
            "status": AccommodationStatus.AVAILABLE,
        }
        values.update(overrides)
        accommodation = Accommodation(establishment_id=establishment.id, **values)
        db.add(accommodation)
        await db.commit()
        return accommodation

    return factory


@pytest_asyncio.fixture
async def accommodation(make_accommodation, establishment):
    return await make_accommodation(establishment)


@pytest_asyncio.fixture
async def other_accommodation(make_accommodation, other_establishment):
    return await make_accommodation(
        other_establishment, name="Bungalow 3", pricing_mode=PricingMode.MONTHLY
    )


@pytest.fixture
def root_scope():
    return Scope.unrestricted(UserRole.ROOT)


@pytest.fixture
def manager_scope(establishment):
    return Scope.restricted_to(establishment.id, UserRole.MANAGER)


@pytest.fixture
def staff_scope(establishment):
    return Scope.restricted_to(establishment.id, UserRole.STAFF)


@pytest_asyncio.fixture
async def code_allocator(session_factory, clock):
    allocator = BookingCodeAllocator(
        session_factory,
        prefix="RZ",
        pool_size=20,
        low_watermark=5,
        max_attempts=10,
        clock=clock,
    )
    await allocator.refill()
    yield allocator
    await allocator.shutdown()


@pytest.fixture
def booking_service(db, code_allocator, clock):
    return BookingService(db, code_allocator, clock=clock)


@pytest.fixture
def booking_request():
    def factory(accommodation, check_in, check_out, **overrides):
        values = {
            "accommodation_id": accommodation.id,
            "check_in": check_in,
            "check_out": check_out,
            "number_of_guests": 2,
            "kind": BookingKind.ONLINE,
            "client_info": ClientInfo(
                first_name="Aline",
                last_name="Niyonzima",
                email="aline@example.com",
                phone="+25779000000",
            ),
        }
        values.update(overrides)
        return BookingCreate(**values)

    return factory
