"""
Service dependency injection utilities.

Services are built per request around the request's database session. The
booking service also receives the process-wide booking code allocator, which
lives on ``app.state`` and is started and stopped by the application lifespan.
"""

from typing import Annotated, Callable, Type, TypeVar

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.services.accommodation_service import AccommodationService
from app.services.auth_service import AuthService
from app.services.booking_code_service import BookingCodeAllocator
from app.services.booking_service import BookingService
from app.services.establishment_service import EstablishmentService

T = TypeVar("T")


def get_service(service_class: Type[T]) -> Callable[[AsyncSession], T]:
    """
    Generic service dependency factory.

    Creates a dependency function that instantiates a service with a database session.

    Args:
        service_class: The service class to instantiate

    Returns:
        A dependency function that creates service instances
    """

    def dependency(db: AsyncSession = Depends(get_db)) -> T:
        return service_class(db)

    return dependency


def get_code_allocator(request: Request) -> BookingCodeAllocator:
    return request.app.state.code_allocator


def get_booking_service(
    db: AsyncSession = Depends(get_db),
    code_allocator: BookingCodeAllocator = Depends(get_code_allocator),
) -> BookingService:
    return BookingService(db, code_allocator)


# Pre-configured service dependencies
GetAccommodationService = Annotated[
    AccommodationService, Depends(get_service(AccommodationService))
]
GetEstablishmentService = Annotated[
    EstablishmentService, Depends(get_service(EstablishmentService))
]
GetBookingService = Annotated[BookingService, Depends(get_booking_service)]
GetAuthService = Annotated[AuthService, Depends(get_service(AuthService))]
