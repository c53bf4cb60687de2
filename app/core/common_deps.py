"""
Common dependencies for the booking engine.

This module provides convenient access to commonly used dependencies,
reducing boilerplate code in endpoint functions.
"""

from typing import Annotated

from fastapi import Depends

from app.core.auth_deps import RequestScope, RequireWriteRole
from app.core.security import get_active_user
from app.core.service_deps import (
    GetAccommodationService,
    GetAuthService,
    GetBookingService,
    GetEstablishmentService,
)
from app.models.user import User

# User dependencies
CurrentUserDep = Annotated[User, Depends(get_active_user)]

# Commonly used type aliases for endpoint signatures
WriteUserDep = RequireWriteRole
ScopeDep = RequestScope

# Service type aliases for cleaner endpoint signatures
AccommodationServiceDep = GetAccommodationService
EstablishmentServiceDep = GetEstablishmentService
BookingServiceDep = GetBookingService
AuthServiceDep = GetAuthService
