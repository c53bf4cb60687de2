"""
Common response schemas for API endpoints.

This module defines proper Pydantic models for endpoints that previously
returned raw dictionaries, ensuring clear Swagger documentation for frontend developers.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.booking import BookingKind


class MessageResponse(BaseModel):
    """Standard response for operations that return a success message."""

    message: str = Field(
        ...,
        description="Success message describing the completed operation",
        examples=["Booking deleted successfully"],
    )


class CurrentUserResponse(BaseModel):
    """Response schema for /auth/me endpoint."""

    id: int = Field(..., description="User ID", examples=[1])
    username: str = Field(..., description="Username", examples=["john_doe"])
    email: str = Field(
        ..., description="User email address", examples=["john@example.com"]
    )
    role: str = Field(
        ...,
        description="User role (root, super_admin, manager, staff)",
        examples=["manager"],
    )
    establishment_id: Optional[int] = Field(
        None, description="Home establishment for restricted roles", examples=[3]
    )
    is_active: bool = Field(
        ..., description="Whether the user account is active", examples=[True]
    )


class AccommodationAvailabilityResponse(BaseModel):
    """Response schema for accommodation availability check."""

    accommodation_id: int = Field(
        ..., description="ID of the accommodation being checked", examples=[5]
    )
    check_in: datetime = Field(..., description="Requested check-in instant")
    check_out: datetime = Field(..., description="Requested check-out instant")
    kind: BookingKind = Field(..., description="Booking kind used for the check")
    is_available: bool = Field(
        ...,
        description="Whether the accommodation can be booked for the range",
        examples=[True],
    )
