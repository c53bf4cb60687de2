"""
Service layer utility functions.

This module provides centralized utilities for common service layer patterns,
eliminating code duplication and ensuring consistent behavior across services.
"""

from datetime import date, datetime, time
from typing import Any, Optional, Tuple, TypeVar
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.exceptions import (
    AccessDeniedError,
    EntityNotFoundError,
    InactiveUserError,
    ValidationError,
)
from app.core.scope import READ_ONLY_ROLES
from app.models.user import User

T = TypeVar("T")


def ensure_exists(
    entity: Optional[T],
    entity_name: str,
    entity_id: Optional[int] = None,
    field_name: Optional[str] = None,
) -> T:
    """
    Ensure an entity exists, raising EntityNotFoundError if it doesn't.

    Args:
        entity: The entity to check (can be None)
        entity_name: Human-readable name of the entity type (e.g., "Booking", "Client")
        entity_id: Optional ID of the entity for more specific error messages
        field_name: Optional field name for more specific error messages

    Returns:
        The entity if it exists

    Raises:
        EntityNotFoundError: If the entity is None
    """
    if entity is None:
        raise EntityNotFoundError(entity_name, entity_id, field_name)
    return entity


def ensure_active_user(user: User) -> User:
    """
    Ensure user is active.

    Raises:
        InactiveUserError: If user is inactive
    """
    if not user.is_active:
        raise InactiveUserError()
    return user


def ensure_write_access(user: User) -> User:
    """
    Ensure user holds a write-capable role.

    Raises:
        AccessDeniedError: If the role is read-only
        InactiveUserError: If user is inactive
    """
    ensure_active_user(user)

    if user.role in READ_ONLY_ROLES:
        raise AccessDeniedError("Manager or administrator", user.role.value)

    return user


def validate_positive_integer(value: int, field_name: str) -> int:
    """
    Validate that a value is a positive integer.

    Raises:
        ValidationError: If value is not positive
    """
    if value <= 0:
        raise ValidationError(
            f"{field_name} must be greater than 0", field_name, str(value)
        )
    return value


def validate_date_range(
    start_date: Any,
    end_date: Any,
    start_field: str = "start_date",
    end_field: str = "end_date",
) -> None:
    """
    Validate that end date is after start date.

    Raises:
        ValidationError: If end date is not after start date
    """
    if end_date <= start_date:
        raise ValidationError(
            f"{end_field} must be after {start_field}",
            end_field,
            f"{end_date} (start: {start_date})",
        )


def normalize_instant(value: datetime) -> datetime:
    """
    Convert an instant to the naive local wall-clock time used for storage.

    Naive datetimes are assumed to already be local to ``settings.TIMEZONE``.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def local_now() -> datetime:
    """Current naive local time in ``settings.TIMEZONE``."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Return ``[00:00:00, 23:59:59.999]`` for a calendar day."""
    start_of_day = datetime.combine(day, time.min)
    end_of_day = datetime.combine(day, time(23, 59, 59, 999000))
    return start_of_day, end_of_day
