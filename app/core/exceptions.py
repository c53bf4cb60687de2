"""
Domain exceptions for the booking engine.

These exceptions represent business domain errors and are converted to HTTP responses
by the exception handler middleware. This separates business logic concerns from HTTP concerns.

The hierarchy mirrors how each failure is treated operationally:

- ``ValidationError``: malformed input that slipped past the boundary.
- ``ConflictError`` / ``BusinessRuleViolationError``: expected, user-facing domain
  conflicts (not available, capacity exceeded, illegal status transition).
- ``AccessDeniedError`` / ``ScopeConfigurationError``: access errors.
- ``IntegrityViolationError``: unexpected integrity problems that are logged loudly
  and surfaced to end users as generic failures.
"""

from typing import Optional


class DomainException(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def add_context(self, **context) -> "DomainException":
        """Attach booking/accommodation context without changing the error type."""
        for key, value in context.items():
            if value is not None:
                self.details.setdefault(key, value)
        return self


class EntityNotFoundError(DomainException):
    """Raised when a requested entity is not found in the database."""

    def __init__(
        self,
        entity_name: str,
        entity_id: Optional[int] = None,
        field_name: Optional[str] = None,
    ):
        self.entity_name = entity_name
        self.entity_id = entity_id
        self.field_name = field_name

        if entity_id:
            message = f"{entity_name} with id {entity_id} not found"
        else:
            message = f"{entity_name} not found"

        super().__init__(message, {"entity_name": entity_name, "entity_id": entity_id})


class AccessDeniedError(DomainException):
    """Raised when user lacks required permissions for an operation."""

    def __init__(self, required_role: str, current_role: Optional[str] = None):
        self.required_role = required_role
        self.current_role = current_role

        message = f"{required_role} role required"
        if current_role:
            message += f", but current role is {current_role}"

        super().__init__(
            message, {"required_role": required_role, "current_role": current_role}
        )


class EstablishmentAccessDeniedError(AccessDeniedError):
    """
    Raised when a scoped principal touches another establishment's resource.

    The establishment ids are kept on the exception for the audit trail only;
    the HTTP layer answers with a generic message.
    """

    def __init__(
        self,
        resource_type: str,
        scope_establishment_id: Optional[int],
        resource_establishment_id: Optional[int],
        reason: str = "establishment_mismatch",
    ):
        self.resource_type = resource_type
        self.scope_establishment_id = scope_establishment_id
        self.resource_establishment_id = resource_establishment_id
        self.reason = reason
        DomainException.__init__(
            self,
            "Access denied",
            {
                "resource_type": resource_type,
                "scope_establishment_id": scope_establishment_id,
                "resource_establishment_id": resource_establishment_id,
                "reason": reason,
            },
        )


class ScopeConfigurationError(DomainException):
    """Raised when a restricted role has no home establishment assigned."""

    def __init__(self, role: str, user_id: Optional[int] = None):
        self.role = role
        self.user_id = user_id
        super().__init__(
            f"Role {role} requires a home establishment but none is assigned",
            {"role": role, "user_id": user_id},
        )


class ValidationError(DomainException):
    """Raised when business rule validation fails."""

    def __init__(
        self, message: str, field: Optional[str] = None, value: Optional[str] = None
    ):
        self.field = field
        self.value = value
        super().__init__(message, {"field": field, "value": value})


class ConflictError(DomainException):
    """Raised when an operation conflicts with existing data or business rules."""

    def __init__(self, message: str, conflicting_entity: Optional[str] = None):
        self.conflicting_entity = conflicting_entity
        super().__init__(message, {"conflicting_entity": conflicting_entity})


class NotAvailableError(ConflictError):
    """Raised when the requested range cannot be booked."""

    def __init__(
        self,
        accommodation_id: int,
        message: str = "Accommodation is not available for the selected dates",
    ):
        self.accommodation_id = accommodation_id
        super().__init__(message, "Booking")
        self.details["accommodation_id"] = accommodation_id


class AccommodationNotBookableError(NotAvailableError):
    """Raised when the accommodation's current status refuses new bookings."""

    def __init__(self, accommodation_id: int, current_status: str):
        self.current_status = current_status
        super().__init__(
            accommodation_id, f"Accommodation is not available ({current_status})"
        )
        self.details["current_status"] = current_status


class BusinessRuleViolationError(DomainException):
    """Raised when a business rule is violated."""

    def __init__(self, rule_name: str, message: str, context: Optional[dict] = None):
        self.rule_name = rule_name
        super().__init__(message, {"rule_name": rule_name, **(context or {})})


class CapacityExceededError(BusinessRuleViolationError):
    """Raised when the guest count exceeds the accommodation's capacity."""

    def __init__(self, requested: int, max_guests: int):
        self.requested = requested
        self.max_guests = max_guests
        super().__init__(
            "capacity_exceeded",
            f"Number of guests exceeds maximum capacity of {max_guests}",
            {"requested": requested, "max_guests": max_guests},
        )


class InvalidStatusTransitionError(BusinessRuleViolationError):
    """Raised when a booking is moved along an edge the state machine lacks."""

    def __init__(self, current_status: str, target_status: str):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            "invalid_status_transition",
            f"Cannot move booking from {current_status} to {target_status}",
            {"current_status": current_status, "target_status": target_status},
        )


class IntegrityViolationError(DomainException):
    """Base for unexpected integrity problems; never shown verbatim to end users."""


class CrossEstablishmentRelationshipError(IntegrityViolationError):
    """Raised when an accommodation is paired with a foreign establishment."""

    def __init__(
        self,
        accommodation_id: int,
        accommodation_establishment_id: int,
        requested_establishment_id: int,
    ):
        super().__init__(
            "Accommodation does not belong to this establishment",
            {
                "accommodation_id": accommodation_id,
                "accommodation_establishment_id": accommodation_establishment_id,
                "requested_establishment_id": requested_establishment_id,
            },
        )


class CodeAllocationExhaustedError(IntegrityViolationError):
    """Raised when the synchronous booking code fallback runs out of attempts."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a unique booking code after {attempts} attempts",
            {"attempts": attempts},
        )


class InactiveUserError(DomainException):
    """Raised when an inactive user attempts to perform operations."""

    def __init__(self):
        super().__init__("User account is inactive")
