"""
Establishment scoping for every read and write in the booking engine.

A ``Scope`` is derived once per request from the principal's role and home
establishment. It is either unrestricted (root, super_admin) or restricted to
exactly one establishment (manager, staff). All privilege decisions go through
``resolve_scope`` and ``AccessValidator`` so no call site branches on raw role
strings.
"""

import logging
from dataclasses import dataclass
from typing import Optional, TypeVar

from pydantic import BaseModel

from app.core.exceptions import EstablishmentAccessDeniedError, ScopeConfigurationError
from app.core.logging import AUDIT_LOGGER_NAME
from app.models.user import UserRole

audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)

PRIVILEGED_ROLES = frozenset({UserRole.ROOT, UserRole.SUPER_ADMIN})
READ_ONLY_ROLES = frozenset({UserRole.STAFF})

F = TypeVar("F", bound=BaseModel)


@dataclass(frozen=True)
class Scope:
    """Request-scoped access boundary; never persisted."""

    establishment_id: Optional[int] = None
    role: Optional[UserRole] = None

    @classmethod
    def unrestricted(cls, role: Optional[UserRole] = None) -> "Scope":
        return cls(establishment_id=None, role=role)

    @classmethod
    def restricted_to(
        cls, establishment_id: int, role: Optional[UserRole] = None
    ) -> "Scope":
        return cls(establishment_id=establishment_id, role=role)

    @property
    def is_unrestricted(self) -> bool:
        return self.establishment_id is None


def resolve_scope(
    role: UserRole,
    home_establishment_id: Optional[int] = None,
    user_id: Optional[int] = None,
) -> Scope:
    """
    Build the scope of a principal.

    Privileged roles are unrestricted even when an establishment id is present.
    Restricted roles are pinned to their home establishment.

    Raises:
        ScopeConfigurationError: If a restricted role has no home establishment
    """
    if role in PRIVILEGED_ROLES:
        return Scope.unrestricted(role)

    if home_establishment_id is None:
        raise ScopeConfigurationError(role.value, user_id)

    return Scope.restricted_to(home_establishment_id, role)


class AccessValidator:
    """Stateless allow/deny decisions against a Scope."""

    @staticmethod
    def can_access(scope: Scope, resource_establishment_id: Optional[int]) -> bool:
        if scope.is_unrestricted:
            return True
        return scope.establishment_id == resource_establishment_id

    @staticmethod
    def can_modify(
        scope: Scope,
        resource_establishment_id: Optional[int],
        role: Optional[UserRole],
    ) -> bool:
        if role in READ_ONLY_ROLES:
            return False
        return AccessValidator.can_access(scope, resource_establishment_id)

    @staticmethod
    def enforce(
        scope: Scope, resource_establishment_id: Optional[int], resource_type: str
    ) -> None:
        """
        Raise EstablishmentAccessDeniedError unless the scope covers the resource.

        Both establishment ids are recorded on the audit logger; the exception
        message itself stays generic.
        """
        allowed = AccessValidator.can_access(scope, resource_establishment_id)
        _audit(scope, resource_establishment_id, resource_type, "read", allowed)
        if not allowed:
            raise EstablishmentAccessDeniedError(
                resource_type, scope.establishment_id, resource_establishment_id
            )

    @staticmethod
    def enforce_modify(
        scope: Scope, resource_establishment_id: Optional[int], resource_type: str
    ) -> None:
        """Like ``enforce`` but also refuses read-only roles carried by the scope."""
        allowed = AccessValidator.can_modify(
            scope, resource_establishment_id, scope.role
        )
        _audit(scope, resource_establishment_id, resource_type, "write", allowed)
        if not allowed:
            reason = (
                "read_only_role"
                if scope.role in READ_ONLY_ROLES
                else "establishment_mismatch"
            )
            raise EstablishmentAccessDeniedError(
                resource_type,
                scope.establishment_id,
                resource_establishment_id,
                reason=reason,
            )

    @staticmethod
    def apply_filter(scope: Scope, filters: F) -> F:
        """
        Pin list/aggregate filters to the scope's establishment.

        Unrestricted scopes get the filters back unchanged. Restricted scopes get
        a copy whose ``establishment_id`` is overwritten, whatever the caller asked.
        """
        if scope.is_unrestricted:
            return filters
        return filters.model_copy(update={"establishment_id": scope.establishment_id})


def _audit(
    scope: Scope,
    resource_establishment_id: Optional[int],
    resource_type: str,
    action: str,
    allowed: bool,
) -> None:
    audit_logger.log(
        logging.INFO if allowed else logging.WARNING,
        f"{action} {resource_type}: {'allowed' if allowed else 'denied'}",
        extra={
            "resource_type": resource_type,
            "action": action,
            "allowed": allowed,
            "user_role": scope.role.value if scope.role else None,
            "scope_establishment_id": scope.establishment_id,
            "resource_establishment_id": resource_establishment_id,
        },
    )
