"""
Centralized authentication dependencies.

Every authenticated route gets the acting user's ``Scope`` from here; no
endpoint inspects role strings itself.
"""

from typing import Annotated

from fastapi import Depends

from app.core.scope import Scope, resolve_scope
from app.core.security import get_active_user
from app.core.service_utils import ensure_write_access
from app.models.user import User


def require_write_role() -> User:
    """
    Dependency that requires a write-capable role (root, super_admin, manager).

    Raises:
        AccessDeniedError: If the user's role is read-only
        InactiveUserError: If user is inactive
    """

    def dependency(current_user: User = Depends(get_active_user)) -> User:
        return ensure_write_access(current_user)

    return dependency


def get_scope(current_user: User = Depends(get_active_user)) -> Scope:
    """
    Resolve the establishment scope of the acting user.

    Raises:
        ScopeConfigurationError: If a manager or staff user has no establishment
    """
    return resolve_scope(current_user.role, current_user.establishment_id, current_user.id)


# Pre-configured dependency instances for common use
RequireWriteRole = Annotated[User, Depends(require_write_role())]
RequestScope = Annotated[Scope, Depends(get_scope)]
