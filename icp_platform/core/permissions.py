"""
Role checks shared by the catalog, ticket and user services.
"""

from typing import Any, Dict, Optional

from .errors import ForbiddenError, UnauthenticatedError
from .schema import OWNER_FIELD, Principal


def is_moderator(principal: Optional[Principal]) -> bool:
    """ADMIN and ICP_SUPPORT moderate content."""
    return principal is not None and principal.is_moderator


def is_owner(principal: Optional[Principal], entity: Dict[str, Any], owner_field: str = OWNER_FIELD) -> bool:
    return principal is not None and entity.get(owner_field) == principal.uid


def can_edit(principal: Optional[Principal], entity: Dict[str, Any], owner_field: str = OWNER_FIELD) -> bool:
    return is_moderator(principal) or is_owner(principal, entity, owner_field)


def require_principal(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise UnauthenticatedError("Authentication required")
    return principal


def require_moderator(principal: Optional[Principal], action: str = "perform this action") -> Principal:
    require_principal(principal)
    if not principal.is_moderator:
        raise ForbiddenError(f"Only moderators can {action}")
    return principal


def require_admin(principal: Optional[Principal], action: str = "perform this action") -> Principal:
    require_principal(principal)
    if not principal.is_admin:
        raise ForbiddenError(f"Only administrators can {action}")
    return principal
