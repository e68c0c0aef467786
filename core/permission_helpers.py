from fastapi import Depends, HTTPException
from typing import Any, Dict, List

from dependencies.auth import get_current_user, CurrentUser
from core.errors import PermissionDenied
from core.permissions import AREAS, PRIMARY_CAPABILITY, ROLE_PERMISSIONS
from models.enums import Role


# -----------------------------------------------------
# Access evaluation (deny-by-default)
# -----------------------------------------------------
def evaluate(role: Any, area: Any, capability: Any) -> bool:
    """
    Can `role` perform `capability` on `area`?

    Unknown roles, areas and capabilities, and non-string input, all
    evaluate to False. Never raises.
    """
    if not all(isinstance(v, str) for v in (role, area, capability)):
        return False

    permissions = ROLE_PERMISSIONS.get(role)
    if permissions is None:
        return False

    area_permissions = permissions.get(area)
    if area_permissions is None:
        return False

    return area_permissions.get(capability, False) is True


# -----------------------------------------------------
# Display aggregates (never use for access decisions)
# -----------------------------------------------------
def count_permissions(role: Any) -> int:
    """Number of granted capabilities across all areas."""
    permissions = ROLE_PERMISSIONS.get(role) if isinstance(role, str) else None
    if permissions is None:
        return 0
    return sum(
        1 for area in permissions.values() for granted in area.values() if granted
    )


def count_accessible_areas(role: Any) -> int:
    """Number of areas whose primary capability (view, or settings for system) is granted."""
    return sum(1 for area in AREAS if evaluate(role, area, PRIMARY_CAPABILITY[area]))


def granted_capabilities(role: Any) -> Dict[str, List[str]]:
    """{area: [granted capability, ...]} for every area; empty lists for unknown roles."""
    permissions = ROLE_PERMISSIONS.get(role) if isinstance(role, str) else None
    return {
        area: [cap for cap, ok in (permissions[area].items() if permissions else ()) if ok]
        for area in AREAS
    }


# -----------------------------------------------------
# User-level checks
# -----------------------------------------------------
def has_permission(user: CurrentUser | None, area: str, capability: str) -> bool:
    if user is None:
        return False
    return evaluate(user.role, area, capability)


def is_admin(user: CurrentUser | None) -> bool:
    return user is not None and user.role == Role.admin.value


def require_admin(user: CurrentUser):
    """Raise PermissionDenied if user is not admin."""
    if not is_admin(user):
        raise PermissionDenied("Admin role required")


# -----------------------------------------------------
# FastAPI dependency wrapper
# -----------------------------------------------------
def requires_permission(area: str, capability: str):
    """
    Usage:
        @router.post("/", dependencies=[Depends(requires_permission("users", "create"))])
    """

    def dependency(current_user: CurrentUser = Depends(get_current_user)):
        if not has_permission(current_user, area, capability):
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient permissions: '{area}:{capability}' required",
            )
        return current_user

    return dependency
