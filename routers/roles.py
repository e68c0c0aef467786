# routers/roles.py

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from core.permission_helpers import granted_capabilities, requires_permission
from core.roles import get_role, list_roles, pending_overrides
from dependencies.auth import get_current_user, CurrentUser


router = APIRouter(
    prefix="/roles",
    tags=["Roles"],
)


class DraftChange(BaseModel):
    area: str
    capability: str
    value: bool


def _role_or_404(role: str):
    config = get_role(role)
    if config is None:
        raise HTTPException(404, f"Unknown role: {role}")
    return config


# -----------------------------------------------------
# Catalog (read-only)
# -----------------------------------------------------
@router.get("", summary="List roles with permission totals")
def read_roles(current_user: CurrentUser = Depends(get_current_user)):
    return {
        "success": True,
        "data": [config.to_dict() for config in list_roles()],
        "current_role": current_user.role,
    }


@router.get("/{role}", summary="Role permission map")
def read_role(role: str, current_user: CurrentUser = Depends(get_current_user)):
    config = _role_or_404(role)
    data = config.to_dict(include_permissions=True)
    data["granted"] = granted_capabilities(config.value)
    return {"success": True, "data": data}


# -----------------------------------------------------
# Drafts (in-memory, never persisted)
# -----------------------------------------------------
@router.get(
    "/{role}/draft",
    summary="Pending permission changes for a role",
    dependencies=[Depends(requires_permission("system", "settings"))],
)
def read_draft(role: str):
    _role_or_404(role)
    return {"success": True, "data": pending_overrides.draft(role)}


@router.put(
    "/{role}/draft",
    summary="Stage a permission change (not persisted)",
    dependencies=[Depends(requires_permission("system", "settings"))],
)
def stage_draft(role: str, payload: DraftChange):
    _role_or_404(role)
    draft = pending_overrides.stage(role, payload.area, payload.capability, payload.value)
    return {"success": True, "data": draft}


@router.delete(
    "/{role}/draft",
    summary="Discard pending permission changes",
    dependencies=[Depends(requires_permission("system", "settings"))],
)
def discard_draft(role: str):
    _role_or_404(role)
    pending_overrides.discard(role)
    return {"success": True, "data": pending_overrides.draft(role)}
