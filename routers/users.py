# routers/users.py

from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request

from dependencies.auth import (
    get_current_user,
    CurrentUser,
)

from core.config import settings
from core.errors import PermissionDenied, ValidationFailure
from core.permission_helpers import has_permission, is_admin, requires_permission
from core.logging_config import logger
from core.utils import matches_search, newest_first
from models.enums import Role, UserStatus
from models.user import (
    RoleAssignment,
    UserCreate,
    UserRecord,
    UserUpdate,
    normalize_location,
)
from services.document_store import get_document_store
from services.identity_provider import get_identity_provider


router = APIRouter(
    prefix="/users",
    tags=["Users"],
)

SEARCH_FIELDS = ("name", "email", "phone")


# -----------------------------------------------------
# Helpers
# -----------------------------------------------------
def _serialize(user: UserRecord) -> dict:
    return user.model_dump(mode="json")


def _load_user(user_id: str) -> UserRecord:
    row = get_document_store().read(settings.USERS_TABLE, user_id)
    if not row:
        raise HTTPException(404, "User not found")
    return UserRecord(**{**row, "id": str(row.get("id", user_id))})


def _current_users(request: Request) -> List[UserRecord]:
    """Latest feed snapshot when the feed is live, else a direct read."""
    feed = getattr(request.app.state, "user_feed", None)
    if feed is not None and feed.is_open:
        return feed.users

    rows = get_document_store().list(settings.USERS_TABLE)
    return [UserRecord(**{**r, "id": str(r.get("id"))}) for r in rows]


def _active_admin_ids() -> List[str]:
    rows = get_document_store().find_by(settings.USERS_TABLE, "role", Role.admin.value)
    return [
        str(r.get("id"))
        for r in rows
        if (r.get("status") or UserStatus.active.value) == UserStatus.active.value
    ]


# -----------------------------------------------------
# Helper: Validate role change
# -----------------------------------------------------
def validate_role_change(
    requestor: CurrentUser,
    desired_role: str,
    target: Optional[UserRecord] = None,
):
    if desired_role not in Role.list():
        raise ValidationFailure(f"Invalid role: {desired_role}", field="role")

    # Only an admin can assign admin
    if desired_role == Role.admin.value and not is_admin(requestor):
        raise PermissionDenied("Only an admin may assign the admin role.")

    if (
        target is not None
        and target.role == Role.admin.value
        and target.is_active
        and desired_role != Role.admin.value
        and _active_admin_ids() == [target.id]
    ):
        raise HTTPException(400, "Cannot demote the last remaining active admin.")


def prevent_removing_last_admin(target: UserRecord, action: str):
    if (
        target.role == Role.admin.value
        and target.is_active
        and _active_admin_ids() == [target.id]
    ):
        raise HTTPException(400, f"Cannot {action} the last remaining active admin.")


# -----------------------------------------------------
# 1️⃣ LIST USERS
# -----------------------------------------------------
@router.get(
    "",
    summary="List users",
    dependencies=[Depends(requires_permission("users", "view"))],
)
def list_users(
    request: Request,
    role: Optional[str] = None,
    status: Optional[UserStatus] = None,
    search: Optional[str] = None,
):
    if role and role not in Role.list():
        raise ValidationFailure(f"Invalid role filter: {role}", field="role")

    results = []
    for user in _current_users(request):
        if role and user.role != role:
            continue
        if status and user.status != status:
            continue
        data = _serialize(user)
        if search and not matches_search(data, search, SEARCH_FIELDS):
            continue
        results.append(data)

    return {"success": True, "data": newest_first(results)}


# -----------------------------------------------------
# 2️⃣ GET USER
# -----------------------------------------------------
@router.get(
    "/{user_id}",
    summary="Get user",
    dependencies=[Depends(requires_permission("users", "view"))],
)
def get_user(user_id: str):
    return {"success": True, "data": _serialize(_load_user(user_id))}


# -----------------------------------------------------
# 3️⃣ CREATE USER
# -----------------------------------------------------
@router.post(
    "",
    status_code=201,
    summary="Create user",
    dependencies=[Depends(requires_permission("users", "create"))],
)
def create_user(
    payload: UserCreate,
    current_user: CurrentUser = Depends(get_current_user),
):
    payload.validate_fields()
    validate_role_change(current_user, payload.role)

    record = payload.to_record_fields()

    if payload.password:
        identity = get_identity_provider().create_account(
            payload.email, payload.password, display_name=record["name"]
        )
        user_id = identity.uid
    else:
        user_id = str(uuid.uuid4())

    stored = get_document_store().write(settings.USERS_TABLE, user_id, record)
    logger.info(f"User {user_id} created by {current_user.id} with role={payload.role}")

    user = UserRecord(**{**stored, "id": user_id})
    return {"success": True, "data": _serialize(user)}


# -----------------------------------------------------
# 4️⃣ UPDATE USER (SAFE)
# -----------------------------------------------------
@router.patch(
    "/{user_id}",
    summary="Update user",
    dependencies=[Depends(requires_permission("users", "edit"))],
)
def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: CurrentUser = Depends(get_current_user),
):
    updates = payload.changes()
    if not updates:
        raise ValidationFailure("No fields provided to update.")

    target = _load_user(user_id)

    new_role = updates.get("role", target.role)
    if new_role != target.role:
        if not has_permission(current_user, "users", "assign_roles"):
            raise PermissionDenied("Insufficient permissions: 'users:assign_roles' required")
        validate_role_change(current_user, new_role, target)

    if updates.get("status") == UserStatus.inactive.value:
        prevent_removing_last_admin(target, "deactivate")

    # Location fields follow the (possibly new) role
    merged = normalize_location(new_role, {**target.model_dump(mode="json"), **updates})
    for field in ("facility_name", "region", "district"):
        updates[field] = merged[field]

    stored = get_document_store().update(settings.USERS_TABLE, user_id, updates)
    logger.info(f"User {user_id} updated by {current_user.id}: {sorted(updates)}")

    user = UserRecord(**{**merged, **(stored or {}), "id": user_id})
    return {"success": True, "data": _serialize(user)}


# -----------------------------------------------------
# 5️⃣ ASSIGN ROLE
# -----------------------------------------------------
@router.put(
    "/{user_id}/role",
    summary="Assign role",
    dependencies=[Depends(requires_permission("users", "assign_roles"))],
)
def assign_role(
    user_id: str,
    payload: RoleAssignment,
    current_user: CurrentUser = Depends(get_current_user),
):
    target = _load_user(user_id)
    validate_role_change(current_user, payload.role, target)

    if payload.role == target.role:
        return {"success": True, "data": _serialize(target)}

    location = normalize_location(payload.role, target.model_dump(mode="json"))
    updates = {
        "role": payload.role,
        "facility_name": location["facility_name"],
        "region": location["region"],
        "district": location["district"],
    }

    stored = get_document_store().update(settings.USERS_TABLE, user_id, updates)
    logger.info(f"Role of {user_id} changed {target.role} -> {payload.role} by {current_user.id}")

    user = UserRecord(**{**target.model_dump(), **updates, **(stored or {}), "id": user_id})
    return {"success": True, "data": _serialize(user)}


# -----------------------------------------------------
# 6️⃣ TOGGLE STATUS
# -----------------------------------------------------
@router.post(
    "/{user_id}/toggle-status",
    summary="Activate / deactivate user",
    dependencies=[Depends(requires_permission("users", "edit"))],
)
def toggle_status(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
):
    target = _load_user(user_id)

    if target.is_active:
        prevent_removing_last_admin(target, "deactivate")
        new_status = UserStatus.inactive
    else:
        new_status = UserStatus.active

    stored = get_document_store().update(
        settings.USERS_TABLE, user_id, {"status": new_status.value}
    )
    logger.info(f"User {user_id} set {new_status.value} by {current_user.id}")

    user = UserRecord(**{**target.model_dump(), **(stored or {}), "status": new_status, "id": user_id})
    return {"success": True, "data": _serialize(user)}


# -----------------------------------------------------
# 7️⃣ DELETE USER - SAFE
# -----------------------------------------------------
@router.delete(
    "/{user_id}",
    summary="Delete user",
    dependencies=[Depends(requires_permission("users", "delete"))],
)
def delete_user(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
):
    if user_id in (current_user.id, current_user.auth_user_id):
        raise HTTPException(400, "You cannot delete your own account.")

    target = _load_user(user_id)
    prevent_removing_last_admin(target, "delete")

    get_document_store().delete(settings.USERS_TABLE, user_id)
    logger.info(f"User {user_id} deleted by {current_user.id}")

    return {"success": True, "data": {"user_id": user_id}}
