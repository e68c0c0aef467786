# models/user.py

from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from core.errors import ValidationFailure
from models.enums import Role, UserStatus


# ===============================================================
# LOCATION FIELD PER ROLE
# ===============================================================
# At most one location attribute is meaningful for a role.
LOCATION_FIELD_BY_ROLE: Dict[str, Optional[str]] = {
    Role.admin.value: None,
    Role.regional_supervisor.value: "region",
    Role.district_health_officer.value: "district",
    Role.facility_manager.value: "facility_name",
    Role.village_health_worker.value: "facility_name",
}

LOCATION_FIELDS = ("facility_name", "region", "district")


def normalize_location(role: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the location attribute that is meaningful for `role`."""
    keep = LOCATION_FIELD_BY_ROLE.get(role)
    cleaned = dict(data)
    for field in LOCATION_FIELDS:
        if field != keep:
            cleaned[field] = None
    return cleaned


# ===============================================================
# USER RECORD (document store row)
# ===============================================================
class UserRecord(BaseModel):
    """
    Mirrors one row of the users table. `role` is kept as stored, even if
    it is not a catalog role; the access evaluator denies unknown roles.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    email: Optional[str] = None
    phone: str = ""
    role: str
    status: UserStatus = UserStatus.active

    facility_name: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None

    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Rows written outside the console may carry nulls
    @field_validator("phone", mode="before")
    @classmethod
    def _null_phone(cls, v):
        return "" if v is None else v

    @field_validator("status", mode="before")
    @classmethod
    def _null_status(cls, v):
        return UserStatus.active if v is None else v

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active


# ===============================================================
# ADMIN PAYLOADS
# ===============================================================
class UserCreate(BaseModel):
    """
    Payload used by admins when creating a user.

    name and phone are required; checked by validate() so the failure is a
    ValidationFailure raised before any backend call. A password (with an
    e-mail) also creates an identity-provider account.
    """
    name: str = ""
    phone: str = ""
    email: Optional[EmailStr] = None
    role: str = Role.facility_manager.value
    status: UserStatus = UserStatus.active

    facility_name: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None

    password: Optional[str] = None

    def validate_fields(self) -> None:
        if not self.name.strip():
            raise ValidationFailure("Name is required", field="name")
        if not self.phone.strip():
            raise ValidationFailure("Phone is required", field="phone")
        if self.role not in Role.list():
            raise ValidationFailure(f"Invalid role: {self.role}", field="role")
        if self.password is not None and not self.email:
            raise ValidationFailure("Email is required to create a login", field="email")

    def to_record_fields(self) -> Dict[str, Any]:
        data = self.model_dump(exclude={"password"}, mode="json")
        data["name"] = self.name.strip()
        data["phone"] = self.phone.strip()
        if self.email:
            data["email"] = str(self.email).lower()
        return normalize_location(self.role, data)


class UserUpdate(BaseModel):
    """Partial update (admin)."""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[str] = None
    status: Optional[UserStatus] = None
    facility_name: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        updates = self.model_dump(exclude_none=True, mode="json")
        if "email" in updates:
            updates["email"] = updates["email"].lower()
        for field in ("name", "phone"):
            if field in updates and not updates[field].strip():
                raise ValidationFailure(f"{field.capitalize()} cannot be empty", field=field)
        if "role" in updates and updates["role"] not in Role.list():
            raise ValidationFailure(f"Invalid role: {updates['role']}", field="role")
        return updates


class RoleAssignment(BaseModel):
    role: str
