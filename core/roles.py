# core/roles.py

"""
Role catalog: the read-only list of console roles, their labels,
descriptions and permission maps.

Draft editing of a role's permissions lives in PendingRoleOverrides, a
separate structure that nothing in the access path reads. Drafts are held
in process memory only and are never persisted.
"""

from dataclasses import dataclass
from threading import Lock
from typing import Dict, List, Optional, Tuple

from core.errors import ValidationFailure
from core.permissions import AREA_CAPABILITIES, AREAS, ROLE_PERMISSIONS, PermissionMap
from core.permission_helpers import count_accessible_areas, count_permissions
from models.enums import Role


@dataclass(frozen=True)
class RoleConfig:
    value: str
    label: str
    description: str
    permissions: PermissionMap

    @property
    def total_permissions(self) -> int:
        return count_permissions(self.value)

    @property
    def allowed_areas(self) -> int:
        return count_accessible_areas(self.value)

    def to_dict(self, include_permissions: bool = False) -> dict:
        data = {
            "value": self.value,
            "label": self.label,
            "description": self.description,
            "total_permissions": self.total_permissions,
            "allowed_areas": self.allowed_areas,
            "total_areas": len(AREAS),
        }
        if include_permissions:
            data["permissions"] = {area: dict(caps) for area, caps in self.permissions.items()}
        return data


# ============================================
# CATALOG (display order matters, access does not)
# ============================================
_ROLE_TEXT: Tuple[Tuple[Role, str, str], ...] = (
    (
        Role.admin,
        "System Administrator",
        "Full system access - can manage users, facilities, inventory, reports, and all data",
    ),
    (
        Role.regional_supervisor,
        "Regional Supervisor",
        "Can manage users, facilities, inventory, and view reports for their region",
    ),
    (
        Role.district_health_officer,
        "District Health Officer",
        "Can manage users, facilities, inventory, and view reports for their district",
    ),
    (
        Role.facility_manager,
        "Facility Manager",
        "Can manage users, facilities, inventory, and view reports for their facility",
    ),
    (
        Role.village_health_worker,
        "Village Health Worker",
        "Can view and update inventory, record transactions",
    ),
)

ROLE_CATALOG: Tuple[RoleConfig, ...] = tuple(
    RoleConfig(
        value=role.value,
        label=label,
        description=description,
        permissions=ROLE_PERMISSIONS[role.value],
    )
    for role, label, description in _ROLE_TEXT
)

_BY_VALUE: Dict[str, RoleConfig] = {config.value: config for config in ROLE_CATALOG}


def list_roles() -> Tuple[RoleConfig, ...]:
    return ROLE_CATALOG


def get_role(value: str) -> Optional[RoleConfig]:
    return _BY_VALUE.get(value) if isinstance(value, str) else None


def is_known_role(value) -> bool:
    return get_role(value) is not None


def role_choices() -> List[dict]:
    """[{value, label}, ...] for dropdowns."""
    return [{"value": c.value, "label": c.label} for c in ROLE_CATALOG]


# ============================================
# PENDING LOCAL OVERRIDES (drafts, never authoritative)
# ============================================
class PendingRoleOverrides:
    """
    Draft edits to role permissions.

    The catalog above stays the only source the evaluator reads; a draft
    is a set of (area, capability) -> bool overrides layered on a copy of
    it for display.
    """

    def __init__(self):
        self._drafts: Dict[str, Dict[Tuple[str, str], bool]] = {}
        self._lock = Lock()

    def stage(self, role: str, area: str, capability: str, value: bool) -> dict:
        if not is_known_role(role):
            raise ValidationFailure(f"Unknown role: {role}", field="role")
        if area not in AREA_CAPABILITIES:
            raise ValidationFailure(f"Unknown area: {area}", field="area")
        if capability not in AREA_CAPABILITIES[area]:
            raise ValidationFailure(f"Unknown capability for {area}: {capability}", field="capability")

        with self._lock:
            overrides = self._drafts.setdefault(role, {})
            if ROLE_PERMISSIONS[role][area][capability] == bool(value):
                # Back to the catalog value: nothing pending for this cell
                overrides.pop((area, capability), None)
            else:
                overrides[(area, capability)] = bool(value)
            if not overrides:
                self._drafts.pop(role, None)

        return self.draft(role)

    def changes(self, role: str) -> List[dict]:
        with self._lock:
            overrides = dict(self._drafts.get(role, {}))
        return [
            {
                "area": area,
                "capability": capability,
                "current": ROLE_PERMISSIONS[role][area][capability],
                "draft": value,
            }
            for (area, capability), value in sorted(overrides.items())
        ]

    def draft(self, role: str) -> dict:
        """Catalog permissions with pending overrides applied."""
        config = get_role(role)
        if config is None:
            raise ValidationFailure(f"Unknown role: {role}", field="role")

        with self._lock:
            overrides = dict(self._drafts.get(role, {}))

        permissions = {area: dict(caps) for area, caps in config.permissions.items()}
        for (area, capability), value in overrides.items():
            permissions[area][capability] = value

        return {
            "role": role,
            "persisted": False,
            "permissions": permissions,
            "changes": self.changes(role),
        }

    def discard(self, role: str) -> None:
        with self._lock:
            self._drafts.pop(role, None)

    def has_changes(self, role: str) -> bool:
        with self._lock:
            return bool(self._drafts.get(role))


# Process-wide draft book used by the roles router
pending_overrides = PendingRoleOverrides()
