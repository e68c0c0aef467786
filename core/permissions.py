# ============================================
# CENTRALIZED ROLE → PERMISSION MATRIX
# ============================================
#
# Single source of truth for what each role may do. Every screen, router
# and report imports it from here.
#
# Declarations below list only GRANTED capabilities per area; the module
# expands them into a fully enumerated map (every area, every capability,
# explicit False) and freezes it. An unknown area or capability name in a
# declaration fails at import time.

from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from models.enums import ResourceArea, Role


PermissionMap = Mapping[str, Mapping[str, bool]]


# -----------------------------------------------------
# Areas and their capabilities (same set for every role)
# -----------------------------------------------------
AREA_CAPABILITIES: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    ResourceArea.users.value: (
        "view", "create", "edit", "delete", "assign_roles", "reset_passwords",
    ),
    ResourceArea.facilities.value: (
        "view", "create", "edit", "delete", "manage_users",
    ),
    ResourceArea.inventory.value: (
        "view", "create", "edit", "delete",
        "barcode_scan", "bulk_operations", "export_data",
    ),
    ResourceArea.transactions.value: (
        "view", "create", "edit", "delete", "approve", "void",
    ),
    ResourceArea.transfers.value: (
        "view", "create", "edit", "delete", "approve", "reject", "track",
    ),
    ResourceArea.reports.value: (
        "view", "generate", "export", "schedule",
    ),
    ResourceArea.system.value: (
        "database_test", "backup", "restore", "settings",
    ),
})

AREAS: Tuple[str, ...] = tuple(AREA_CAPABILITIES)

# Capability that decides whether an area counts as "accessible".
# The system area has no view capability; settings stands in for it.
PRIMARY_CAPABILITY: Mapping[str, str] = MappingProxyType({
    area: ("settings" if area == ResourceArea.system.value else "view")
    for area in AREAS
})


# -----------------------------------------------------
# Granted capabilities per role
# -----------------------------------------------------
ALL = "*"

ROLE_GRANTS: Dict[str, Dict[str, Tuple[str, ...]]] = {

    # =====================================================
    # SYSTEM ADMINISTRATOR - everything
    # =====================================================
    Role.admin.value: {area: (ALL,) for area in AREAS},

    # =====================================================
    # REGIONAL SUPERVISOR - no deletes, no system area
    # =====================================================
    Role.regional_supervisor.value: {
        "users": ("view", "create", "edit", "assign_roles", "reset_passwords"),
        "facilities": ("view", "create", "edit", "manage_users"),
        "inventory": ("view", "create", "edit",
                      "barcode_scan", "bulk_operations", "export_data"),
        "transactions": ("view", "create", "edit", "approve"),
        "transfers": ("view", "create", "edit", "approve", "reject", "track"),
        "reports": ("view", "generate", "export"),
        "system": (),
    },

    # =====================================================
    # DISTRICT HEALTH OFFICER - same grants as regional, district scope
    # =====================================================
    Role.district_health_officer.value: {
        "users": ("view", "create", "edit", "assign_roles", "reset_passwords"),
        "facilities": ("view", "create", "edit", "manage_users"),
        "inventory": ("view", "create", "edit",
                      "barcode_scan", "bulk_operations", "export_data"),
        "transactions": ("view", "create", "edit", "approve"),
        "transfers": ("view", "create", "edit", "approve", "reject", "track"),
        "reports": ("view", "generate", "export"),
        "system": (),
    },

    # =====================================================
    # FACILITY MANAGER - cannot assign roles, create facilities,
    # or approve/reject transfers
    # =====================================================
    Role.facility_manager.value: {
        "users": ("view", "create", "edit", "reset_passwords"),
        "facilities": ("view", "edit", "manage_users"),
        "inventory": ("view", "create", "edit",
                      "barcode_scan", "bulk_operations", "export_data"),
        "transactions": ("view", "create", "edit", "approve"),
        "transfers": ("view", "create", "edit", "track"),
        "reports": ("view", "generate", "export"),
        "system": (),
    },

    # =====================================================
    # VILLAGE HEALTH WORKER - inventory and transactions only
    # =====================================================
    Role.village_health_worker.value: {
        "users": (),
        "facilities": (),
        "inventory": ("view", "create", "edit", "barcode_scan"),
        "transactions": ("view", "create", "edit"),
        "transfers": (),
        "reports": (),
        "system": (),
    },
}


def build_permission_map(grants: Mapping[str, Tuple[str, ...]]) -> PermissionMap:
    """
    Expand a grant declaration into a read-only map with every area and
    every capability present. Raises ValueError on unknown names.
    """
    unknown_areas = set(grants) - set(AREAS)
    if unknown_areas:
        raise ValueError(f"Unknown resource areas: {sorted(unknown_areas)}")

    expanded = {}
    for area in AREAS:
        granted = set(grants.get(area, ()))
        capabilities = AREA_CAPABILITIES[area]
        if ALL in granted:
            granted = set(capabilities)
        unknown = granted - set(capabilities)
        if unknown:
            raise ValueError(f"Unknown capabilities for {area}: {sorted(unknown)}")
        expanded[area] = MappingProxyType({cap: cap in granted for cap in capabilities})

    return MappingProxyType(expanded)


ROLE_PERMISSIONS: Mapping[str, PermissionMap] = MappingProxyType({
    role: build_permission_map(grants) for role, grants in ROLE_GRANTS.items()
})

# Every catalog role must be declared, and nothing else
if set(ROLE_PERMISSIONS) != set(Role.list()):
    raise RuntimeError("Permission matrix out of sync with Role enum")
