# tests/test_permissions.py

"""
Tests for the permission matrix and access evaluator.
"""

import pytest

from core.permissions import (
    AREA_CAPABILITIES,
    AREAS,
    ROLE_PERMISSIONS,
    build_permission_map,
)
from core.permission_helpers import (
    count_accessible_areas,
    count_permissions,
    evaluate,
    granted_capabilities,
    has_permission,
    is_admin,
    require_admin,
)
from core.errors import PermissionDenied
from dependencies.auth import CurrentUser
from models.enums import Role


def _user(role: str) -> CurrentUser:
    return CurrentUser(id="u1", auth_user_id="u1", email="u1@dims.go.ug", role=role)


# ------------------------------------------------------------
# Matrix shape
# ------------------------------------------------------------
def test_every_role_has_every_area_and_capability():
    for role in Role.list():
        permissions = ROLE_PERMISSIONS[role]
        assert set(permissions) == set(AREAS)
        for area, capabilities in AREA_CAPABILITIES.items():
            assert set(permissions[area]) == set(capabilities)


def test_matrix_is_read_only():
    with pytest.raises(TypeError):
        ROLE_PERMISSIONS[Role.village_health_worker.value]["users"]["view"] = True

    with pytest.raises(TypeError):
        ROLE_PERMISSIONS["intruder"] = ROLE_PERMISSIONS[Role.admin.value]


def test_build_permission_map_rejects_unknown_names():
    with pytest.raises(ValueError):
        build_permission_map({"warehouse": ("view",)})

    with pytest.raises(ValueError):
        build_permission_map({"users": ("fly",)})


def test_admin_holds_every_capability():
    for area, capabilities in AREA_CAPABILITIES.items():
        for capability in capabilities:
            assert evaluate("admin", area, capability) is True


# ------------------------------------------------------------
# Evaluator (deny-by-default)
# ------------------------------------------------------------
def test_village_health_worker_boundaries():
    assert evaluate("village_health_worker", "inventory", "view") is True
    assert evaluate("village_health_worker", "inventory", "barcode_scan") is True
    assert evaluate("village_health_worker", "transactions", "create") is True

    assert evaluate("village_health_worker", "inventory", "delete") is False
    assert evaluate("village_health_worker", "users", "view") is False
    assert evaluate("village_health_worker", "reports", "view") is False
    assert evaluate("village_health_worker", "transfers", "view") is False


def test_facility_manager_limits():
    assert evaluate("facility_manager", "users", "create") is True
    assert evaluate("facility_manager", "users", "assign_roles") is False
    assert evaluate("facility_manager", "facilities", "create") is False
    assert evaluate("facility_manager", "transfers", "approve") is False
    assert evaluate("facility_manager", "system", "settings") is False


@pytest.mark.parametrize(
    "role, area, capability",
    [
        ("superuser", "users", "view"),
        ("", "users", "view"),
        ("admin", "warehouse", "view"),
        ("admin", "users", "fly"),
        (None, "users", "view"),
        ("admin", None, "view"),
        (42, "users", "view"),
        (["admin"], "users", "view"),
    ],
)
def test_unknown_or_malformed_input_is_denied(role, area, capability):
    assert evaluate(role, area, capability) is False


def test_user_level_checks():
    assert has_permission(_user("regional_supervisor"), "users", "assign_roles") is True
    assert has_permission(_user("facility_manager"), "users", "assign_roles") is False
    assert has_permission(None, "inventory", "view") is False

    assert is_admin(_user("admin")) is True
    assert is_admin(_user("regional_supervisor")) is False
    assert is_admin(None) is False


# ------------------------------------------------------------
# Display aggregates
# ------------------------------------------------------------
@pytest.mark.parametrize(
    "role, total, areas",
    [
        ("admin", 39, 7),
        ("regional_supervisor", 28, 6),
        ("district_health_officer", 28, 6),
        ("facility_manager", 24, 6),
        ("village_health_worker", 7, 2),
        ("unknown", 0, 0),
        (None, 0, 0),
    ],
)
def test_counts(role, total, areas):
    assert count_permissions(role) == total
    assert count_accessible_areas(role) == areas


def test_granted_capabilities_lists_only_true_cells():
    granted = granted_capabilities("village_health_worker")
    assert granted["inventory"] == ["view", "create", "edit", "barcode_scan"]
    assert granted["users"] == []
    assert set(granted) == set(AREAS)

    assert all(caps == [] for caps in granted_capabilities("nobody").values())


def test_require_admin():
    require_admin(_user("admin"))
    with pytest.raises(PermissionDenied):
        require_admin(_user("district_health_officer"))


def test_evaluate_matches_matrix_and_is_repeatable():
    for role in Role.list():
        for area, capabilities in AREA_CAPABILITIES.items():
            for capability in capabilities:
                stored = ROLE_PERMISSIONS[role][area][capability]
                assert evaluate(role, area, capability) is stored
                assert evaluate(role, area, capability) is stored


def test_guest_is_denied_everywhere():
    assert not any(
        evaluate("guest", area, capability)
        for area, capabilities in AREA_CAPABILITIES.items()
        for capability in capabilities
    )
