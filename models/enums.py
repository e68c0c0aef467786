from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# ROLE
# -----------------------------------------------------
class Role(BaseStrEnum):
    """Closed set of console roles, most to least privileged."""

    admin = "admin"
    regional_supervisor = "regional_supervisor"
    district_health_officer = "district_health_officer"
    facility_manager = "facility_manager"
    village_health_worker = "village_health_worker"


# -----------------------------------------------------
# RESOURCE AREA
# -----------------------------------------------------
class ResourceArea(BaseStrEnum):
    """Application areas that capabilities are grouped under."""

    users = "users"
    facilities = "facilities"
    inventory = "inventory"
    transactions = "transactions"
    transfers = "transfers"
    reports = "reports"
    system = "system"


# -----------------------------------------------------
# USER STATUS
# -----------------------------------------------------
class UserStatus(BaseStrEnum):
    active = "active"
    inactive = "inactive"
