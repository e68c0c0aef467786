# -------------------------
# Enums
# -------------------------
from .enums import (
    Role,
    ResourceArea,
    UserStatus,
)

# -------------------------
# User Models
# -------------------------
from .user import (
    UserRecord,
    UserCreate,
    UserUpdate,
    RoleAssignment,
)

# -------------------------
# Auth Models
# -------------------------
from .auth import LoginRequest, SignupRequest, TokenResponse

__all__ = [
    # enums
    "Role",
    "ResourceArea",
    "UserStatus",

    # users
    "UserRecord",
    "UserCreate",
    "UserUpdate",
    "RoleAssignment",

    # auth
    "LoginRequest",
    "SignupRequest",
    "TokenResponse",
]
