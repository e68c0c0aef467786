from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from core.session import Session, resolve_session
from services.document_store import get_document_store
from services.identity_provider import get_identity_provider


bearer_scheme = HTTPBearer()


# ============================================================
# Current User Model (identity + console user record)
# ============================================================
class CurrentUser(BaseModel):
    id: str                         # console user record id
    auth_user_id: str               # identity provider UID
    email: Optional[str] = None
    role: str

    name: Optional[str] = None
    phone: Optional[str] = None
    status: str = "active"

    facility_name: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None

    access_token: Optional[str] = None

    @classmethod
    def from_session(cls, session: Session) -> "CurrentUser":
        user = session.user
        return cls(
            id=user.id,
            auth_user_id=session.uid,
            email=user.email or session.identity.email,
            role=user.role,
            name=user.name,
            phone=user.phone,
            status=user.status.value,
            facility_name=user.facility_name,
            region=user.region,
            district=user.district,
            access_token=session.access_token,
        )


# ============================================================
# AUTH DECODING (provider validates token, store supplies role)
# ============================================================
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> CurrentUser:

    token = credentials.credentials

    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    # ---------------------------------------------------------
    # Validate token via the identity provider
    # ---------------------------------------------------------
    identity = get_identity_provider().get_identity(token)
    if identity is None:
        raise unauthorized

    # ---------------------------------------------------------
    # Join with the console user record
    # (DataAccessFailure propagates -> 503)
    # ---------------------------------------------------------
    session = resolve_session(identity, get_document_store())

    if not session.user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser.from_session(session)

