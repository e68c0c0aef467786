# routers/screens.py

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.permission_helpers import granted_capabilities
from core.route_guard import (
    LANDING_PATH,
    LOGIN_PATH,
    PROTECTED_ROUTES,
    GuardDecision,
    check_path,
)
from core.roles import get_role
from core.session import Session, resolve_session
from services.document_store import get_document_store
from services.identity_provider import get_identity_provider


router = APIRouter(
    prefix="/screens",
    tags=["Screens"],
)

SCREEN_PREFIX = "/screens"


# -----------------------------------------------------
# Session for the guard (re-resolved on every request)
# -----------------------------------------------------
def get_optional_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(HTTPBearer(auto_error=False)),
) -> Optional[Session]:
    if not credentials:
        return None

    identity = get_identity_provider().get_identity(credentials.credentials)
    if identity is None:
        return None

    session = resolve_session(identity, get_document_store())
    if not session.user.is_active:
        return None
    return session


def _redirect(decision: GuardDecision) -> RedirectResponse:
    response = RedirectResponse(f"{SCREEN_PREFIX}{decision.redirect_to}", status_code=303)
    response.headers["X-Guard-Reason"] = decision.reason or ""
    return response


# -----------------------------------------------------
# GET /screens/login
# -----------------------------------------------------
@router.get("/login", summary="Login screen")
def login_screen(session: Optional[Session] = Depends(get_optional_session)):
    if session is not None:
        return _redirect(GuardDecision(False, LOGIN_PATH, LANDING_PATH, "already_signed_in"))
    return {"path": LOGIN_PATH, "title": "Sign in"}


# -----------------------------------------------------
# GET /screens/{name}
# -----------------------------------------------------
@router.get("/{name}", summary="Protected screen")
def screen(name: str, session: Optional[Session] = Depends(get_optional_session)):
    path = f"/{name}"
    decision = check_path(session, path)
    if not decision.allowed:
        return _redirect(decision)

    rule = PROTECTED_ROUTES[path]
    role = get_role(session.role)
    return {
        "path": path,
        "title": rule.title,
        "user": {
            "id": session.user.id,
            "name": session.user.name,
            "role": session.role,
            "role_label": role.label if role else session.role,
        },
        "navigation": [
            p for p in PROTECTED_ROUTES if check_path(session, p).allowed
        ],
        "capabilities": granted_capabilities(session.role),
    }
