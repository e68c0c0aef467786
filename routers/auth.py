from fastapi import APIRouter, Depends

from core.logging_config import logger
from core.route_guard import LANDING_PATH
from core.session import IdentitySession
from dependencies.auth import get_current_user, CurrentUser
from models.auth import LoginRequest, SignupRequest, TokenResponse
from services.document_store import get_document_store
from services.identity_provider import get_identity_provider


router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
)


def _new_session() -> IdentitySession:
    return IdentitySession(get_identity_provider(), get_document_store())


def _token_response(session) -> TokenResponse:
    return TokenResponse(
        access_token=session.access_token or "",
        role=session.role,
        landing=LANDING_PATH,
    )


# ============================================================
# LOGIN (identity provider + user record)
# ============================================================
@router.post("/login", response_model=TokenResponse, summary="Authenticate user")
def login(payload: LoginRequest):
    # AuthFailure (bad credentials / inactive account) -> 401 via handler
    session = _new_session().sign_in(payload.email, payload.password)
    logger.info(f"Login: uid={session.uid} role={session.role!r}")
    return _token_response(session)


# ============================================================
# SIGN-UP (self-service; gets the least privileged role)
# ============================================================
@router.post("/signup", response_model=TokenResponse, status_code=201, summary="Create an account")
def signup(payload: SignupRequest):
    session = _new_session().sign_up(payload.email, payload.password, payload.display_name)
    logger.info(f"Sign-up: uid={session.uid} role={session.role!r}")
    return _token_response(session)


# ============================================================
# LOGOUT
# ============================================================
@router.post("/logout", summary="Sign out")
def logout(current_user: CurrentUser = Depends(get_current_user)):
    get_identity_provider().sign_out(current_user.access_token)
    logger.info(f"Logout: uid={current_user.auth_user_id}")
    return {"success": True, "redirect_to": "/login"}


# ============================================================
# CURRENT USER
# ============================================================
@router.get("/me", response_model=CurrentUser, summary="Current authenticated user")
def read_me(current_user: CurrentUser = Depends(get_current_user)):
    return current_user
