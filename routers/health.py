# routers/health.py

from fastapi import APIRouter, Request
from core.config import settings
from core.supabase_client import ping_supabase

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Checks Supabase connection + users table query
# No auth required
# -----------------------------------------------------
@router.get("/db", summary="Supabase / DB health check")
async def health_db():
    """
    Verifies Supabase connectivity.
    - Checks if URL + key are configured
    - Attempts to query the users table

    Safe for external health monitors (no auth required).
    """
    status = ping_supabase()
    return {
        "service": "Supabase",
        "status": status.get("status", "unknown"),
        "details": status,
    }


# -----------------------------------------------------
# GET /health/app
# Simple API health check
# -----------------------------------------------------
@router.get("/app", summary="App health check")
async def health_app(request: Request):
    """
    Lightweight health check for uptime monitors.
    """
    feed = getattr(request.app.state, "user_feed", None)
    return {
        "service": settings.PROJECT_NAME,
        "status": "ok",
        "user_feed": "live" if feed is not None and feed.is_open else "offline",
    }
