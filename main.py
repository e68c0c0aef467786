import os
import sys
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Ensure local imports resolve
sys.path.append(os.path.dirname(__file__))

# Core
from core.config import settings
from core.config_validator import validate_config_on_startup
from core.errors import ConsoleError, DataAccessFailure, PermissionDenied, ValidationFailure
from core.logging_config import logger
from core.user_feed import UserListFeed
from services.document_store import get_document_store

# -------------------------------------------------
# Routers
# -------------------------------------------------
from routers.auth import router as auth_router
from routers.users import router as users_router
from routers.roles import router as roles_router
from routers.screens import router as screens_router
from routers.reports import router as reports_router
from routers.health import router as health_router


# -------------------------------------------------
# Create the Application
# -------------------------------------------------
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="DIMS inventory console API: role-based access over Supabase",
    )
    app.state.user_feed = None

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------
    # Startup / shutdown
    # -------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        logger.info(f"Starting {settings.PROJECT_NAME}")
        validate_config_on_startup()

        feed = UserListFeed(get_document_store())
        try:
            feed.open()
        except DataAccessFailure as e:
            # Users are then read straight from the store per request
            logger.warning(f"User feed unavailable: {e.message}")
        else:
            app.state.user_feed = feed

    @app.on_event("shutdown")
    async def on_shutdown():
        feed = app.state.user_feed
        if feed is not None:
            feed.close()
            app.state.user_feed = None

    # -------------------------------------------------
    # Error handling
    # -------------------------------------------------
    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (401, 403, 500):
            logger.warning(
                f"HTTP {exc.status_code} at {request.url} - {exc.detail}"
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(ConsoleError)
    async def handle_console_error(request: Request, exc: ConsoleError):
        content = {"detail": exc.message}
        if isinstance(exc, ValidationFailure) and exc.field:
            content["field"] = exc.field
        if isinstance(exc, PermissionDenied) and exc.redirect_to:
            content["redirect_to"] = exc.redirect_to

        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} at {request.url} - {exc.message}")
        else:
            logger.warning(f"{type(exc).__name__} at {request.url} - {exc.message}")

        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.error("Unhandled error at %s", request.url, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # -------------------------------------------------
    # Register Routers
    # -------------------------------------------------
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(roles_router)
    app.include_router(screens_router)
    app.include_router(reports_router)
    app.include_router(health_router)

    # -------------------------------------------------
    # Root Redirect (guarded landing screen)
    # -------------------------------------------------
    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse("/screens/dashboard", status_code=303)

    return app


# Create the global FastAPI instance
app = create_app()
