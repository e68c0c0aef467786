# routers/reports.py

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from core.config import settings
from core.logging_config import logger
from core.permission_helpers import has_permission, requires_permission
from core.utils import newest_first
from dependencies.auth import get_current_user, CurrentUser
from models.user import UserRecord
from services.document_store import get_document_store
from services.report_generator import (
    render_permission_matrix_pdf,
    render_snapshot_pdf,
    render_users_pdf,
)


router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)

PDF = "application/pdf"


def _pdf(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=PDF,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# -----------------------------------------------------
# GET /reports/roles.pdf
# -----------------------------------------------------
@router.get(
    "/roles.pdf",
    summary="Role permission matrix (PDF)",
    dependencies=[Depends(requires_permission("reports", "generate"))],
)
def roles_report():
    return _pdf(render_permission_matrix_pdf(), "role-permissions.pdf")


# -----------------------------------------------------
# GET /reports/users.pdf
# -----------------------------------------------------
@router.get(
    "/users.pdf",
    summary="User directory (PDF)",
    dependencies=[Depends(requires_permission("reports", "generate"))],
)
def users_report(current_user: CurrentUser = Depends(get_current_user)):
    if not has_permission(current_user, "users", "view"):
        raise HTTPException(
            status_code=403,
            detail="Insufficient permissions: 'users:view' required",
        )

    rows = newest_first(get_document_store().list(settings.USERS_TABLE))
    users = [UserRecord(**{**r, "id": str(r.get("id"))}) for r in rows]

    logger.info(f"User directory PDF for {current_user.id}: {len(users)} users")
    return _pdf(render_users_pdf(users), "users.pdf")


# -----------------------------------------------------
# POST /reports/snapshot.pdf
# Body: PNG of the rendered view region
# -----------------------------------------------------
@router.post(
    "/snapshot.pdf",
    summary="Paginate a screen snapshot into a PDF",
    dependencies=[Depends(requires_permission("reports", "export"))],
)
async def snapshot_report(request: Request):
    png_bytes = await request.body()
    # ValidationFailure (empty / unreadable / bad dimensions) -> 400
    return _pdf(render_snapshot_pdf(png_bytes), "snapshot.pdf")
