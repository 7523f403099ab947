"""Administrator pages.

Every route here requires an administrator; requests to this group are
also rate limited by the pipeline.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from starlette.responses import Response

from src.api.auth import SiteUser, require_admin
from src.api.templating import render
from src.infrastructure.database.dependencies import DatabaseSession
from src.infrastructure.database.users import UserRepository

LATEST_USERS_LIMIT = 10

router = APIRouter(
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    default_response_class=HTMLResponse,
)


@router.get("/", name="admin_dashboard")
async def dashboard(
    request: Request,
    admin: Annotated[SiteUser, Depends(require_admin)],
    db: DatabaseSession,
) -> Response:
    users = UserRepository(db)
    return render(
        request,
        "admin/dashboard.html",
        {
            "admin": admin,
            "user_count": await users.count(),
            "latest_users": await users.latest(LATEST_USERS_LIMIT),
        },
    )
