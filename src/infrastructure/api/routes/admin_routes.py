from __future__ import annotations

from fastapi import APIRouter, Depends

from src.application.dtos.account_dto import AdminDashboardResponse, AdminUserItem
from src.config import Settings, get_settings
from src.infrastructure.api.dependencies import get_account_repo, require_admin
from src.infrastructure.database.repositories.account_repository import AccountRepository

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={
        307: {"description": "Redirect - Not signed in, or not the admin"},
    },
)


@router.get(
    "",
    response_model=AdminDashboardResponse,
    summary="Admin Dashboard",
    description="""
    User-management listing for the admin.

    Reached through the session cookie, which the gateway forwards as a
    header. Requests without it are sent to the sign-in page; requests from
    anyone but the admin are sent home.
    """,
)
def dashboard(
    admin=Depends(require_admin),
    accounts: AccountRepository = Depends(get_account_repo),
    settings: Settings = Depends(get_settings),
):
    users = accounts.list_accounts(limit=settings.admin_listing_page_size)
    return AdminDashboardResponse(users=[AdminUserItem.from_entity(u) for u in users])
