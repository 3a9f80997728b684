from __future__ import annotations

from fastapi import APIRouter, Depends

from src.application.dtos.account_dto import UserProfileResponse
from src.infrastructure.api.dependencies import get_forwarded_user, get_profile_repo
from src.infrastructure.database.repositories.profile_repository import ProfileRepository

router = APIRouter(
    prefix="/profile",
    tags=["Profile"],
    responses={307: {"description": "Redirect - Not signed in"}},
)


@router.get(
    "",
    response_model=UserProfileResponse,
    summary="Profile Page",
    description="Profile of the signed-in user, identified by the forwarded session cookie.",
)
def profile_page(
    user=Depends(get_forwarded_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    prof = profiles.get(user.id)
    return {
        "id": user.id,
        "email": prof.email if prof and prof.email else user.email,
        "name": prof.full_name if prof else None,
        "is_admin": user.is_admin,
        "created_at": prof.created_at if prof else None,
    }
