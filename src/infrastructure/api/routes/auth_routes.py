from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from src.application.dtos.account_dto import (
    CreateAccountRequest,
    CreateAccountResponse,
    LoginRequest,
    LoginResponse,
    ProvisioningErrorResponse,
    RegistrationOptionsResponse,
    UpdateProfileBody,
    UserProfileResponse,
)
from src.application.dtos.common_dto import SuccessResponse
from src.application.use_cases.create_account import CreateAccountUseCase
from src.application.use_cases.update_profile import UpdateProfileUseCase
from src.config import Settings, get_settings
from src.domain.entities.registration import Role
from src.domain.exceptions import IdentityStoreError
from src.domain.services.admin_oracle import AdminExistenceOracle
from src.infrastructure.api.dependencies import (
    get_admin_oracle,
    get_auth_adapter,
    get_create_account_use_case,
    get_current_user,
    get_profile_repo,
    get_update_profile_use_case,
)
from src.infrastructure.database.repositories.profile_repository import ProfileRepository
from src.infrastructure.database.supabase_client import SupabaseAuthAdapter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.post(
    "/register",
    name="register",
    response_model=CreateAccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Account",
    description="""
    Create a new account and its profile, optionally as the single admin.

    - `role` defaults to `user`; `admin` is only granted while no admin exists
    - On any failure nothing is left behind: no account, no profile, no claim

    Errors carry `{"code", "message"}` where `code` is one of
    `invalid-argument`, `already-exists`, `permission-denied`, `internal`.
    """,
    response_description="Identifier of the created account",
    responses={
        400: {"model": ProvisioningErrorResponse, "description": "Missing or malformed email, password, full name or role"},
        403: {"model": ProvisioningErrorResponse, "description": "An admin already exists"},
        409: {"model": ProvisioningErrorResponse, "description": "Email already in use"},
        500: {"model": ProvisioningErrorResponse, "description": "Store failure, rolled back"},
    },
)
def register(
    body: CreateAccountRequest,
    use_case: CreateAccountUseCase = Depends(get_create_account_use_case),
):
    """Provision an account; errors are rendered by the provisioning error handler."""
    account = use_case.execute(body.to_domain())
    return {"uid": account.id}


@router.get(
    "/register/options",
    response_model=RegistrationOptionsResponse,
    summary="Registration Form Options",
    description="Roles the registration form may offer. `admin` is listed only while no admin exists.",
)
def registration_options(oracle: AdminExistenceOracle = Depends(get_admin_oracle)):
    roles = [Role.USER.value]
    if not oracle.admin_exists():
        roles.append(Role.ADMIN.value)
    return {"roles": roles}


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Sign In",
    description="""
    Sign in with email and password.

    The access token is returned and also stored in the session cookie, which
    the gateway forwards to guarded pages (`/admin`, `/profile`).
    """,
)
def login(
    body: LoginRequest,
    response: Response,
    auth: SupabaseAuthAdapter = Depends(get_auth_adapter),
    settings: Settings = Depends(get_settings),
):
    try:
        session = auth.sign_in(body.email, body.password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.access_token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
    return {
        "user_id": session.user.id,
        "email": session.user.email,
        "is_admin": session.user.is_admin,
        "access_token": session.access_token,
    }


@router.post(
    "/logout",
    response_model=SuccessResponse,
    summary="Sign Out",
    description="Revoke the session held in the session cookie and clear the cookie.",
)
def logout(
    request: Request,
    response: Response,
    auth: SupabaseAuthAdapter = Depends(get_auth_adapter),
    settings: Settings = Depends(get_settings),
):
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        try:
            auth.sign_out(token)
        except IdentityStoreError:
            logger.warning("Session revocation failed; clearing cookie anyway", exc_info=True)
    response.delete_cookie(settings.session_cookie_name)
    return {"ok": True, "message": "Signed out"}


@router.get(
    "/me",
    response_model=UserProfileResponse,
    summary="Get Current User Profile",
    description="""
    Retrieve the profile of the currently authenticated user.

    **Authentication required**: Yes (Bearer token)
    """,
)
def get_me(
    user=Depends(get_current_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Get current user's profile information."""
    prof = profiles.get(user.id)
    return {
        "id": user.id,
        "email": prof.email if prof else user.email,
        "name": prof.full_name if prof else None,
        "is_admin": user.is_admin,
        "created_at": prof.created_at if prof else None,
    }


@router.patch(
    "/profile",
    response_model=UserProfileResponse,
    summary="Update User Profile",
    description="""
    Update the full name of the currently authenticated user, in both the
    identity store and the profile record.

    **Authentication required**: Yes (Bearer token)
    """,
    responses={
        400: {"description": "Bad Request - Invalid name provided"},
        404: {"description": "Not Found - The user has no profile"},
    },
)
def update_profile(
    body: UpdateProfileBody,
    user=Depends(get_current_user),
    use_case: UpdateProfileUseCase = Depends(get_update_profile_use_case),
):
    """Update the current user's full name."""
    try:
        prof = use_case.execute(user.id, body.name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except RuntimeError as exc:
        logger.exception("Error updating profile for %s", user.id)
        raise HTTPException(status_code=500, detail="Failed to update profile.") from exc
    if prof is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {
        "id": prof.id,
        "email": prof.email,
        "name": prof.full_name,
        "is_admin": prof.is_admin,
        "created_at": prof.created_at,
    }
