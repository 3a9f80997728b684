from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.application.use_cases.create_account import CreateAccountUseCase
from src.application.use_cases.update_profile import UpdateProfileUseCase
from src.config import Settings, get_settings
from src.domain.services.admin_oracle import AdminExistenceOracle
from src.infrastructure.api.errors import GuardRedirect
from src.infrastructure.database.repositories.account_repository import AccountRepository
from src.infrastructure.database.repositories.profile_repository import ProfileRepository
from src.infrastructure.database.supabase_client import (
    SupabaseAuthAdapter,
    UserInfo,
    get_supabase_admin_client,
    get_supabase_client,
)

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def get_account_repo() -> AccountRepository:
    return AccountRepository(get_supabase_admin_client())


def get_profile_repo() -> ProfileRepository:
    return ProfileRepository(get_supabase_admin_client())


def get_auth_adapter(
    accounts: Annotated[AccountRepository, Depends(get_account_repo)],
) -> SupabaseAuthAdapter:
    return SupabaseAuthAdapter(get_supabase_client(), accounts)


def get_admin_oracle(
    accounts: Annotated[AccountRepository, Depends(get_account_repo)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AdminExistenceOracle:
    return AdminExistenceOracle(accounts, page_size=settings.admin_listing_page_size)


def get_create_account_use_case(
    accounts: Annotated[AccountRepository, Depends(get_account_repo)],
    profiles: Annotated[ProfileRepository, Depends(get_profile_repo)],
    oracle: Annotated[AdminExistenceOracle, Depends(get_admin_oracle)],
) -> CreateAccountUseCase:
    return CreateAccountUseCase(accounts=accounts, profiles=profiles, oracle=oracle)


def get_update_profile_use_case(
    accounts: Annotated[AccountRepository, Depends(get_account_repo)],
    profiles: Annotated[ProfileRepository, Depends(get_profile_repo)],
) -> UpdateProfileUseCase:
    return UpdateProfileUseCase(accounts=accounts, profiles=profiles)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)],
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)],
) -> UserInfo:
    if not credentials or not credentials.scheme or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = credentials.credentials
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        return auth.validate_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))


# Page guards. These read the token the credential-forwarding middleware copied
# from the session cookie; they never read the cookie themselves.


def _forwarded_token(request: Request, settings: Settings) -> str | None:
    return request.headers.get(settings.forwarded_token_header) or None


def get_forwarded_user(
    request: Request,
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserInfo:
    token = _forwarded_token(request, settings)
    if token is None:
        raise GuardRedirect(settings.sign_in_path)
    try:
        return auth.validate_token(token)
    except ValueError as exc:
        logger.info("Forwarded token rejected on %s: %s", request.url.path, exc)
        raise GuardRedirect(settings.sign_in_path) from exc


def require_admin(
    request: Request,
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserInfo:
    token = _forwarded_token(request, settings)
    if token is None:
        raise GuardRedirect(settings.sign_in_path)
    try:
        user = auth.validate_token(token)
    except ValueError as exc:
        logger.info("Forwarded token rejected on %s: %s", request.url.path, exc)
        raise GuardRedirect(settings.home_path) from exc
    if not user.is_admin:
        raise GuardRedirect(settings.home_path)
    return user
