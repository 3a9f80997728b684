from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from supabase import Client, create_client

from src.config import get_settings
from src.domain.entities.account import ADMIN_CLAIM, AccountEntity
from src.infrastructure.database.repositories.account_repository import AccountRepository


@dataclass(slots=True)
class UserInfo:
    id: str
    email: str | None
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.claims.get(ADMIN_CLAIM) is True

    @classmethod
    def from_account(cls, account: AccountEntity) -> "UserInfo":
        return cls(id=account.id, email=account.email, claims=dict(account.claims))


@dataclass(slots=True)
class SessionInfo:
    access_token: str
    user: UserInfo


class SupabaseAuthAdapter:
    """Small wrapper around Supabase Auth for sign-in and token verification.

    When SUPABASE_DISABLED=1 (or no client is configured), sessions are
    resolved against the in-memory identity store instead.
    """

    def __init__(self, client: Client | None, accounts: AccountRepository) -> None:
        self.disabled = get_settings().supabase_disabled
        self._client = client
        self._accounts = accounts

    def validate_token(self, token: str) -> UserInfo:
        """Verify an access token and return the account and claims it carries."""
        if not token:
            raise ValueError("Missing access token")
        if self.disabled or not self._client:
            return UserInfo.from_account(self._accounts.resolve_session(token))
        # Real validation via Supabase Auth API
        try:  # pragma: no cover - network
            res = self._client.auth.get_user(token)
            user = res.user if res else None
            if not user:
                raise ValueError("Invalid access token")
            return UserInfo(id=user.id, email=user.email, claims=dict(user.app_metadata or {}))
        except ValueError:  # pragma: no cover - network
            raise
        except Exception as exc:  # pragma: no cover - network
            raise ValueError(f"Invalid access token: {exc}") from exc

    def sign_in(self, email: str, password: str) -> SessionInfo:
        if not email or not password:
            raise ValueError("Email and password are required")
        if self.disabled or not self._client:
            token, account = self._accounts.open_session(email, password)
            return SessionInfo(access_token=token, user=UserInfo.from_account(account))
        try:  # pragma: no cover - network
            res = self._client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:  # pragma: no cover - network
            raise ValueError("Invalid login credentials") from exc
        if not res.session or not res.user:  # pragma: no cover - network
            raise ValueError("Invalid login credentials")
        return SessionInfo(  # pragma: no cover - network
            access_token=res.session.access_token,
            user=UserInfo(id=res.user.id, email=res.user.email, claims=dict(res.user.app_metadata or {})),
        )

    def sign_out(self, token: str) -> None:
        """Revoke the session behind ``token`` so it stops validating."""
        if token:
            self._accounts.end_session(token)


# Process-wide clients; each stays None in memory mode or when unconfigured.
_CLIENT_SINGLETON: Client | None = None
_ADMIN_CLIENT_SINGLETON: Client | None = None


def get_supabase_client() -> Client | None:
    """Anon-key client used for sign-in and token checks."""
    global _CLIENT_SINGLETON
    settings = get_settings()
    if settings.supabase_disabled or not settings.supabase_url or not settings.supabase_anon_key:
        return None
    if _CLIENT_SINGLETON is None:
        _CLIENT_SINGLETON = create_client(settings.supabase_url, settings.supabase_anon_key)
    return _CLIENT_SINGLETON


def get_supabase_admin_client() -> Client | None:
    """Service-role client for the Auth admin API and the profile table."""
    global _ADMIN_CLIENT_SINGLETON
    settings = get_settings()
    if (
        settings.supabase_disabled
        or not settings.supabase_url
        or not settings.supabase_service_role_key
    ):
        return None
    if _ADMIN_CLIENT_SINGLETON is None:
        _ADMIN_CLIENT_SINGLETON = create_client(
            settings.supabase_url, settings.supabase_service_role_key
        )
    return _ADMIN_CLIENT_SINGLETON
