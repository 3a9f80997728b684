from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


def _flag(name: str) -> bool:
    return os.getenv(name, "0") == "1"


def _csv(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(p.strip().rstrip("/") for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the environment."""

    app_name: str = "calcportal-backend"
    version: str = "0.1.0"
    env: str = field(default_factory=lambda: os.getenv("ENV", "development"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    supabase_disabled: bool = field(default_factory=lambda: _flag("SUPABASE_DISABLED"))
    supabase_url: str | None = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    supabase_anon_key: str | None = field(default_factory=lambda: os.getenv("SUPABASE_ANON_KEY"))
    supabase_service_role_key: str | None = field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    )

    use_local_db: bool = field(default_factory=lambda: _flag("USE_LOCAL_DB"))
    postgres_host: str = field(default_factory=lambda: os.getenv("POSTGRES_HOST", "localhost"))
    postgres_port: int = field(default_factory=lambda: int(os.getenv("POSTGRES_PORT", "5432")))
    postgres_db: str = field(default_factory=lambda: os.getenv("POSTGRES_DB", "calcportal"))
    postgres_user: str = field(default_factory=lambda: os.getenv("POSTGRES_USER", "calcportal"))
    postgres_password: str = field(
        default_factory=lambda: os.getenv("POSTGRES_PASSWORD", "calcportal_dev_password")
    )

    session_cookie_name: str = field(
        default_factory=lambda: os.getenv("SESSION_COOKIE_NAME", "idToken")
    )
    forwarded_token_header: str = field(
        default_factory=lambda: os.getenv("FORWARDED_TOKEN_HEADER", "X-ID-Token")
    )
    guarded_path_prefixes: tuple[str, ...] = field(
        default_factory=lambda: _csv("GUARDED_PATH_PREFIXES", "/admin,/profile")
    )
    sign_in_path: str = field(default_factory=lambda: os.getenv("SIGN_IN_PATH", "/login"))
    home_path: str = field(default_factory=lambda: os.getenv("HOME_PATH", "/"))

    # Identity Store listings are bounded to a single page.
    admin_listing_page_size: int = field(
        default_factory=lambda: int(os.getenv("ADMIN_LISTING_PAGE_SIZE", "1000"))
    )
    min_password_length: int = field(
        default_factory=lambda: int(os.getenv("MIN_PASSWORD_LENGTH", "6"))
    )

    @property
    def secure_cookies(self) -> bool:
        return self.env == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
