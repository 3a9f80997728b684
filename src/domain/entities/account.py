from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

ADMIN_CLAIM = "admin"


@dataclass(frozen=True)
class AccountEntity:
    id: str
    email: str | None
    display_name: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    last_sign_in_at: datetime | None = None
    disabled: bool = False

    @property
    def is_admin(self) -> bool:
        return self.claims.get(ADMIN_CLAIM) is True
