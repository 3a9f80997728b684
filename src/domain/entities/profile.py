from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ProfileEntity:
    id: str  # account id from the identity store
    email: str | None
    full_name: str | None
    is_admin: bool = False
    created_at: datetime | None = None
