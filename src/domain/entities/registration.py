from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.domain.exceptions import InvalidArgumentError


class Role(str, Enum):
    """Roles a registration may request. Exactly one of them is privileged."""

    USER = "user"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str | None) -> "Role":
        if value is None or value == "":
            return cls.USER
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidArgumentError(f"Unknown role: {value!r}.") from exc


@dataclass(frozen=True)
class RegistrationRequest:
    email: str | None
    password: str | None
    full_name: str | None
    role: Role = Role.USER

    @property
    def wants_admin(self) -> bool:
        return self.role is Role.ADMIN
