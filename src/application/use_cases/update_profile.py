from __future__ import annotations

from dataclasses import dataclass

from src.domain.entities.profile import ProfileEntity
from src.infrastructure.database.repositories.account_repository import AccountRepository
from src.infrastructure.database.repositories.profile_repository import ProfileRepository


@dataclass
class UpdateProfileUseCase:
    """Rename an account in both stores. The admin flag is never touched here."""

    accounts: AccountRepository
    profiles: ProfileRepository

    def execute(self, account_id: str, full_name: str) -> ProfileEntity | None:
        """
        Returns:
            The updated profile, or None when the account has no profile.

        Raises:
            ValueError: If the name is empty or whitespace only.
        """
        name = (full_name or "").strip()
        if not account_id or not name:
            raise ValueError("User ID and full name are required.")
        # Only rename the account once the profile is known to exist.
        if self.profiles.get(account_id) is None:
            return None
        self.accounts.update_display_name(account_id, name)
        return self.profiles.set_full_name(account_id, name)
