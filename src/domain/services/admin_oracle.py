from __future__ import annotations

import logging

from src.infrastructure.database.repositories.account_repository import AccountRepository

logger = logging.getLogger(__name__)


class AdminExistenceOracle:
    """Answers "does any account currently hold the admin claim?".

    The answer is a point-in-time read of the identity store. It holds no lock
    once it returns, so callers that act on it must re-check after committing
    anything. A failed listing counts as "an admin exists": wrongly refusing
    one admin registration is recoverable, a second admin is not.
    """

    def __init__(self, accounts: AccountRepository, page_size: int = 1000) -> None:
        self.accounts = accounts
        self.page_size = page_size

    def admin_exists(self, exclude_account_id: str | None = None) -> bool:
        try:
            accounts = self.accounts.list_accounts(limit=self.page_size)
        except Exception:
            logger.exception("Admin existence check failed; assuming an admin exists")
            return True
        return any(a.is_admin for a in accounts if a.id != exclude_account_id)
