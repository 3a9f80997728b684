from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any, Callable

from src.domain.entities.account import AccountEntity
from src.domain.entities.registration import RegistrationRequest
from src.domain.exceptions import (
    AdminClaimTakenError,
    AlreadyExistsError,
    EmailAlreadyExistsError,
    InternalError,
    InvalidArgumentError,
    PermissionDeniedError,
)
from src.domain.services.admin_oracle import AdminExistenceOracle
from src.infrastructure.database.repositories.account_repository import AccountRepository
from src.infrastructure.database.repositories.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)

ADMIN_EXISTS_MESSAGE = "An admin user already exists. Cannot create another."
MISSING_FIELDS_MESSAGE = "Email, password, and full name are required."


@dataclass
class CreateAccountUseCase:
    """
    Create an account and, when requested, grant it the single admin claim.

    The identity store and the profile store are independent, so there is no
    transaction spanning both. Each committed step registers a compensation;
    any later failure runs them most-recent first and the caller sees exactly
    one ProvisioningError. On every failure path no account, profile or admin
    claim survives.
    """

    accounts: AccountRepository
    profiles: ProfileRepository
    oracle: AdminExistenceOracle

    def execute(self, request: RegistrationRequest) -> AccountEntity:
        """
        Args:
            request: The registration to provision.

        Returns:
            The created AccountEntity, carrying the admin claim if one was granted.

        Raises:
            InvalidArgumentError: email, password or full name missing.
            PermissionDeniedError: admin requested while another admin exists.
            AlreadyExistsError: the email is already registered.
            InternalError: any other store failure (after rollback).
        """
        if not request.email or not request.password or not request.full_name:
            raise InvalidArgumentError(MISSING_FIELDS_MESSAGE)

        # Pre-check only; the authoritative check happens after the account exists.
        if request.wants_admin and self.oracle.admin_exists():
            raise PermissionDeniedError(ADMIN_EXISTS_MESSAGE)

        account = self._create_identity(request)

        with ExitStack() as rollback:
            rollback.callback(self._compensate, "delete account", self.accounts.delete, account.id)
            if request.wants_admin:
                account = self._grant_admin(account)
            rollback.callback(self._compensate, "delete profile", self.profiles.delete, account.id)
            self._write_profile(account, request)
            rollback.pop_all()

        logger.info(
            "Provisioned account %s (admin=%s)", account.id, account.is_admin
        )
        return account

    def _create_identity(self, request: RegistrationRequest) -> AccountEntity:
        try:
            return self.accounts.create(
                email=request.email,
                password=request.password,
                display_name=request.full_name,
            )
        except EmailAlreadyExistsError as exc:
            raise AlreadyExistsError(
                "This email address is already in use by another account."
            ) from exc
        except Exception as exc:
            logger.exception("Error creating identity store account")
            raise InternalError("Failed to create user account.") from exc

    def _grant_admin(self, account: AccountEntity) -> AccountEntity:
        # The new account is excluded so it cannot count against itself.
        if self.oracle.admin_exists(exclude_account_id=account.id):
            logger.warning("Lost admin registration race for account %s", account.id)
            raise PermissionDeniedError(ADMIN_EXISTS_MESSAGE)
        try:
            return self.accounts.grant_admin_if_none(account.id, limit=self.oracle.page_size)
        except AdminClaimTakenError as exc:
            logger.warning("Admin claim taken before account %s could hold it", account.id)
            raise PermissionDeniedError(ADMIN_EXISTS_MESSAGE) from exc
        except Exception as exc:
            logger.exception("Error setting admin claim for account %s", account.id)
            raise InternalError("An error occurred while setting the admin claim.") from exc

    def _write_profile(self, account: AccountEntity, request: RegistrationRequest) -> None:
        try:
            self.profiles.create(
                account_id=account.id,
                email=account.email,
                full_name=request.full_name,
                is_admin=request.wants_admin,
            )
        except Exception as exc:
            logger.exception("Error writing profile for account %s", account.id)
            raise InternalError("Failed to save user data.") from exc

    @staticmethod
    def _compensate(action: str, fn: Callable[..., Any], *args: Any) -> None:
        # A failed compensation must not replace the error that triggered it.
        try:
            fn(*args)
        except Exception:
            logger.exception("Rollback step failed: %s %s", action, args)
