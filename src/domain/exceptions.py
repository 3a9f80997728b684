"""Errors raised by the store adapters and by account provisioning."""

from __future__ import annotations


class IdentityStoreError(RuntimeError):
    """Raised when an identity store call fails."""


class EmailAlreadyExistsError(IdentityStoreError):
    """Raised when the identity store already holds an account for the email."""


class AdminClaimTakenError(IdentityStoreError):
    """Raised when a conditional admin grant finds another account holding the claim."""


class ProfileStoreError(RuntimeError):
    """Raised when a profile store call fails."""


class ProvisioningError(Exception):
    """Base class for the errors ``createAccount`` surfaces to callers.

    Every failure inside provisioning ends up as exactly one subclass; ``code``
    is the wire identifier sent to clients next to ``message``.
    """

    code = "internal"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgumentError(ProvisioningError):
    code = "invalid-argument"


class AlreadyExistsError(ProvisioningError):
    code = "already-exists"


class PermissionDeniedError(ProvisioningError):
    code = "permission-denied"


class InternalError(ProvisioningError):
    code = "internal"
