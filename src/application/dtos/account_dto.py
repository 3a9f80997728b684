"""Request and response models for the account endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.domain.entities.account import AccountEntity
from src.domain.entities.registration import RegistrationRequest, Role


class CreateAccountRequest(BaseModel):
    """Registration payload. Missing fields are reported as invalid-argument, not 422."""
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = Field(None, description="Email address for the new account", examples=["a@x.com"])
    password: Optional[str] = Field(None, description="Password for the new account")
    full_name: Optional[str] = Field(None, alias="fullName", description="Display name", examples=["Ada Lovelace"])
    role: Optional[str] = Field("user", description="Requested role: 'user' or 'admin'", examples=["user"])

    def to_domain(self) -> RegistrationRequest:
        return RegistrationRequest(
            email=self.email.strip() if self.email else self.email,
            password=self.password,
            full_name=self.full_name.strip() if self.full_name else self.full_name,
            role=Role.parse(self.role),
        )


class CreateAccountResponse(BaseModel):
    uid: str = Field(..., description="Identifier of the created account")


class ProvisioningErrorResponse(BaseModel):
    """Error body returned by the registration endpoint."""
    code: str = Field(
        ...,
        description="One of invalid-argument, already-exists, permission-denied, internal",
        examples=["already-exists"],
    )
    message: str = Field(..., description="Human-readable message, safe to show verbatim")


class RegistrationOptionsResponse(BaseModel):
    roles: list[str] = Field(..., description="Roles the registration form may offer", examples=[["user", "admin"]])


class LoginRequest(BaseModel):
    email: str = Field(..., description="Account email")
    password: str = Field(..., description="Account password")


class LoginResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False
    access_token: str = Field(..., description="Token also stored in the session cookie")


class UserProfileResponse(BaseModel):
    id: str = Field(..., description="Unique identifier of the user")
    email: Optional[str] = Field(None, description="Email address of the user")
    name: Optional[str] = Field(None, description="Full name of the user", examples=["Ada Lovelace"])
    is_admin: bool = Field(False, description="Whether the user holds the admin claim")
    created_at: Optional[datetime] = Field(None, description="When the profile was created")


class UpdateProfileBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="New full name", examples=["Ada Lovelace"])


class AdminUserItem(BaseModel):
    """One row of the admin user-management listing."""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None
    disabled: bool = False
    is_admin: bool = False

    @classmethod
    def from_entity(cls, account: AccountEntity) -> "AdminUserItem":
        return cls(
            uid=account.id,
            email=account.email,
            display_name=account.display_name,
            created_at=account.created_at,
            last_sign_in_at=account.last_sign_in_at,
            disabled=account.disabled,
            is_admin=account.is_admin,
        )


class AdminDashboardResponse(BaseModel):
    users: list[AdminUserItem]
