"""Identity store adapter backed by the Supabase Auth admin API.

Account claims live in the user's ``app_metadata`` so that Supabase embeds
them in the access tokens it issues. With no client configured the adapter
keeps accounts in a process-local table instead.
"""
from __future__ import annotations

import secrets
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

import bcrypt
from supabase import AuthApiError, Client

from src.config import get_settings
from src.domain.entities.account import ADMIN_CLAIM, AccountEntity
from src.domain.exceptions import AdminClaimTakenError, EmailAlreadyExistsError, IdentityStoreError

_EMAIL_TAKEN_CODES = {"email_exists", "user_already_exists"}


@dataclass
class _MemAccount:
    entity: AccountEntity
    password_hash: bytes


# module-level in-memory store for disabled mode
_MEM_ACCOUNTS: dict[str, _MemAccount] = {}
_MEM_SESSIONS: dict[str, str] = {}
_MEM_LOCK = threading.RLock()


def clear_memory_store() -> None:
    with _MEM_LOCK:
        _MEM_ACCOUNTS.clear()
        _MEM_SESSIONS.clear()


def _email_taken(exc: AuthApiError) -> bool:
    if getattr(exc, "code", None) in _EMAIL_TAKEN_CODES:
        return True
    return "already been registered" in str(exc).lower()


class AccountRepository:
    def __init__(self, client: Client | None) -> None:
        self.client = client
        settings = get_settings()
        self.disabled = settings.supabase_disabled
        self.min_password_length = settings.min_password_length

    @property
    def in_memory(self) -> bool:
        return self.disabled or self.client is None

    def _user_to_entity(self, user: Any) -> AccountEntity:
        user_metadata = user.user_metadata or {}
        banned_until = getattr(user, "banned_until", None)
        return AccountEntity(
            id=user.id,
            email=user.email,
            display_name=user_metadata.get("full_name") or user_metadata.get("display_name"),
            claims=dict(user.app_metadata or {}),
            created_at=user.created_at,
            last_sign_in_at=user.last_sign_in_at,
            disabled=banned_until is not None,
        )

    def create(self, email: str, password: str, display_name: str) -> AccountEntity:
        if self.in_memory:
            return self._mem_create(email, password, display_name)

        try:  # pragma: no cover - network
            res = self.client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": {"full_name": display_name},
                }
            )
            return self._user_to_entity(res.user)
        except AuthApiError as exc:  # pragma: no cover - network
            if _email_taken(exc):
                raise EmailAlreadyExistsError(str(exc)) from exc
            raise IdentityStoreError(f"Identity store create failed: {exc}") from exc
        except Exception as exc:  # pragma: no cover - network
            raise IdentityStoreError(f"Identity store create failed: {exc}") from exc

    def get(self, account_id: str) -> AccountEntity | None:
        if self.in_memory:
            with _MEM_LOCK:
                record = _MEM_ACCOUNTS.get(account_id)
                return record.entity if record else None

        try:  # pragma: no cover - network
            res = self.client.auth.admin.get_user_by_id(account_id)
        except AuthApiError as exc:  # pragma: no cover - network
            if exc.status == 404:
                return None
            raise IdentityStoreError(f"Identity store lookup failed: {exc}") from exc
        return self._user_to_entity(res.user) if res and res.user else None  # pragma: no cover

    def delete(self, account_id: str) -> None:
        """Delete an account. Deleting an account that is already gone is a no-op."""
        if self.in_memory:
            with _MEM_LOCK:
                _MEM_ACCOUNTS.pop(account_id, None)
                for token in [t for t, uid in _MEM_SESSIONS.items() if uid == account_id]:
                    del _MEM_SESSIONS[token]
            return

        try:  # pragma: no cover - network
            self.client.auth.admin.delete_user(account_id)
        except AuthApiError as exc:  # pragma: no cover - network
            if exc.status == 404:
                return
            raise IdentityStoreError(f"Identity store delete failed: {exc}") from exc

    def set_claims(self, account_id: str, claims: dict[str, Any]) -> AccountEntity:
        """Merge ``claims`` into the account's claims and return the updated account."""
        if self.in_memory:
            with _MEM_LOCK:
                record = _MEM_ACCOUNTS.get(account_id)
                if record is None:
                    raise IdentityStoreError(f"Account not found: {account_id}")
                record.entity = replace(record.entity, claims={**record.entity.claims, **claims})
                return record.entity

        try:  # pragma: no cover - network
            res = self.client.auth.admin.update_user_by_id(account_id, {"app_metadata": claims})
            return self._user_to_entity(res.user)
        except Exception as exc:  # pragma: no cover - network
            raise IdentityStoreError(f"Identity store claim update failed: {exc}") from exc

    def grant_admin_if_none(self, account_id: str, limit: int = 1000) -> AccountEntity:
        """Set the admin claim on ``account_id`` unless another account holds it.

        In memory mode the check and the write happen under one lock. Supabase
        has no conditional metadata write, so there the check is a fresh
        listing immediately before the update and remains best effort.

        Raises:
            AdminClaimTakenError: another account already holds the claim.
        """
        if self.in_memory:
            with _MEM_LOCK:
                if any(
                    r.entity.is_admin for uid, r in _MEM_ACCOUNTS.items() if uid != account_id
                ):
                    raise AdminClaimTakenError(f"Admin claim already held; not granted to {account_id}")
                return self.set_claims(account_id, {ADMIN_CLAIM: True})

        holders = [  # pragma: no cover - network
            a for a in self.list_accounts(limit=limit) if a.is_admin and a.id != account_id
        ]
        if holders:  # pragma: no cover - network
            raise AdminClaimTakenError(f"Admin claim already held by {holders[0].id}")
        return self.set_claims(account_id, {ADMIN_CLAIM: True})  # pragma: no cover - network

    def update_display_name(self, account_id: str, name: str) -> AccountEntity:
        if self.in_memory:
            with _MEM_LOCK:
                record = _MEM_ACCOUNTS.get(account_id)
                if record is None:
                    raise IdentityStoreError(f"Account not found: {account_id}")
                record.entity = replace(record.entity, display_name=name)
                return record.entity

        try:  # pragma: no cover - network
            res = self.client.auth.admin.update_user_by_id(
                account_id, {"user_metadata": {"full_name": name}}
            )
            return self._user_to_entity(res.user)
        except Exception as exc:  # pragma: no cover - network
            raise IdentityStoreError(f"Identity store update failed: {exc}") from exc

    def list_accounts(self, limit: int = 1000) -> list[AccountEntity]:
        """Return the first page of accounts, at most ``limit`` of them."""
        if self.in_memory:
            with _MEM_LOCK:
                entities = [r.entity for r in _MEM_ACCOUNTS.values()]
            entities.sort(key=lambda e: e.created_at or datetime.min.replace(tzinfo=UTC))
            return entities[:limit]

        try:  # pragma: no cover - network
            users = self.client.auth.admin.list_users(page=1, per_page=limit)
            return [self._user_to_entity(u) for u in users]
        except Exception as exc:  # pragma: no cover - network
            raise IdentityStoreError(f"Identity store listing failed: {exc}") from exc

    def end_session(self, token: str) -> None:
        """Revoke a session token. Unknown tokens are ignored."""
        if self.in_memory:
            with _MEM_LOCK:
                _MEM_SESSIONS.pop(token, None)
            return

        try:  # pragma: no cover - network
            self.client.auth.admin.sign_out(token)
        except Exception as exc:  # pragma: no cover - network
            raise IdentityStoreError(f"Identity store sign-out failed: {exc}") from exc

    # In-memory mode internals

    def _mem_create(self, email: str, password: str, display_name: str) -> AccountEntity:
        if len(password) < self.min_password_length:
            raise IdentityStoreError(
                f"Password should be at least {self.min_password_length} characters."
            )
        normalized = email.strip().lower()
        password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        with _MEM_LOCK:
            if any((r.entity.email or "").lower() == normalized for r in _MEM_ACCOUNTS.values()):
                raise EmailAlreadyExistsError(
                    "A user with this email address has already been registered"
                )
            entity = AccountEntity(
                id=str(uuid.uuid4()),
                email=normalized,
                display_name=display_name,
                claims={},
                created_at=datetime.now(UTC),
            )
            _MEM_ACCOUNTS[entity.id] = _MemAccount(entity=entity, password_hash=password_hash)
            return entity

    def open_session(self, email: str, password: str) -> tuple[str, AccountEntity]:
        """Check credentials and return a new opaque session token."""
        normalized = email.strip().lower()
        with _MEM_LOCK:
            record = next(
                (r for r in _MEM_ACCOUNTS.values() if (r.entity.email or "") == normalized),
                None,
            )
            if record is None or not bcrypt.checkpw(password.encode("utf-8"), record.password_hash):
                raise ValueError("Invalid login credentials")
            record.entity = replace(record.entity, last_sign_in_at=datetime.now(UTC))
            token = secrets.token_urlsafe(32)
            _MEM_SESSIONS[token] = record.entity.id
            return token, record.entity

    def resolve_session(self, token: str) -> AccountEntity:
        with _MEM_LOCK:
            account_id = _MEM_SESSIONS.get(token)
            record = _MEM_ACCOUNTS.get(account_id) if account_id else None
            if record is None:
                raise ValueError("Invalid access token")
            return record.entity
