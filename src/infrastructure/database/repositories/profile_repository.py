from __future__ import annotations

import threading
from datetime import UTC, datetime

from supabase import Client

from src.config import get_settings
from src.domain.entities.profile import ProfileEntity
from src.domain.exceptions import ProfileStoreError
from src.infrastructure.database.postgres_client import get_postgres_client

TABLE = "users"

# module-level in-memory store for disabled mode
_MEM_PROFILES: dict[str, ProfileEntity] = {}
_MEM_LOCK = threading.Lock()


def clear_memory_store() -> None:
    with _MEM_LOCK:
        _MEM_PROFILES.clear()


class ProfileRepository:
    def __init__(self, client: Client | None) -> None:
        self.client = client
        settings = get_settings()
        self.disabled = settings.supabase_disabled
        self.use_local_db = settings.use_local_db
        self.pg_client = get_postgres_client() if self.use_local_db else None

    def _row_to_entity(self, row: dict) -> ProfileEntity:
        """Convert database row to ProfileEntity."""
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        return ProfileEntity(
            id=row["id"],
            email=row.get("email"),
            full_name=row.get("full_name"),
            is_admin=bool(row.get("is_admin", False)),
            created_at=created_at,
        )

    def create(self, account_id: str, email: str | None, full_name: str, is_admin: bool) -> ProfileEntity:
        """Insert the profile row for a new account; ``created_at`` is set by the store."""
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                query = f"""
                    INSERT INTO {TABLE} (id, email, full_name, is_admin, created_at)
                    VALUES (%s, %s, %s, %s, CURRENT_TIMESTAMP)
                    RETURNING *
                """
                row = self.pg_client.execute_one(query, (account_id, email, full_name, is_admin))
                if row is None:
                    raise ProfileStoreError("Insert did not return a row")
                return self._row_to_entity(row)
            except ProfileStoreError:
                raise
            except Exception as exc:
                raise ProfileStoreError(f"PostgreSQL insert profile failed: {exc}") from exc

        # In-memory mode
        if self.disabled or self.client is None:
            with _MEM_LOCK:
                if account_id in _MEM_PROFILES:
                    raise ProfileStoreError(f"Profile already exists: {account_id}")
                entity = ProfileEntity(
                    id=account_id,
                    email=email,
                    full_name=full_name,
                    is_admin=is_admin,
                    created_at=datetime.now(UTC),
                )
                _MEM_PROFILES[account_id] = entity
                return entity

        # Supabase mode
        try:  # pragma: no cover - network
            data = {"id": account_id, "email": email, "full_name": full_name, "is_admin": is_admin}
            res = self.client.table(TABLE).insert(data).execute()
            return self._row_to_entity(res.data[0])
        except Exception as exc:  # pragma: no cover - network
            raise ProfileStoreError(f"DB insert profile failed: {exc}") from exc

    def get(self, account_id: str) -> ProfileEntity | None:
        if self.use_local_db and self.pg_client:
            try:
                row = self.pg_client.execute_one(f"SELECT * FROM {TABLE} WHERE id = %s", (account_id,))
            except Exception as exc:
                raise ProfileStoreError(f"PostgreSQL get profile failed: {exc}") from exc
            return self._row_to_entity(row) if row else None

        if self.disabled or self.client is None:
            with _MEM_LOCK:
                return _MEM_PROFILES.get(account_id)

        try:  # pragma: no cover - network
            res = self.client.table(TABLE).select("*").eq("id", account_id).limit(1).execute()
        except Exception as exc:  # pragma: no cover - network
            raise ProfileStoreError(f"DB get profile failed: {exc}") from exc
        return self._row_to_entity(res.data[0]) if res.data else None  # pragma: no cover

    def delete(self, account_id: str) -> None:
        """Remove the profile row; a missing row is not an error."""
        if self.use_local_db and self.pg_client:
            try:
                self.pg_client.execute_update(f"DELETE FROM {TABLE} WHERE id = %s", (account_id,))
                return
            except Exception as exc:
                raise ProfileStoreError(f"PostgreSQL delete profile failed: {exc}") from exc

        if self.disabled or self.client is None:
            with _MEM_LOCK:
                _MEM_PROFILES.pop(account_id, None)
            return

        try:  # pragma: no cover - network
            self.client.table(TABLE).delete().eq("id", account_id).execute()
        except Exception as exc:  # pragma: no cover - network
            raise ProfileStoreError(f"DB delete profile failed: {exc}") from exc

    def set_full_name(self, account_id: str, full_name: str) -> ProfileEntity | None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                query = f"UPDATE {TABLE} SET full_name = %s WHERE id = %s RETURNING *"
                row = self.pg_client.execute_one(query, (full_name, account_id))
            except Exception as exc:
                raise ProfileStoreError(f"PostgreSQL update profile failed: {exc}") from exc
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self.disabled or self.client is None:
            with _MEM_LOCK:
                current = _MEM_PROFILES.get(account_id)
                if current is None:
                    return None
                updated = ProfileEntity(
                    id=account_id,
                    email=current.email,
                    full_name=full_name,
                    is_admin=current.is_admin,
                    created_at=current.created_at,
                )
                _MEM_PROFILES[account_id] = updated
                return updated

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table(TABLE).update({"full_name": full_name}).eq("id", account_id).execute()
        except Exception as exc:  # pragma: no cover - network
            raise ProfileStoreError(f"DB update profile failed: {exc}") from exc
        return self._row_to_entity(res.data[0]) if res.data else None  # pragma: no cover
