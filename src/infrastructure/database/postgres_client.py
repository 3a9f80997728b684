"""PostgreSQL client for the local profile store.

Used instead of Supabase PostgREST when ``USE_LOCAL_DB=1``, typically for
development against a docker-compose database.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from psycopg2 import pool
from psycopg2.extras import RealDictCursor

from src.config import Settings, get_settings


class PostgresClient:
    """PostgreSQL database client with connection pooling."""

    def __init__(self, settings: Settings) -> None:
        self.enabled = settings.use_local_db
        self._pool: pool.SimpleConnectionPool | None = None

        if self.enabled:
            try:
                self._pool = pool.SimpleConnectionPool(
                    minconn=1,
                    maxconn=10,
                    host=settings.postgres_host,
                    port=settings.postgres_port,
                    database=settings.postgres_db,
                    user=settings.postgres_user,
                    password=settings.postgres_password,
                )
            except Exception as exc:  # pragma: no cover
                raise RuntimeError(f"Failed to initialize PostgreSQL connection pool: {exc}") from exc

    @contextmanager
    def get_cursor(self) -> Generator[Any, None, None]:
        """Yield a dict cursor inside a transaction.

        The transaction commits when the block exits cleanly and rolls back
        otherwise; the connection always goes back to the pool.
        """
        if not self.enabled or self._pool is None:
            raise RuntimeError("Local PostgreSQL database is not enabled")

        conn = self._pool.getconn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def execute_one(self, query: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a query and return the first row, or None."""
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            result = cursor.fetchone()
            return dict(result) if result else None

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an UPDATE or DELETE and return the affected row count."""
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            return cursor.rowcount

    def close(self) -> None:
        if self._pool:
            self._pool.closeall()


_POSTGRES_CLIENT: PostgresClient | None = None


def get_postgres_client() -> PostgresClient | None:
    """Return the process-wide client, or None when the local DB is off."""
    global _POSTGRES_CLIENT
    settings = get_settings()
    if not settings.use_local_db:
        return None
    if _POSTGRES_CLIENT is None:
        _POSTGRES_CLIENT = PostgresClient(settings)
    return _POSTGRES_CLIENT
