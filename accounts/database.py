"""SQLite-backed persistence for user records."""
from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Iterator, List, Optional

import anyio

from .errors import DuplicateKeyError
from .models import User, UserFields, email_key, utcnow

logger = logging.getLogger("accounts.database")

DEFAULT_BUSY_TIMEOUT = 5.0


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "accounts.sqlite3").resolve(strict=False)


def _serialize_datetime(value: datetime) -> str:
    # Fixed precision keeps the stored strings comparable with MAX().
    return value.isoformat(timespec="microseconds")


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    return "UNIQUE constraint failed" in str(exc)


class Database:
    """Simple wrapper around SQLite for persisting user records.

    Uniqueness of the case-folded email is enforced by ``idx_users_email``
    rather than by any lock held in this process.
    """

    def __init__(self, path: Path, *, timeout: float = DEFAULT_BUSY_TIMEOUT) -> None:
        _ensure_directory(path)
        self._path = path
        self._timeout = timeout

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, timeout=self._timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    email TEXT NOT NULL,
                    email_key TEXT NOT NULL,
                    phone_number TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                );

                CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users(email_key);
                """
            )

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(self, user: User) -> User:
        """Insert ``user`` or raise :class:`DuplicateKeyError`."""

        try:
            with self._transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO users (
                        id,
                        first_name,
                        last_name,
                        email,
                        email_key,
                        phone_number,
                        created_at,
                        updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(user.id),
                        user.first_name,
                        user.last_name,
                        user.email,
                        user.email_key,
                        user.phone_number,
                        _serialize_datetime(user.created_at),
                        _serialize_datetime(user.updated_at) if user.updated_at else None,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise self._duplicate_error(exc, user.email) from exc
        return user

    def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (str(user_id),)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email_key = ?",
                (email_key(email),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self) -> List[User]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at, id").fetchall()
        return [self._row_to_user(row) for row in rows]

    def update_user(self, user_id: uuid.UUID, fields: UserFields) -> Optional[User]:
        """Replace the mutable fields of an existing user.

        Returns ``None`` when no such user exists.  Concurrent updates to the
        same record are last-write-wins.
        """

        stamp = _serialize_datetime(utcnow())
        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    """
                    UPDATE users
                       SET first_name = ?,
                           last_name = ?,
                           email = ?,
                           email_key = ?,
                           phone_number = ?,
                           updated_at = MAX(?, COALESCE(updated_at, created_at))
                     WHERE id = ?
                    """,
                    (
                        fields.first_name,
                        fields.last_name,
                        fields.email,
                        email_key(fields.email),
                        fields.phone_number,
                        stamp,
                        str(user_id),
                    ),
                )
                if cursor.rowcount == 0:
                    return None
                row = conn.execute("SELECT * FROM users WHERE id = ?", (str(user_id),)).fetchone()
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise self._duplicate_error(
                exc, fields.email, f"Email {fields.email} is already in use"
            ) from exc
        return self._row_to_user(row)

    def delete_user(self, user_id: uuid.UUID) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (str(user_id),))
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _duplicate_error(
        self,
        exc: sqlite3.IntegrityError,
        email: str,
        message: Optional[str] = None,
    ) -> DuplicateKeyError:
        logger.info("Rejected write for %s: %s", email, exc)
        if "users.id" in str(exc):
            return DuplicateKeyError(email, "A user with that id already exists")
        return DuplicateKeyError(email, message)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        updated_at = row["updated_at"]
        return User(
            id=uuid.UUID(str(row["id"])),
            first_name=str(row["first_name"]),
            last_name=str(row["last_name"]),
            email=str(row["email"]),
            phone_number=row["phone_number"],
            created_at=_parse_datetime(str(row["created_at"])),
            updated_at=_parse_datetime(str(updated_at)) if updated_at else None,
        )


class DatabaseUserStore:
    """Exposes :class:`Database` through the coroutine store interface.

    Each call runs in a worker thread so the event loop is never blocked on
    SQLite I/O.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    @property
    def database(self) -> Database:
        return self._database

    async def create(self, user: User) -> User:
        return await anyio.to_thread.run_sync(self._database.create_user, user)

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await anyio.to_thread.run_sync(self._database.get_user, user_id)

    async def get_by_unique_key(self, email: str) -> Optional[User]:
        return await anyio.to_thread.run_sync(self._database.get_user_by_email, email)

    async def list_all(self) -> List[User]:
        return await anyio.to_thread.run_sync(self._database.list_users)

    async def update(self, user_id: uuid.UUID, fields: UserFields) -> Optional[User]:
        return await anyio.to_thread.run_sync(partial(self._database.update_user, user_id, fields))

    async def delete(self, user_id: uuid.UUID) -> bool:
        return await anyio.to_thread.run_sync(self._database.delete_user, user_id)


__all__ = ["DEFAULT_BUSY_TIMEOUT", "Database", "DatabaseUserStore", "resolve_database_path"]
