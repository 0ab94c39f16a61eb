"""In-process user store that lives for the lifetime of the worker."""

from __future__ import annotations

import asyncio
import uuid
from typing import List, Optional

from .errors import DuplicateKeyError
from .models import User, UserFields, email_key


class InMemoryUserStore:
    """Keeps user records in an ordered list guarded by a single lock.

    Every operation, reads included, holds the lock for its whole duration so
    the uniqueness check and the write it protects can never be interleaved
    with another request.  Records are frozen, so handing them out does not
    expose the internal list.  Nothing survives a process restart.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._users: List[User] = []

    async def create(self, user: User) -> User:
        async with self._lock:
            if self._find_by_id_locked(user.id) is not None:
                raise DuplicateKeyError(user.email, f"A user with id {user.id} already exists")
            if self._find_by_email_locked(user.email_key) is not None:
                raise DuplicateKeyError(user.email)
            self._users.append(user)
            return user

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        async with self._lock:
            return self._find_by_id_locked(user_id)

    async def get_by_unique_key(self, email: str) -> Optional[User]:
        async with self._lock:
            return self._find_by_email_locked(email_key(email))

    async def list_all(self) -> List[User]:
        async with self._lock:
            snapshot = list(self._users)
        return snapshot

    async def update(self, user_id: uuid.UUID, fields: UserFields) -> Optional[User]:
        async with self._lock:
            index = self._index_of_locked(user_id)
            if index is None:
                return None

            existing = self._users[index]
            new_key = email_key(fields.email)
            if new_key != existing.email_key:
                other = self._find_by_email_locked(new_key)
                if other is not None and other.id != user_id:
                    raise DuplicateKeyError(fields.email, f"Email {fields.email} is already in use")

            updated = existing.with_fields(fields)
            self._users[index] = updated
            return updated

    async def delete(self, user_id: uuid.UUID) -> bool:
        async with self._lock:
            index = self._index_of_locked(user_id)
            if index is None:
                return False
            del self._users[index]
            return True

    def _index_of_locked(self, user_id: uuid.UUID) -> Optional[int]:
        for index, user in enumerate(self._users):
            if user.id == user_id:
                return index
        return None

    def _find_by_id_locked(self, user_id: uuid.UUID) -> Optional[User]:
        index = self._index_of_locked(user_id)
        if index is None:
            return None
        return self._users[index]

    def _find_by_email_locked(self, key: str) -> Optional[User]:
        for user in self._users:
            if user.email_key == key:
                return user
        return None


__all__ = ["InMemoryUserStore"]
