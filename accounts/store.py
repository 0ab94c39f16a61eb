"""Backend-agnostic contract implemented by every user store."""

from __future__ import annotations

import uuid
from typing import List, Optional, Protocol, runtime_checkable

from .models import User, UserFields


@runtime_checkable
class UserStore(Protocol):
    """Coroutine interface shared by the in-memory and database stores.

    Each call is atomic on its own.  ``create`` and ``update`` raise
    :class:`~accounts.errors.DuplicateKeyError` instead of letting two live
    records share a case-folded email.  Missing records are reported as
    ``None`` (or ``False`` for ``delete``), never as exceptions.
    """

    async def create(self, user: User) -> User:
        ...

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        ...

    async def get_by_unique_key(self, email: str) -> Optional[User]:
        ...

    async def list_all(self) -> List[User]:
        """Return a snapshot that later writes never alter."""
        ...

    async def update(self, user_id: uuid.UUID, fields: UserFields) -> Optional[User]:
        ...

    async def delete(self, user_id: uuid.UUID) -> bool:
        ...


__all__ = ["UserStore"]
