"""Backend-agnostic access layer for user records."""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from .errors import DuplicateKeyError, InvalidInputError
from .models import User, UserFields
from .store import UserStore

logger = logging.getLogger("accounts.service")


def _require(value: Optional[str], field: str) -> str:
    stripped = (value or "").strip()
    if not stripped:
        raise InvalidInputError(field)
    return stripped


def _normalize_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_fields(
    first_name: Optional[str],
    last_name: Optional[str],
    email: Optional[str],
    phone_number: Optional[str] = None,
) -> UserFields:
    """Trim every field, lower-case the email and reject blank required values."""

    return UserFields(
        first_name=_require(first_name, "first_name"),
        last_name=_require(last_name, "last_name"),
        email=_require(email, "email").lower(),
        phone_number=_normalize_optional(phone_number),
    )


class UserService:
    """Applies the same rules to user records whichever store backs it.

    The service never inspects the concrete store.  Uniqueness is enforced by
    the store's own ``create``/``update`` so the check and the write cannot be
    separated by a concurrent request.
    """

    def __init__(self, store: UserStore, *, name: str = "users") -> None:
        self._store = store
        self._name = name

    @property
    def store(self) -> UserStore:
        return self._store

    async def create_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: Optional[str] = None,
    ) -> User:
        fields = normalize_fields(first_name, last_name, email, phone_number)
        try:
            user = await self._store.create(User.new(fields))
        except DuplicateKeyError:
            logger.info("[%s] Rejected duplicate email %s", self._name, fields.email)
            raise
        logger.info("[%s] Created user %s", self._name, user.id)
        return user

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self._store.get_by_id(user_id)

    async def list_users(self) -> List[User]:
        return await self._store.list_all()

    async def update_user(
        self,
        user_id: uuid.UUID,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: Optional[str] = None,
    ) -> Optional[User]:
        fields = normalize_fields(first_name, last_name, email, phone_number)
        try:
            user = await self._store.update(user_id, fields)
        except DuplicateKeyError:
            logger.info("[%s] Rejected update of %s to taken email %s", self._name, user_id, fields.email)
            raise
        if user is not None:
            logger.info("[%s] Updated user %s", self._name, user_id)
        return user

    async def delete_user(self, user_id: uuid.UUID) -> bool:
        deleted = await self._store.delete(user_id)
        if deleted:
            logger.info("[%s] Deleted user %s", self._name, user_id)
        return deleted


__all__ = ["UserService", "normalize_fields"]
