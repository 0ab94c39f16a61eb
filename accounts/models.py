"""Domain models for the account directory."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def email_key(email: str) -> str:
    """Return the case-folded form used to compare email addresses."""

    return email.strip().casefold()


@dataclass(frozen=True)
class UserFields:
    """The caller-supplied, mutable portion of a user record."""

    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None


@dataclass(frozen=True)
class User:
    """Represents a user record held by one of the stores."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def new(cls, fields: UserFields) -> "User":
        """Stamp a fresh identifier and creation time onto ``fields``."""

        return cls(
            id=uuid.uuid4(),
            first_name=fields.first_name,
            last_name=fields.last_name,
            email=fields.email,
            phone_number=fields.phone_number,
            created_at=utcnow(),
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def email_key(self) -> str:
        return email_key(self.email)

    def fields(self) -> UserFields:
        return UserFields(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone_number=self.phone_number,
        )

    def with_fields(self, fields: UserFields, *, now: Optional[datetime] = None) -> "User":
        """Return a copy carrying ``fields`` and a refreshed ``updated_at``.

        The timestamp never moves backwards, even if the wall clock does.
        """

        stamp = now or utcnow()
        floor = self.updated_at or self.created_at
        if stamp < floor:
            stamp = floor
        return replace(
            self,
            first_name=fields.first_name,
            last_name=fields.last_name,
            email=fields.email,
            phone_number=fields.phone_number,
            updated_at=stamp,
        )


__all__ = ["User", "UserFields", "email_key", "utcnow"]
