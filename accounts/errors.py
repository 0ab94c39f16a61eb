"""Error taxonomy shared by the stores and the access service."""

from __future__ import annotations


class DuplicateKeyError(Exception):
    """Raised when a write would leave two live records sharing an email."""

    def __init__(self, email: str, message: str | None = None) -> None:
        super().__init__(message or f"A user with email {email} already exists")
        self.email = email


class InvalidInputError(ValueError):
    """Raised when a required field is missing or blank."""

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"{field.replace('_', ' ').capitalize()} is required")
        self.field = field


__all__ = ["DuplicateKeyError", "InvalidInputError"]
