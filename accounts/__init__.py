"""Core utilities for the account directory service."""

from __future__ import annotations

from typing import Any

from .database import Database, DatabaseUserStore, resolve_database_path
from .errors import DuplicateKeyError, InvalidInputError
from .memory import InMemoryUserStore
from .models import User, UserFields
from .service import UserService
from .store import UserStore


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Database",
    "DatabaseUserStore",
    "DuplicateKeyError",
    "InMemoryUserStore",
    "InvalidInputError",
    "User",
    "UserFields",
    "UserService",
    "UserStore",
    "create_app",
    "resolve_database_path",
]
