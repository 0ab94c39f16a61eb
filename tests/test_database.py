from __future__ import annotations

import sqlite3
import uuid
from pathlib import Path

import anyio
import pytest

from accounts.database import Database, DatabaseUserStore, resolve_database_path
from accounts.errors import DuplicateKeyError
from accounts.models import User, UserFields
from accounts.service import UserService


def _user(email: str, first_name: str = "Test") -> User:
    return User.new(UserFields(first_name=first_name, last_name="User", email=email))


def test_initialize_is_idempotent(database: Database) -> None:
    database.create_user(_user("keep@example.com"))
    database.initialize()

    assert [user.email for user in database.list_users()] == ["keep@example.com"]


def test_email_index_exists_and_is_unique(database: Database) -> None:
    with sqlite3.connect(database.path) as conn:
        rows = conn.execute("PRAGMA index_list(users)").fetchall()
    indexes = {row[1]: row[2] for row in rows}
    assert indexes.get("idx_users_email") == 1


def test_unique_violation_is_translated(database: Database) -> None:
    database.create_user(_user("owner@example.com"))

    with pytest.raises(DuplicateKeyError) as excinfo:
        database.create_user(_user("Owner@Example.com"))

    assert excinfo.value.email == "Owner@Example.com"
    assert isinstance(excinfo.value.__cause__, sqlite3.IntegrityError)


def test_update_conflict_leaves_row_untouched(database: Database) -> None:
    database.create_user(_user("first@example.com"))
    second = database.create_user(_user("second@example.com", first_name="Second"))

    with pytest.raises(DuplicateKeyError):
        database.update_user(
            second.id,
            UserFields(first_name="Changed", last_name="User", email="FIRST@example.com"),
        )

    assert database.get_user(second.id) == second


def test_records_survive_reopening(tmp_path: Path) -> None:
    path = tmp_path / "durable.sqlite3"
    first = Database(path)
    first.initialize()
    created = first.create_user(_user("durable@example.com"))

    reopened = Database(path)
    reopened.initialize()
    assert reopened.get_user(created.id) == created
    assert reopened.get_user_by_email("DURABLE@example.com") == created


def test_other_integrity_errors_propagate(database: Database) -> None:
    broken = User(
        id=uuid.uuid4(),
        first_name=None,  # type: ignore[arg-type]
        last_name="User",
        email="broken@example.com",
        phone_number=None,
        created_at=_user("x@example.com").created_at,
    )

    with pytest.raises(sqlite3.IntegrityError):
        database.create_user(broken)


def test_engine_failures_propagate_unmodified(tmp_path: Path) -> None:
    database = Database(tmp_path / "never-initialised.sqlite3")

    with pytest.raises(sqlite3.OperationalError):
        database.list_users()


def test_resolve_database_path_defaults_beside_package() -> None:
    default = resolve_database_path(None)
    assert default.name == "accounts.sqlite3"
    assert default.parent.name == "data"


def test_resolve_database_path_expands_user(tmp_path: Path) -> None:
    resolved = resolve_database_path(str(tmp_path / "custom.sqlite3"))
    assert resolved == (tmp_path / "custom.sqlite3").resolve()


@pytest.mark.anyio
async def test_concurrent_creates_are_caught_by_the_index(database: Database) -> None:
    service = UserService(DatabaseUserStore(database))
    outcomes: list[str] = []

    async def attempt(index: int) -> None:
        try:
            await service.create_user("Racer", str(index), "race@example.com")
        except DuplicateKeyError:
            outcomes.append("duplicate")
        else:
            outcomes.append("created")

    async with anyio.create_task_group() as tg:
        for index in range(10):
            tg.start_soon(attempt, index)

    assert outcomes.count("created") == 1
    assert outcomes.count("duplicate") == 9
    assert len(database.list_users()) == 1
