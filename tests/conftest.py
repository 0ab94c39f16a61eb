from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from accounts.database import Database, DatabaseUserStore
from accounts.memory import InMemoryUserStore


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "accounts.sqlite3")
    db.initialize()
    return db


@pytest.fixture(params=["memory", "database"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    """Each contract test runs once against every store implementation."""

    if request.param == "memory":
        return InMemoryUserStore()
    db = Database(tmp_path / "contract.sqlite3")
    db.initialize()
    return DatabaseUserStore(db)
