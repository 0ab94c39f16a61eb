from __future__ import annotations

from pathlib import Path

import pytest

from accounts.config import Settings, load_settings
from accounts.database import DEFAULT_BUSY_TIMEOUT


def test_defaults_without_file_or_environment() -> None:
    settings = load_settings(environ={})

    assert settings.database_path.name == "accounts.sqlite3"
    assert settings.busy_timeout == DEFAULT_BUSY_TIMEOUT
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000


def test_yaml_file_paths_are_relative_to_the_file(tmp_path: Path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text(
        "database_path: data/users.sqlite3\nbusy_timeout: 1.5\nport: 9000\n",
        encoding="utf-8",
    )

    settings = load_settings(config, environ={})

    assert settings.database_path == (tmp_path / "data" / "users.sqlite3").resolve()
    assert settings.busy_timeout == 1.5
    assert settings.port == 9000


def test_environment_overrides_file(tmp_path: Path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("port: 9000\nhost: 0.0.0.0\n", encoding="utf-8")

    settings = load_settings(
        environ={
            "ACCOUNTS_CONFIG": str(config),
            "ACCOUNTS_DB_PATH": str(tmp_path / "env.sqlite3"),
            "ACCOUNTS_DB_TIMEOUT": "0.25",
            "ACCOUNTS_PORT": "8081",
        }
    )

    assert settings.host == "0.0.0.0"
    assert settings.port == 8081
    assert settings.busy_timeout == 0.25
    assert settings.database_path == (tmp_path / "env.sqlite3").resolve()


@pytest.mark.parametrize(
    "data",
    [
        {"port": 0},
        {"port": "http"},
        {"busy_timeout": -1},
        {"unexpected": True},
    ],
)
def test_invalid_values_are_rejected(data: dict) -> None:
    with pytest.raises(ValueError):
        Settings.from_dict(data)


def test_non_mapping_file_is_rejected(tmp_path: Path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(config, environ={})
