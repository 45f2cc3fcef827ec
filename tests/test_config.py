from __future__ import annotations

import pytest

from pygeocam.config import DEFAULT_DATABASE_URL, GeoCamConfig
from pygeocam.exceptions import GeoCamConfigError


def test_defaults() -> None:
    config = GeoCamConfig()

    assert config.database_url == DEFAULT_DATABASE_URL
    assert config.io_workers == 4
    assert config.sql_echo is False
    assert config.pictures_dir is None


def test_from_env_reads_geocam_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOCAM_DATABASE_URL", "sqlite:////tmp/pics.db")
    monkeypatch.setenv("GEOCAM_IO_WORKERS", "2")
    monkeypatch.setenv("GEOCAM_SQL_ECHO", "yes")
    monkeypatch.setenv("GEOCAM_PICTURES_DIR", "/sdcard/Pictures")

    config = GeoCamConfig.from_env()

    assert config.database_url == "sqlite:////tmp/pics.db"
    assert config.io_workers == 2
    assert config.sql_echo is True
    assert config.pictures_dir == "/sdcard/Pictures"


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOCAM_IO_WORKERS", "2")
    monkeypatch.setenv("GEOCAM_SQL_ECHO", "1")

    config = GeoCamConfig.from_env(io_workers=8, sql_echo=False)

    assert config.io_workers == 8
    assert config.sql_echo is False


def test_invalid_values_raise_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOCAM_IO_WORKERS", "many")
    with pytest.raises(GeoCamConfigError):
        GeoCamConfig.from_env()

    with pytest.raises(GeoCamConfigError):
        GeoCamConfig(io_workers=0)

    with pytest.raises(GeoCamConfigError):
        GeoCamConfig(database_url="  ")
