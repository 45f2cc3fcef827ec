"""Library configuration for pygeocam."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pygeocam.exceptions import GeoCamConfigError

#: Default SQLite database file next to the working directory.
DEFAULT_DATABASE_URL = "sqlite:///picture_data.db"


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise GeoCamConfigError(f"{name} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class GeoCamConfig:
    """Repository configuration.

    Parameters
    ----------
    database_url : str
        SQLAlchemy URL of the durable picture store.
    io_workers : int
        Size of the bounded I/O thread pool the repository runs store
        calls on.  Must be at least 1.
    sql_echo : bool
        Echo emitted SQL through the ``sqlalchemy.engine`` logger.
    pictures_dir : str or None
        Directory holding the picture files, scanned when reconciling the
        store against files deleted out-of-band.
    """

    database_url: str = DEFAULT_DATABASE_URL
    io_workers: int = 4
    sql_echo: bool = False
    pictures_dir: str | None = None

    def __post_init__(self) -> None:
        if not self.database_url.strip():
            raise GeoCamConfigError("database_url must be non-empty")
        if self.io_workers < 1:
            raise GeoCamConfigError("io_workers must be at least 1")

    @classmethod
    def from_env(cls, **overrides: Any) -> GeoCamConfig:
        """Create configuration from ``GEOCAM_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        url = env.get("GEOCAM_DATABASE_URL")
        if url is not None:
            config_kwargs["database_url"] = url

        workers_env = env.get("GEOCAM_IO_WORKERS")
        if workers_env is not None and "io_workers" not in overrides:
            config_kwargs["io_workers"] = _env_int("GEOCAM_IO_WORKERS", workers_env)

        if "sql_echo" not in overrides:
            config_kwargs["sql_echo"] = _env_bool(env.get("GEOCAM_SQL_ECHO"), False)

        pictures_dir = env.get("GEOCAM_PICTURES_DIR")
        if pictures_dir:
            config_kwargs["pictures_dir"] = pictures_dir

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
