"""Where the resource database lives."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_value

APP_DIR_NAME: Final[str] = "ipool"
DEFAULT_DB_FILENAME: Final[str] = "ipool.db"
SQLITE_DRIVER: Final[str] = "sqlite+pysqlite"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory holding the default SQLite database."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_uri(self) -> str:
        """SQLite URI of the database file, creating its directory on demand."""

        directory = self.resolve_data_dir()
        directory.mkdir(parents=True, exist_ok=True)
        return f"{SQLITE_DRIVER}:///{directory / self.database_filename}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def default_data_dir() -> Path:
    """Per-user data directory (XDG on POSIX, LOCALAPPDATA on Windows)."""

    if os.name == "nt":
        root = env_value("LOCALAPPDATA")
        base = Path(root) if root else Path.home() / "AppData" / "Local"
    else:
        root = env_value("XDG_DATA_HOME")
        base = Path(root) if root else Path.home() / ".local" / "share"
    return (base / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    configured = env_value("IPOOL_DATA_DIR")
    return StorageConfig(data_dir=Path(configured) if configured else default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a SQLite file in the data directory."""

    uri = env_value("DATABASE_URI")
    if uri is None:
        uri = (storage or get_storage_config()).database_uri()
    return DatabaseConfig(uri=uri)
