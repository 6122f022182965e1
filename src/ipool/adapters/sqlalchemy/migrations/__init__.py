"""Alembic migrations for the resource tables."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, cast

from alembic import command
from alembic.config import Config

from ipool.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
# src/ipool/adapters/sqlalchemy/migrations -> checkout root
PROJECT_ROOT: Final[Path] = MIGRATIONS_PATH.parents[4]
PYPROJECT_PATH: Final[Path] = PROJECT_ROOT / "pyproject.toml"


def _script_location() -> Path:
    """Scripts named in ``[tool.alembic]`` of a checkout, else the packaged ones."""

    try:
        with PYPROJECT_PATH.open("rb") as handle:
            document = tomllib.load(handle)
    except FileNotFoundError:
        return MIGRATIONS_PATH

    tool = cast(dict[str, Any], document.get("tool", {}))
    configured = cast(dict[str, Any], tool.get("alembic", {})).get("script_location")
    if configured is None:
        return MIGRATIONS_PATH
    location = Path(str(configured))
    if not location.is_absolute():
        location = PROJECT_ROOT / location
    return location if location.is_dir() else MIGRATIONS_PATH


def build_config(database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(_script_location()))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Migrate the schema to the latest revision.

    With ``engine`` the migration runs on one of its connections, which keeps
    in-memory SQLite databases intact.
    """

    if engine is None:
        config = build_config(database_uri or get_database_config().uri)
        command.upgrade(config, "head")
        return

    config = build_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
