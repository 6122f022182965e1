"""Root logger setup for the ipool CLI and operator process."""

from __future__ import annotations

import logging
from typing import Final

from .env import env_value
from .errors import ConfigurationError

LOG_LEVEL_ENV: Final[str] = "IPOOL_LOG_LEVEL"
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
# libraries that narrate every migration step or connection at INFO
QUIET_LOGGERS: Final[tuple[str, ...]] = ("alembic",)


def log_level_from_env(default: int = logging.INFO) -> int:
    """Read ``IPOOL_LOG_LEVEL`` as a level name such as ``DEBUG`` or ``warning``."""

    raw = env_value(LOG_LEVEL_ENV)
    if raw is None:
        return default
    level = logging.getLevelNamesMapping().get(raw.upper())
    if level is None:
        raise ConfigurationError(LOG_LEVEL_ENV, f"unknown log level {raw!r}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger for an operator run.

    ``level`` wins over ``IPOOL_LOG_LEVEL``; INFO applies when neither is set.
    Records carry the thread name so that output of the pool and request
    workers can be told apart. Schema migration chatter is held back to
    WARNING unless DEBUG is asked for. Pass ``force=True`` to replace handlers
    installed earlier, as the CLI does.
    """

    effective = level if level is not None else log_level_from_env()
    logging.basicConfig(level=effective, format=LOG_FORMAT, force=force)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.DEBUG if effective <= logging.DEBUG else logging.WARNING
        )
