"""Reconciliation driver settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Final

from .env import env_int
from .errors import ConfigurationError

log = logging.getLogger(__name__)

DEFAULT_THREADS: Final[int] = 2
DEFAULT_RESYNC_SECONDS: Final[int] = 30
MIN_RESYNC_SECONDS: Final[int] = 30


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Per-key exponential backoff for failed reconciles."""

    base_delay: float = 0.005
    max_delay: float = 1000.0

    def delay(self, failures: int) -> float:
        """Backoff before the next attempt after ``failures`` earlier failures."""

        if failures <= 0:
            return self.base_delay
        # avoid float overflow for keys that keep failing
        exponent = min(failures, 64)
        return min(self.base_delay * 2**exponent, self.max_delay)


@dataclass(slots=True, frozen=True)
class OperatorConfig:
    threads: int = DEFAULT_THREADS
    resync_seconds: int = DEFAULT_RESYNC_SECONDS
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        if self.threads < 1:
            raise ConfigurationError("threads", f"must be at least 1, got {self.threads}")


def effective_resync_seconds(value: int) -> int:
    """Clamp a requested resync period; short periods fall back to the default."""

    if value < MIN_RESYNC_SECONDS:
        log.warning(
            "Resync period %ss is below %ss, using %ss",
            value,
            MIN_RESYNC_SECONDS,
            DEFAULT_RESYNC_SECONDS,
        )
        return DEFAULT_RESYNC_SECONDS
    return value


def get_operator_config(
    *,
    threads: int | None = None,
    resync_seconds: int | None = None,
    retry: RetryPolicy | None = None,
) -> OperatorConfig:
    """Build the operator settings; explicit arguments win over the environment."""

    resolved_threads = (
        threads if threads is not None else env_int("IPOOL_THREADS", DEFAULT_THREADS)
    )
    resolved_resync = (
        resync_seconds
        if resync_seconds is not None
        else env_int("IPOOL_RESYNC_SECONDS", DEFAULT_RESYNC_SECONDS)
    )
    return OperatorConfig(
        threads=resolved_threads,
        resync_seconds=effective_resync_seconds(resolved_resync),
        retry=retry or RetryPolicy(),
    )
