"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ResourceKind(StrEnum):
    POOL = "Pool"
    ADDRESS_REQUEST = "AddressRequest"


class PoolPhase(StrEnum):
    ACTIVE = "Active"
    FAILED = "Failed"
    TERMINATING = "Terminating"


class RequestPhase(StrEnum):
    ACTIVE = "Active"
    FAILED = "Failed"
    TERMINATING = "Terminating"
