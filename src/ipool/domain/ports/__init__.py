"""Domain port definitions for adapters."""

from __future__ import annotations

from .store import AddressRequestRepository, PoolRepository, Repository, ResourceStore

__all__ = [
    "AddressRequestRepository",
    "PoolRepository",
    "Repository",
    "ResourceStore",
]
