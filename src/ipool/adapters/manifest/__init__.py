"""Public interface for the manifest adapter."""

from __future__ import annotations

from .schema import AddressRequestDocument, ManifestDocument, PoolDocument
from .translator import (
    ManifestError,
    load_documents,
    load_resources,
    parse_documents,
    to_document,
    to_domain,
)

__all__ = [
    "AddressRequestDocument",
    "ManifestDocument",
    "ManifestError",
    "PoolDocument",
    "load_documents",
    "load_resources",
    "parse_documents",
    "to_document",
    "to_domain",
]
