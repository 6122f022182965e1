"""IP pool allocation and reconciliation engine."""

from __future__ import annotations

from importlib import metadata

try:
    __version__ = metadata.version("ipool")
except metadata.PackageNotFoundError:
    # running from a checkout without an install
    __version__ = "0.0.0+local"
