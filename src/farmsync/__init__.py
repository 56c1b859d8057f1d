"""Sync farmOS areas into a local SQLite table."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("farmsync")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"

from .api import FarmOSClient, FarmOSConfig
from .storage import AreaRow, AreaStore
from .sync import SyncOperation, SyncReport, build_operations, run_sync

__all__ = [
    "__version__",
    "FarmOSClient",
    "FarmOSConfig",
    "AreaRow",
    "AreaStore",
    "SyncOperation",
    "SyncReport",
    "build_operations",
    "run_sync",
]
