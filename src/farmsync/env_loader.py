"""Environment-based settings for farmsync.

farmOS credentials (``FARMOS_HOSTNAME``, ``FARMOS_USERNAME``,
``FARMOS_PASSWORD``, ``FARMOS_SCHEME``) and the local database location
(``FARMSYNC_DB``) are read from the environment, optionally seeded from a
``.env`` or ``.dotenv`` file in the working directory.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

DEFAULT_DB_FILENAME = "farmsync.db"


def load_env_files(
    candidates: Optional[Iterable[Path]] = None,
    *,
    quiet: bool = False,
) -> Optional[Path]:
    """Load the first existing candidate env file and return its path.

    Variables already set in the environment are not overridden.
    """
    if candidates is None:
        cwd = Path.cwd()
        candidates = (cwd / ".env", cwd / ".dotenv")

    for path in candidates:
        if path.exists():
            load_dotenv(path)
            if not quiet:
                _logger.debug("Loaded farmOS settings from %s", path)
            return path

    if not quiet:
        _logger.debug("No .env/.dotenv file found in %s", Path.cwd())
    return None


def default_db_path() -> Path:
    """Where synced areas go when no --db is given: $FARMSYNC_DB or ./farmsync.db."""
    return Path(os.getenv("FARMSYNC_DB") or DEFAULT_DB_FILENAME)
