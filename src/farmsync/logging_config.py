"""Logging setup for the farmsync CLI.

Transport and storage failures are reported to users only as counts; the
underlying causes go to the log, optionally mirrored to a file for operators.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[int], *, log_file: Optional[Path] = None) -> None:
    """Configure root logging once; safe to call multiple times.

    With ``log_file``, the same records are also appended to that file.
    """
    lvl = level if level is not None else logging.WARNING
    root = logging.getLogger()

    if root.handlers:
        root.setLevel(lvl)
    else:
        logging.basicConfig(
            level=lvl,
            format=_DEFAULT_FMT,
            datefmt=_DEFAULT_DATEFMT,
        )

    if log_file is not None:
        target = str(Path(log_file).resolve())
        if not any(getattr(h, "baseFilename", None) == target for h in root.handlers):
            handler = logging.FileHandler(target, encoding="utf-8")
            handler.setFormatter(logging.Formatter(_DEFAULT_FMT, _FILE_DATEFMT))
            root.addHandler(handler)

    # Keep urllib3 connection chatter out of DEBUG output
    for name in ("urllib3.connection", "urllib3.connectionpool"):
        noisy = logging.getLogger(name)
        if noisy.level == logging.NOTSET or noisy.level < logging.WARNING:
            noisy.setLevel(logging.WARNING)
