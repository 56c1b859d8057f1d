# src/farmsync/__main__.py
from __future__ import annotations

import sys

from .cli import cli


def _configure_stdio() -> None:
    # Force UTF-8 output; area names routinely contain non-ASCII characters.
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8", errors="backslashreplace")
        except (AttributeError, ValueError):
            pass


def main() -> None:
    _configure_stdio()
    cli()


if __name__ == "__main__":
    main()
