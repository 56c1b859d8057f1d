"""SQLite storage for synced farmOS areas.

Areas land in a single ``farm_sync_area`` table keyed by the remote term ID.
Rows are only ever inserted or updated, never deleted, so re-running a sync
converges on the remote state (last write wins).
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from .exceptions import StorageError

LOG = logging.getLogger(__name__)

AREA_TABLE = "farm_sync_area"

_CREATE_SQL = f"""
CREATE TABLE IF NOT EXISTS "{AREA_TABLE}" (
    area_id INTEGER PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    type TEXT NOT NULL DEFAULT '',
    geom TEXT NOT NULL DEFAULT ''
)
"""

_UPSERT_SQL = f"""
INSERT INTO "{AREA_TABLE}" (area_id, name, type, geom)
VALUES (:area_id, :name, :type, :geom)
ON CONFLICT(area_id) DO UPDATE SET
    name = excluded.name,
    type = excluded.type,
    geom = excluded.geom
"""


@dataclass(frozen=True)
class AreaRow:
    """One local area row."""

    area_id: int
    name: str = ""
    type: str = ""
    geom: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Optional[AreaRow]:
        """Map a farmOS taxonomy term to a row; None if it has no usable tid."""
        try:
            area_id = int(record["tid"])
        except (KeyError, TypeError, ValueError):
            return None
        return cls(
            area_id=area_id,
            name=str(record.get("name") or ""),
            type=str(record.get("area_type") or ""),
            geom=_first_geom(record.get("geofield")),
        )


def _first_geom(geofield: Any) -> str:
    # restws returns geofield as a list of {"geom": "<WKT>", ...}
    if isinstance(geofield, list) and geofield:
        first = geofield[0]
        if isinstance(first, dict):
            return str(first.get("geom") or "")
    if isinstance(geofield, dict):
        return str(geofield.get("geom") or "")
    return ""


class AreaStore:
    """Upsert target for :class:`AreaRow` records."""

    def __init__(self, db_path: Path | str, *, logger: Optional[logging.Logger] = None) -> None:
        self.log = logger or LOG
        self.db_path = str(db_path)

        if self.db_path != ":memory:":
            parent = Path(self.db_path).parent
            if not parent.exists():
                self.log.info("Creating parent directory for SQLite database at %s", parent)
                parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(self.db_path)
        self.conn.execute(_CREATE_SQL)
        self.conn.commit()

    def __enter__(self) -> AreaStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self.conn.close()

    def upsert_areas(self, rows: Iterable[AreaRow]) -> int:
        """Insert or update ``rows`` in one transaction and return how many were written.

        On failure the whole batch is rolled back and StorageError is raised.
        """
        params = [
            {"area_id": r.area_id, "name": r.name, "type": r.type, "geom": r.geom} for r in rows
        ]
        if not params:
            return 0

        try:
            cur = self.conn.cursor()
            for p in params:
                cur.execute(_UPSERT_SQL, p)
            self.conn.commit()
        except sqlite3.Error as exc:
            self.conn.rollback()
            self.log.exception("Area upsert failed; rolled back %d row(s)", len(params))
            raise StorageError(f"Area upsert failed: {exc}") from exc

        self.log.info("Upserted %d area(s) into %s", len(params), self.db_path)
        return len(params)

    def get_area(self, area_id: int) -> Optional[AreaRow]:
        cur = self.conn.execute(
            f'SELECT area_id, name, type, geom FROM "{AREA_TABLE}" WHERE area_id = ?',
            (area_id,),
        )
        row = cur.fetchone()
        return AreaRow(*row) if row else None

    def list_areas(self) -> List[AreaRow]:
        cur = self.conn.execute(
            f'SELECT area_id, name, type, geom FROM "{AREA_TABLE}" ORDER BY area_id'
        )
        return [AreaRow(*row) for row in cur.fetchall()]

    def count(self) -> int:
        (n,) = self.conn.execute(f'SELECT COUNT(*) FROM "{AREA_TABLE}"').fetchone()
        return int(n)
