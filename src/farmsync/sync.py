"""Run record syncs from farmOS into local storage.

A sync is a list of :class:`SyncOperation` objects (one per selected record
type) executed one after another against a single authenticated client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from tqdm import tqdm

from .api import FarmOSClient
from .exceptions import FetchError, StorageError
from .storage import AreaRow, AreaStore

_logger = logging.getLogger(__name__)

# record type -> label shown to users
RECORD_TYPES: Dict[str, str] = {
    "areas": "Areas",
}


@dataclass
class SyncOperation:
    record_type: str
    entity_type: str
    filters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationResult:
    operation: SyncOperation
    ok: bool
    records: int = 0
    error: str = ""


@dataclass
class SyncReport:
    results: List[OperationResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def records(self) -> int:
        return sum(r.records for r in self.results)


def build_operations(
    record_types: Iterable[str], area_type: Optional[str] = None
) -> List[SyncOperation]:
    """Turn the selected record types into sync operations.

    Unsupported types are skipped.
    """
    operations: List[SyncOperation] = []
    for record_type in record_types:
        if record_type == "areas":
            filters: Dict[str, Any] = {}
            if area_type:
                filters["area_type"] = area_type
            operations.append(SyncOperation("areas", "taxonomy_term", filters))
        else:
            _logger.warning("Skipping unsupported record type: %s", record_type)
    return operations


def _sync_areas(client: FarmOSClient, store: AreaStore, op: SyncOperation) -> int:
    rows: List[AreaRow] = []
    for record in client.iter_areas(op.filters):
        row = AreaRow.from_record(record)
        if row is None:
            _logger.warning("Skipping area record without tid: %r", record)
            continue
        rows.append(row)
    if client.last_error:
        raise FetchError(client.last_error)
    _logger.info("Fetched %d area(s) with filters %s", len(rows), op.filters)
    return store.upsert_areas(rows)


def run_sync(
    client: FarmOSClient,
    store: AreaStore,
    operations: List[SyncOperation],
    *,
    progress: bool = False,
) -> SyncReport:
    """Authenticate once, then run each operation in turn."""
    report = SyncReport()
    if not operations:
        return report

    if not client.authenticate():
        _logger.warning("farmOS authentication failed; %d operation(s) not run", len(operations))
        for op in operations:
            report.results.append(OperationResult(op, ok=False, error="authentication failed"))
        return report

    for op in tqdm(operations, desc="Record sync", disable=not progress):
        if op.record_type != "areas":
            report.results.append(
                OperationResult(op, ok=False, error=f"unsupported record type {op.record_type}")
            )
            continue
        try:
            n = _sync_areas(client, store, op)
        except (FetchError, StorageError) as e:
            _logger.warning("Syncing %s failed: %s", op.record_type, e)
            report.results.append(OperationResult(op, ok=False, error=str(e)))
            continue
        report.results.append(OperationResult(op, ok=True, records=n))

    _logger.info(
        "Sync finished: %d succeeded, %d failed, %d record(s) written",
        report.succeeded,
        report.failed,
        report.records,
    )
    return report
