"""CLI command for syncing farmOS records into the local SQLite database."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import click

from .cli_common import credential_options, make_client
from .env_loader import default_db_path
from .storage import AreaStore
from .sync import RECORD_TYPES, build_operations, run_sync

LOG = logging.getLogger(__name__)


@click.command(name="sync")
@credential_options
@click.option(
    "--records",
    "record_types",
    type=click.Choice(sorted(RECORD_TYPES)),
    multiple=True,
    required=True,
    help="Record type to sync (repeatable).",
)
@click.option(
    "--area-type",
    default=None,
    help=(
        "Optionally sync only one area type (farmOS machine name), "
        'for example "building" or "field".'
    ),
)
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="SQLite database to write to (default: $FARMSYNC_DB or ./farmsync.db).",
)
@click.option("--progress/--no-progress", default=True, show_default=True)
def sync_cmd(
    hostname: Optional[str],
    username: Optional[str],
    password: Optional[str],
    record_types: Tuple[str, ...],
    area_type: Optional[str],
    db_path: Optional[Path],
    progress: bool,
) -> None:
    """Sync the selected farmOS records into a local database."""
    if db_path is None:
        db_path = default_db_path()

    operations = build_operations(record_types, area_type)
    if not operations:
        click.echo("Nothing to sync.")
        return

    client = make_client(hostname, username, password)

    LOG.info("Syncing %s into %s", ", ".join(record_types), db_path)
    with AreaStore(db_path) as store:
        report = run_sync(client, store, operations, progress=progress)

    for result in report.results:
        label = RECORD_TYPES.get(result.operation.record_type, result.operation.record_type)
        if result.ok:
            click.echo(f"{label}: {result.records} record(s) synced.")
        else:
            click.echo(f"{label}: failed ({result.error}).", err=True)

    click.echo(f"{report.succeeded} succeeded, {report.failed} failed.")
    if report.failed:
        raise click.ClickException("Record sync has encountered an error.")
