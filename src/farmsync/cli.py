from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, cast

import click
from click import Command

from . import __version__
from .cli_common import authenticated_client, credential_options, make_client
from .command_sync import sync_cmd
from .env_loader import load_env_files
from .logging_config import configure_logging

_logger = logging.getLogger(__name__)

# Load .env very early, so everything else sees env vars
load_env_files()


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="farmsync")
@click.option(
    "-v",
    "--verbose",
    "loglevel",
    flag_value=logging.INFO,
    default=None,
    help="Enable INFO logs.",
)
@click.option(
    "-vv",
    "--very-verbose",
    "loglevel",
    flag_value=logging.DEBUG,
    help="Enable DEBUG logs.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also append log records to this file.",
)
@click.pass_context
def cli(ctx: click.Context, loglevel: Optional[int], log_file: Optional[Path]) -> None:
    """farmOS sync CLI. Use subcommands like 'login', 'areas' or 'sync'."""
    configure_logging(loglevel, log_file=log_file)
    _logger.debug("CLI start, version=%s", __version__)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("login")
@credential_options
def cmd_login(hostname: Optional[str], username: Optional[str], password: Optional[str]) -> None:
    """Check that farmOS credentials work (login + session token)."""
    client = make_client(hostname, username, password)
    if not client.authenticate():
        click.echo(f"❌  Login to {client.cfg.hostname} failed.", err=True)
        raise click.Abort()
    click.echo(f"✅  Logged in to {client.cfg.hostname} as {client.cfg.username}.")
    click.echo(f"Token preview: {client.token[:6]}...")


@cli.command("areas")
@credential_options
@click.option("--area-type", default=None, help='Only areas of this type, e.g. "field".')
@click.option("--all-pages", is_flag=True, help="Fetch every page, not just the first.")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
def cmd_areas(
    hostname: Optional[str],
    username: Optional[str],
    password: Optional[str],
    area_type: Optional[str],
    all_pages: bool,
    pretty: bool,
) -> None:
    """Print farmOS areas as JSON."""
    client = authenticated_client(hostname, username, password)
    filters = {"area_type": area_type} if area_type else {}
    if all_pages:
        areas = list(client.iter_areas(filters))
    else:
        areas = client.get_areas(filters)
    click.echo(json.dumps(areas, indent=2 if pretty else None))


@cli.command("pages")
@credential_options
@click.argument("entity_type")
def cmd_pages(
    hostname: Optional[str],
    username: Optional[str],
    password: Optional[str],
    entity_type: str,
) -> None:
    """Print how many pages the ENTITY_TYPE list endpoint reports."""
    client = authenticated_client(hostname, username, password)
    click.echo(str(client.page_count(entity_type)))


# Cast ensures IDE knows of the Command type
cli.add_command(cast(Command, sync_cmd))
