"""Options and helpers shared by farmsync CLI commands."""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

import click

from .api import FarmOSClient, FarmOSConfig
from .exceptions import MissingCredentialsError

F = TypeVar("F", bound=Callable[..., object])


def credential_options(func: F) -> F:
    """Add --hostname/--username/--password, each defaulting to FARMOS_* env vars."""
    func = click.option(
        "--password",
        default=None,
        help="farmOS password (default: $FARMOS_PASSWORD).",
    )(func)
    func = click.option(
        "--username",
        default=None,
        help="farmOS user name (default: $FARMOS_USERNAME).",
    )(func)
    func = click.option(
        "--hostname",
        default=None,
        help="farmOS hostname without protocol (default: $FARMOS_HOSTNAME).",
    )(func)
    return func


def make_config(
    hostname: Optional[str], username: Optional[str], password: Optional[str]
) -> FarmOSConfig:
    """Environment config with any CLI values layered on top."""
    cfg = FarmOSConfig.from_env()
    if hostname:
        cfg.hostname = hostname
    if username:
        cfg.username = username
    if password:
        cfg.password = password
    return cfg


def make_client(
    hostname: Optional[str], username: Optional[str], password: Optional[str]
) -> FarmOSClient:
    cfg = make_config(hostname, username, password)
    missing = cfg.missing()
    if missing:
        e = MissingCredentialsError(missing)
        msg = (
            f"{e}\n\n"
            "Set these environment variables (or create a .env file), e.g.:\n"
            "  FARMOS_HOSTNAME=farm.example.com   # no protocol\n"
            "  FARMOS_USERNAME=...\n"
            "  FARMOS_PASSWORD=...\n"
            "  FARMOS_SCHEME=http                 # optional; http or https\n\n"
            "or pass --hostname/--username/--password."
        )
        raise click.ClickException(msg) from e
    return FarmOSClient(cfg)


def authenticated_client(
    hostname: Optional[str], username: Optional[str], password: Optional[str]
) -> FarmOSClient:
    client = make_client(hostname, username, password)
    if not client.authenticate():
        raise click.ClickException(
            f"Could not authenticate with farmOS at {client.cfg.hostname}. "
            "Check the credentials and re-run with -v for details."
        )
    return client
