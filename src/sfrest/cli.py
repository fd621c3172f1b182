from __future__ import annotations

import json
import logging
from typing import Any, Optional, Tuple

import click

from . import __version__
from .client import SFRestClient
from .config import SFConfig
from .env_loader import load_env_files
from .exceptions import SFRestError
from .logging_config import configure_logging
from .storage import FileTokenStorage
from .token import mask_secret

_logger = logging.getLogger(__name__)

# Load .env very early, so everything else sees env vars
load_env_files(quiet=True)


def _make_client() -> SFRestClient:
    """Build a client whose token is cached on disk between invocations."""
    cfg = SFConfig.from_env()
    return SFRestClient.from_config(cfg, FileTokenStorage(cfg.token_cache))


def _echo_json(data: Any, pretty: bool) -> None:
    click.echo(json.dumps(data, indent=2 if pretty else None))


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    raise click.Abort() from None


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="sfrest")
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
@click.pass_context
def cli(ctx: click.Context, loglevel: Optional[int]) -> None:
    """Salesforce REST client. Use subcommands like 'login' or 'query'."""
    configure_logging(loglevel)
    _logger.debug("CLI start, version=%s", __version__)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("login")
def cmd_login() -> None:
    """Fetch a new token and cache it."""
    try:
        with _make_client() as sf:
            sf.token_storage.clear_token()
            token = sf.executor.current_token()
    except SFRestError as e:
        click.echo(f"❌  Login failed: {e}", err=True)
        raise click.Abort() from None

    click.echo("✅  Salesforce token fetched and cached successfully.")
    click.echo(f"Instance URL: {token.instance_url}")
    click.echo(f"Token preview: {mask_secret(token.access_token)}")


@cli.command("logout")
def cmd_logout() -> None:
    """Revoke the cached token and remove it."""
    try:
        with _make_client() as sf:
            token = sf.token_storage.get_token()
            if token is None:
                click.echo("No cached token.")
                return
            revoke = getattr(sf.token_provider, "revoke_token", None)
            if revoke is not None:
                try:
                    revoke(token)
                except SFRestError as e:
                    click.echo(f"Warning: revoke failed: {e}", err=True)
            sf.token_storage.clear_token()
    except SFRestError as e:
        _fail(e)
    click.echo("Token cleared.")


@cli.command("whoami")
def cmd_whoami() -> None:
    """Print the username of the authenticated user."""
    try:
        with _make_client() as sf:
            click.echo(sf.get_current_username())
    except SFRestError as e:
        _fail(e)


@cli.command("query")
@click.argument("soql")
@click.option("--all", "fetch_all", is_flag=True, help="Follow nextRecordsUrl and print every record.")
@click.option("--deleted", is_flag=True, help="Use queryAll (include deleted rows).")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
def cmd_query(soql: str, fetch_all: bool, deleted: bool, pretty: bool) -> None:
    """Run a SOQL query."""
    try:
        with _make_client() as sf:
            if fetch_all:
                _echo_json(list(sf.iter_query(soql, include_deleted=deleted)), pretty)
                return
            page = sf.query_all(soql) if deleted else sf.query(soql)
            _echo_json(
                {
                    "totalSize": page.total_size,
                    "done": page.done,
                    "nextRecordsUrl": page.cursor.locator,
                    "records": page.records,
                },
                pretty,
            )
    except SFRestError as e:
        _fail(e)


@cli.command("get")
@click.argument("sobject_type")
@click.argument("record_id")
@click.option("-f", "--field", "fields", multiple=True, help="Field to return (repeatable).")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
def cmd_get(sobject_type: str, record_id: str, fields: Tuple[str, ...], pretty: bool) -> None:
    """Fetch one record by id."""
    try:
        with _make_client() as sf:
            _echo_json(sf.get_sobject(sobject_type, record_id, *fields), pretty)
    except SFRestError as e:
        _fail(e)


@cli.command("describe")
@click.argument("sobject_type", required=False)
@click.option("--details", is_flag=True, help="Full describe (fields, relationships).")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
def cmd_describe(sobject_type: Optional[str], details: bool, pretty: bool) -> None:
    """List sObject types, or show metadata for one type."""
    try:
        with _make_client() as sf:
            if sobject_type is None:
                data = sf.list_sobjects()
                for obj in data.get("sobjects", []):
                    click.echo(obj.get("name"))
                return
            _echo_json(sf.get_sobject_metadata(sobject_type, details), pretty)
    except SFRestError as e:
        _fail(e)
