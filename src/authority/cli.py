"""CLI entry point for the authority connectors."""

import logging
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.table import Table

from authority.config import DEFAULT_CONFIG_FILE, load_config
from authority.connectors import CONNECTOR_TYPES, BaseConnector, CustomConnector, create_connector
from authority.connectors.base import ResultRecord
from authority.connectors.versions import negotiate_version, normalize_version
from authority.display import ConsoleContainer
from authority.errors import AuthorityError
from authority.utils.logging import setup_logging

console = Console()
logger = logging.getLogger("authority")


@click.group()
@click.option(
    "--config", "-c", "config_path",
    default=str(DEFAULT_CONFIG_FILE),
    type=click.Path(dir_okay=False),
    help="Connector configuration (TOML).",
)
@click.option("--debug", is_flag=True, help="Log requests and responses.")
@click.pass_context
def cli(ctx: click.Context, config_path: str, debug: bool) -> None:
    """Query name authorities and reconciliation services."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path)
    ctx.obj["debug"] = debug


def _get_connector(ctx: click.Context) -> BaseConnector:
    """Build the configured connector, or exit with an error."""
    try:
        config = load_config(ctx.obj["config_path"])
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read configuration: {e}[/red]")
        raise SystemExit(1) from e

    setup_logging(logging.DEBUG if ctx.obj["debug"] or config.debug else logging.INFO)

    try:
        return create_connector(config)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e


@cli.command()
@click.argument("key")
@click.pass_context
def query(ctx: click.Context, key: str) -> None:
    """Search the configured authority for KEY."""
    connector = _get_connector(ctx)

    try:
        result = connector.query(key)
    except (httpx.HTTPError, AuthorityError) as e:
        console.print(f"[red]Query failed: {e}[/red]")
        raise SystemExit(1) from e

    if not result.items:
        console.print("[yellow]No results found.[/yellow]")
        return

    table = Table(title=f"Results from {connector.name} ({result.total_items} total)")
    table.add_column("#", style="dim", width=4)
    table.add_column("ID")
    table.add_column("Label", max_width=40)
    table.add_column("Details", max_width=40)
    table.add_column("Provider")

    for i, r in enumerate(result.items, 1):
        table.add_row(str(i), r.id, r.label, r.details, r.provider)

    console.print(table)


@cli.command()
@click.argument("key")
@click.pass_context
def info(ctx: click.Context, key: str) -> None:
    """Show the preview of entry KEY."""
    connector = _get_connector(ctx)

    try:
        descriptor = connector.info(key, ConsoleContainer(console))
    except (httpx.HTTPError, AuthorityError) as e:
        console.print(f"[red]Info failed: {e}[/red]")
        raise SystemExit(1) from e

    if descriptor:
        console.print_json(data=descriptor)


@cli.command()
@click.argument("key")
@click.pass_context
def record(ctx: click.Context, key: str) -> None:
    """Print the record for KEY as JSON."""
    connector = _get_connector(ctx)

    try:
        entry = connector.get_record(key)
    except (httpx.HTTPError, AuthorityError) as e:
        console.print(f"[red]Lookup failed: {e}[/red]")
        raise SystemExit(1) from e

    console.print_json(data=entry.to_dict())


@cli.command()
@click.argument("item_id")
@click.pass_context
def select(ctx: click.Context, item_id: str) -> None:
    """Copy the remote record ITEM_ID into the local register."""
    connector = _get_connector(ctx)
    if not isinstance(connector, CustomConnector):
        console.print("[red]select needs a 'custom' connector with a local register.[/red]")
        raise SystemExit(1)

    item = ResultRecord(register=connector.register, id=item_id, label=item_id)
    try:
        stored = connector.select(item)
    except (httpx.HTTPError, AuthorityError) as e:
        console.print(f"[red]Select failed: {e}[/red]")
        raise SystemExit(1) from e

    console.print(f"[green]Stored {item_id} in register '{connector.register}'.[/green]")
    if stored is not None:
        console.print_json(data=stored)


@cli.command()
@click.argument("versions", nargs=-1)
def versions(versions: tuple[str, ...]) -> None:
    """Show which of the given service VERSIONS would be negotiated."""
    table = Table(title="Advertised versions")
    table.add_column("Advertised")
    table.add_column("Normalized")
    for v in versions:
        table.add_row(v, normalize_version(v))
    if versions:
        console.print(table)

    try:
        chosen = negotiate_version(list(versions))
    except AuthorityError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e
    console.print(f"Negotiated version: [bold]{chosen}[/bold]")


@cli.command("list-connectors")
def list_connectors() -> None:
    """List the available connector types."""
    for name in CONNECTOR_TYPES:
        console.print(f"  {name}")
