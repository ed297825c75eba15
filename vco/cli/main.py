"""Main CLI entry point for the SD-WAN Orchestrator client."""

import asyncio
import dataclasses
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import click
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.compat import DateTime
from ..core.errors import VcoError
from ..core.models import GatewayMetric
from ..rpc.client import VcoClient
from ..rpc.config import Config
from ..rpc.session import Credentials, LoginScope

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def load_config(settings: Dict[str, Any]) -> Config:
    """Load configuration from environment variables, with command-line overrides."""
    config = Config.from_env(fqdn=settings.get("fqdn"))
    if settings.get("server_version"):
        config = dataclasses.replace(config, server_version=settings["server_version"])
    return config


def load_credentials(settings: Dict[str, Any], fqdn: str) -> Credentials:
    """Build credentials from the options, the environment or a prompt."""
    token = os.getenv("VCO_API_TOKEN")
    if settings.get("token") or (token and not settings.get("username")):
        token = token or click.prompt(f"API token for {fqdn}", hide_input=True)
        return Credentials.token(token)

    username = settings.get("username")
    if not username:
        raise click.UsageError("Give --username, --token or set VCO_API_TOKEN.")
    password = os.getenv("VCO_PASSWORD") or click.prompt(
        f"Password for {username} on {fqdn}", hide_input=True
    )
    return Credentials.password(username, password, scope=settings["scope"])


def prepare(ctx: click.Context) -> Tuple[Config, Credentials]:
    """Resolve configuration and credentials before entering the event loop."""
    try:
        config = load_config(ctx.obj)
    except VcoError as e:
        rprint(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(e.exit_code)
    return config, load_credentials(ctx.obj, config.fqdn)


def run(main: Callable[[], Awaitable[None]], action: str) -> None:
    """Run a command coroutine and exit with the error's code on failure."""
    try:
        asyncio.run(main())
    except VcoError as e:
        rprint(f"[red]Error: {escape(str(e))}[/red]")
        if logger.isEnabledFor(logging.DEBUG):
            logger.exception(f"{action} failed")
        sys.exit(e.exit_code)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--fqdn", envvar="VCO_FQDN", help="Orchestrator FQDN (default: $VCO_FQDN)")
@click.option("--server-version", help="Target server version (default: $VCO_SERVER_VERSION)")
@click.option("--username", "-u", envvar="VCO_USERNAME", help="Log in with this user's password")
@click.option("--token", is_flag=True, help="Log in with an API token ($VCO_API_TOKEN or prompt)")
@click.option(
    "--scope",
    type=click.Choice([scope.value for scope in LoginScope]),
    default=LoginScope.OPERATOR.value,
    help="Password login endpoint",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    fqdn: Optional[str],
    server_version: Optional[str],
    username: Optional[str],
    token: bool,
    scope: str,
) -> None:
    """CLI tool for interacting with the VMware SD-WAN Orchestrator."""
    ctx.ensure_object(dict)
    ctx.obj.update(
        verbose=verbose,
        fqdn=fqdn,
        server_version=server_version,
        username=username,
        token=token,
        scope=LoginScope(scope),
    )
    setup_logging(verbose)


@cli.command()
def version() -> None:
    """Show version information."""
    from .. import __version__

    table = Table(title="VCO Python CLI")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("py-vco", __version__)
    table.add_row(
        "Python",
        f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    )

    console.print(table)


@cli.command()
@click.pass_context
def env(ctx: click.Context) -> None:
    """Show environment configuration."""
    try:
        config = load_config(ctx.obj)
    except VcoError as e:
        rprint(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(e.exit_code)

    table = Table(title="Environment Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("FQDN", config.fqdn)
    table.add_row("Server Version", config.server_version or "Not set")
    table.add_row("Verify SSL", str(config.verify_ssl))
    table.add_row("CA Bundle", config.ca_bundle or "Not set")
    table.add_row("Keystore Path", config.keystore_path or "Not set")
    table.add_row("Request Timeout", f"{config.request_timeout:g}s")
    table.add_row("Login Timeout", f"{config.login_timeout:g}s")

    console.print(table)


@cli.group()
def properties() -> None:
    """Manage system properties."""
    pass


@properties.command("ls")
@click.option("--filter", "prefix", default="", help="Only show properties whose names start with this")
@click.option("--show-passwords", is_flag=True, help="Do not redact password properties")
@click.pass_context
def list_properties(ctx: click.Context, prefix: str, show_passwords: bool) -> None:
    """List system properties."""
    config, credentials = prepare(ctx)

    async def _main() -> None:
        async with VcoClient(config, credentials) as client:
            items = await client.properties.list(prefix).collect()

            if not items:
                rprint("[yellow]No properties found[/yellow]")
                return

            table = Table(title="System Properties")
            table.add_column("Name", style="cyan", overflow="fold")
            table.add_column("Value", style="green", overflow="fold")

            for prop in items:
                table.add_row(prop.name, escape(prop.display_value(show_passwords) or ""))

            console.print(table)

    run(_main, "Listing properties")


@properties.command("get")
@click.argument("name")
@click.option("--show-passwords", is_flag=True, help="Do not redact a password property")
@click.pass_context
def get_property(ctx: click.Context, name: str, show_passwords: bool) -> None:
    """Get a system property."""
    config, credentials = prepare(ctx)

    async def _main() -> None:
        async with VcoClient(config, credentials) as client:
            prop = await client.properties.get(name)

            table = Table(title=f"System Property - {prop.name}")
            table.add_column("Property", style="cyan")
            table.add_column("Value", style="green", overflow="fold")

            table.add_row("Name", prop.name)
            table.add_row("Value", escape(prop.display_value(show_passwords) or ""))
            table.add_row("Data Type", str(getattr(prop.data_type, "value", prop.data_type) or "N/A"))
            table.add_row("Read Only", str(prop.is_read_only) if prop.is_read_only is not None else "N/A")
            table.add_row("Password", str(prop.is_password) if prop.is_password is not None else "N/A")
            table.add_row("Modified", str(prop.modified) if prop.modified else "N/A")
            if prop.description:
                table.add_row("Description", escape(prop.description))

            console.print(table)

    run(_main, "Getting property")


@properties.command("set")
@click.argument("name")
@click.argument("value")
@click.pass_context
def set_property(ctx: click.Context, name: str, value: str) -> None:
    """Set the value of a system property."""
    config, credentials = prepare(ctx)

    async def _main() -> None:
        async with VcoClient(config, credentials) as client:
            with console.status(f"Setting property '{name}'..."):
                result = await client.properties.set(name, value)
            rprint(f"[green]✓ Property '{escape(name)}' set ({result.rows} row(s) updated)[/green]")

    run(_main, "Setting property")


@properties.command("delete")
@click.argument("name")
@click.pass_context
def delete_property(ctx: click.Context, name: str) -> None:
    """Delete a system property."""
    config, credentials = prepare(ctx)

    async def _main() -> None:
        async with VcoClient(config, credentials) as client:
            with console.status(f"Deleting property '{name}'..."):
                result = await client.properties.delete(name)
            rprint(f"[green]✓ Property '{escape(name)}' deleted ({result.rows} row(s))[/green]")

    run(_main, "Deleting property")


@cli.group()
def gateways() -> None:
    """Inspect gateways (VCGs)."""
    pass


@gateways.command("ls")
@click.pass_context
def list_gateways(ctx: click.Context) -> None:
    """List the network gateways."""
    config, credentials = prepare(ctx)

    async def _main() -> None:
        async with VcoClient(config, credentials) as client:
            items = await client.gateways.list().collect()

            if not items:
                rprint("[yellow]No gateways found[/yellow]")
                return

            table = Table(title="Gateways")
            table.add_column("ID", style="cyan")
            table.add_column("Name", style="green")
            table.add_column("State", style="blue")
            table.add_column("Version", style="magenta")
            table.add_column("Edges", style="yellow")

            for gateway in items:
                state = gateway.gateway_state
                table.add_row(
                    str(gateway.id),
                    gateway.name,
                    str(getattr(state, "value", state) or "N/A"),
                    gateway.software_version or "N/A",
                    str(gateway.connected_edges) if gateway.connected_edges is not None else "N/A",
                )

            console.print(table)

    run(_main, "Listing gateways")


@gateways.command("metrics")
@click.option("--id", "-i", "gateway_id", type=int, required=True, help="Gateway ID")
@click.option("--start", required=True, help="Interval start, RFC3339")
@click.option("--end", help="Interval end, RFC3339 (default: now)")
@click.option(
    "--metric",
    "-m",
    "metrics",
    multiple=True,
    type=click.Choice([metric.value for metric in GatewayMetric]),
    help="Metric to fetch; repeatable (default: all)",
)
@click.pass_context
def gateway_metrics(
    ctx: click.Context, gateway_id: int, start: str, end: Optional[str], metrics: Tuple[str, ...]
) -> None:
    """Show the status metrics of a gateway."""
    try:
        interval_start = DateTime.from_rfc3339(start)
        interval_end = DateTime.from_rfc3339(end) if end else DateTime(datetime.now(timezone.utc))
    except VcoError:
        raise click.BadParameter("expected an RFC3339 date-time", param_hint="--start/--end") from None
    config, credentials = prepare(ctx)

    async def _main() -> None:
        async with VcoClient(config, credentials) as client:
            result = await client.gateways.status_metrics(
                gateway_id,
                interval_start,
                interval_end,
                [GatewayMetric(metric) for metric in metrics],
            )
            console.print_json(data=result)

    run(_main, "Fetching gateway metrics")


@cli.group()
def edges() -> None:
    """Inspect edges (VCEs)."""
    pass


@edges.command("ls")
@click.option("--enterprise", "-e", required=True, help="Enterprise logical ID")
@click.pass_context
def list_edges(ctx: click.Context, enterprise: str) -> None:
    """List the edges of an enterprise."""
    config, credentials = prepare(ctx)

    async def _main() -> None:
        async with VcoClient(config, credentials) as client:
            table = Table(title=f"Edges - {enterprise}")
            table.add_column("Logical ID", style="cyan", overflow="fold")
            table.add_column("Name", style="green")
            table.add_column("State", style="blue")
            table.add_column("Model", style="magenta")
            table.add_column("Version", style="yellow")

            count = 0
            async for edge in client.edges.list(enterprise):
                state = edge.edge_state
                table.add_row(
                    edge.logical_id or "N/A",
                    edge.name or "N/A",
                    str(getattr(state, "value", state) or "N/A"),
                    edge.model_number or "N/A",
                    edge.software_version or "N/A",
                )
                count += 1

            if not count:
                rprint("[yellow]No edges found[/yellow]")
                return

            console.print(table)

    run(_main, "Listing edges")


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
