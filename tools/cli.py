"""Click CLI group and global options for the controller CLI."""

from __future__ import annotations

import logging
import sys

import click

from tools.commands.clock import clock
from tools.commands.devices import devices, export, forget
from tools.commands.diagnose import diagnose
from tools.commands.discover import discover
from tools.commands.network import network
from tools.commands.server import server

DEFAULT_STORE = "config/controllers.json"


@click.group()
@click.option(
    "--interface",
    default="0.0.0.0",
    show_default=True,
    help="Local bind address.",
)
@click.option(
    "--port",
    default=60000,
    type=int,
    show_default=True,
    help="Controller UDP port.",
)
@click.option(
    "--store",
    default=DEFAULT_STORE,
    show_default=True,
    type=click.Path(dir_okay=False),
    help="JSON file holding known controllers.",
)
@click.option(
    "--json",
    "use_json",
    is_flag=True,
    default=False,
    help="Output JSON instead of table.",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    interface: str,
    port: int,
    store: str,
    use_json: bool,
    verbose: bool,
) -> None:
    """Network access controller tools powered by ctrlnet."""
    ctx.ensure_object(dict)
    ctx.obj["interface"] = interface
    ctx.obj["port"] = port
    ctx.obj["store"] = store
    ctx.obj["use_json"] = use_json

    # Configure logging
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


# Register commands
cli.add_command(discover)
cli.add_command(diagnose)
cli.add_command(devices)
cli.add_command(forget)
cli.add_command(export)
cli.add_command(clock)
cli.add_command(server)
cli.add_command(network)


if __name__ == "__main__":
    cli()
