"""devices, forget and export commands -- manage the controller store."""

from __future__ import annotations

import sys

import click

from ctrlnet.app.store import EXPORT_FORMATS, export_records, search_records
from tools.connection import make_client
from tools.formatting import print_devices, print_error, print_json
from tools.parsers import ipv4_option, serial_option


@click.command()
@click.option("--ip", default=None, callback=ipv4_option, help="Filter by IP address.")
@click.option("--mac", default=None, help="Filter by MAC address.")
@click.option("--driver", default=None, help="Filter by driver version.")
@click.pass_context
def devices(ctx: click.Context, ip: str | None, mac: str | None, driver: str | None) -> None:
    """List controllers in the store."""
    use_json: bool = ctx.obj["use_json"]
    try:
        records = make_client(ctx.obj).devices()
    except Exception as e:
        print_error(str(e), use_json)
        sys.exit(1)
    print_devices(
        search_records(records, ip=ip, mac_address=mac, driver_version=driver), use_json
    )


@click.command()
@click.argument("serial", callback=serial_option)
@click.pass_context
def forget(ctx: click.Context, serial: int) -> None:
    """Remove controller SERIAL from the store."""
    use_json: bool = ctx.obj["use_json"]
    try:
        removed = make_client(ctx.obj).forget(serial)
    except Exception as e:
        print_error(str(e), use_json)
        sys.exit(1)
    if not removed:
        print_error(f"Unknown controller {serial}", use_json)
        sys.exit(1)
    if use_json:
        print_json({"removed": serial})
    else:
        click.echo(f"Removed controller {serial}.")


@click.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(EXPORT_FORMATS),
    default="json",
    show_default=True,
    help="Export format.",
)
@click.pass_context
def export(ctx: click.Context, fmt: str) -> None:
    """Write every stored controller to stdout."""
    try:
        records = make_client(ctx.obj).devices()
    except Exception as e:
        print_error(str(e), ctx.obj["use_json"])
        sys.exit(1)
    click.echo(export_records(records, fmt), nl=False)
