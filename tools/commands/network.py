"""network command group -- push IPv4 addressing to a controller."""

from __future__ import annotations

import sys

import click

from ctrlnet.app.device import DeviceRecord
from ctrlnet.client import Client
from ctrlnet.services.device_mgmt import NetworkConfig
from tools.connection import resolve_device, run_command
from tools.formatting import print_error, print_json
from tools.parsers import ipv4_option, serial_option


@click.group()
def network() -> None:
    """Change controller network settings."""


@network.command("set")
@click.argument("serial", callback=serial_option)
@click.option("--ip", required=True, callback=ipv4_option, help="New controller address.")
@click.option("--mask", required=True, callback=ipv4_option, help="New subnet mask.")
@click.option("--gateway", required=True, callback=ipv4_option, help="New default gateway.")
@click.option(
    "--host",
    default=None,
    callback=ipv4_option,
    help="Current controller address, for controllers not in the store.",
)
@click.pass_context
def set_network(
    ctx: click.Context,
    serial: int,
    ip: str,
    mask: str,
    gateway: str,
    host: str | None,
) -> None:
    """Send new addressing to controller SERIAL.  The controller restarts."""
    use_json: bool = ctx.obj["use_json"]
    config = NetworkConfig(ip=ip, subnet_mask=mask, gateway=gateway)

    async def _run(client: Client) -> DeviceRecord:
        return await client.set_network_config(resolve_device(client, serial, host), config)

    try:
        record = run_command(ctx.obj, _run)
    except Exception as e:
        print_error(str(e), use_json)
        sys.exit(1)
    if use_json:
        print_json({"device": record})
    else:
        click.echo(
            f"Sent {ip}/{mask} gateway {gateway} to controller {serial}; it will restart."
        )
