"""time command group -- read and set a controller clock."""

from __future__ import annotations

import sys
from datetime import datetime

import click

from ctrlnet.client import Client
from tools.connection import resolve_device, run_command
from tools.formatting import print_error, print_json, print_kv
from tools.parsers import datetime_option, ipv4_option, serial_option

_host_option = click.option(
    "--host",
    default=None,
    callback=ipv4_option,
    help="Controller address, for controllers not in the store.",
)


@click.group("time")
def clock() -> None:
    """Read or set a controller clock."""


@clock.command("get")
@click.argument("serial", callback=serial_option)
@_host_option
@click.pass_context
def get_time(ctx: click.Context, serial: int, host: str | None) -> None:
    """Read the clock of controller SERIAL."""
    use_json: bool = ctx.obj["use_json"]

    async def _run(client: Client) -> datetime:
        return await client.get_time(resolve_device(client, serial, host))

    try:
        value = run_command(ctx.obj, _run)
    except Exception as e:
        print_error(str(e), use_json)
        sys.exit(1)
    if use_json:
        print_json({"serial_number": serial, "time": value.isoformat()})
    else:
        print_kv([("Serial", serial), ("Time", value.isoformat(sep=" "))])


@clock.command("set")
@click.argument("serial", callback=serial_option)
@click.option(
    "--at",
    "when",
    default=None,
    callback=datetime_option,
    help="ISO 8601 time to set (default: now).",
)
@_host_option
@click.pass_context
def set_time(ctx: click.Context, serial: int, when: datetime | None, host: str | None) -> None:
    """Set the clock of controller SERIAL."""
    use_json: bool = ctx.obj["use_json"]

    async def _run(client: Client) -> datetime:
        return await client.set_time(resolve_device(client, serial, host), when)

    try:
        value = run_command(ctx.obj, _run)
    except Exception as e:
        print_error(str(e), use_json)
        sys.exit(1)
    if use_json:
        print_json({"serial_number": serial, "time": value.isoformat()})
    else:
        click.echo(f"Clock of controller {serial} set to {value.isoformat(sep=' ')}.")
