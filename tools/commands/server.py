"""server command group -- the receiving server a controller reports to."""

from __future__ import annotations

import sys

import click

from ctrlnet.client import Client
from ctrlnet.services.device_mgmt import ServerConfig
from tools.connection import resolve_device, run_command
from tools.formatting import print_error, print_json, print_kv
from tools.parsers import ipv4_option, serial_option

_host_option = click.option(
    "--host",
    default=None,
    callback=ipv4_option,
    help="Controller address, for controllers not in the store.",
)


def _print_config(serial: int, config: ServerConfig, use_json: bool) -> None:
    if use_json:
        print_json({"serial_number": serial, "server": config})
        return
    print_kv(
        [
            ("Serial", serial),
            ("Server", f"{config.server_ip}:{config.port}"),
            ("Upload interval", config.upload_interval),
            ("Upload enabled", "yes" if config.upload_enabled else "no"),
        ]
    )


@click.group()
def server() -> None:
    """Read or set the receiving server of a controller."""


@server.command("get")
@click.argument("serial", callback=serial_option)
@_host_option
@click.pass_context
def get_server(ctx: click.Context, serial: int, host: str | None) -> None:
    """Show the receiving server of controller SERIAL."""
    use_json: bool = ctx.obj["use_json"]

    async def _run(client: Client) -> ServerConfig:
        return await client.get_server_config(resolve_device(client, serial, host))

    try:
        config = run_command(ctx.obj, _run)
    except Exception as e:
        print_error(str(e), use_json)
        sys.exit(1)
    _print_config(serial, config, use_json)


@server.command("set")
@click.argument("serial", callback=serial_option)
@click.option("--ip", "server_ip", required=True, callback=ipv4_option, help="Server address.")
@click.option(
    "--port", "server_port", type=click.IntRange(1, 65535), required=True, help="Server port."
)
@click.option(
    "--interval",
    type=click.IntRange(0, 255),
    default=0,
    show_default=True,
    help="Upload interval; 0 disables periodic upload.",
)
@_host_option
@click.pass_context
def set_server(
    ctx: click.Context,
    serial: int,
    server_ip: str,
    server_port: int,
    interval: int,
    host: str | None,
) -> None:
    """Point controller SERIAL at a receiving server."""
    use_json: bool = ctx.obj["use_json"]
    config = ServerConfig(server_ip=server_ip, port=server_port, upload_interval=interval)

    async def _run(client: Client) -> ServerConfig:
        return await client.set_server_config(resolve_device(client, serial, host), config)

    try:
        applied = run_command(ctx.obj, _run)
    except Exception as e:
        print_error(str(e), use_json)
        sys.exit(1)
    _print_config(serial, applied, use_json)
