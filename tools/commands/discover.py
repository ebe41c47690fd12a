"""discover command -- find controllers on the local network."""

from __future__ import annotations

import dataclasses
import sys

import click

from ctrlnet.client import Client
from tools.connection import run_command
from tools.formatting import print_devices, print_error, print_json, print_kv
from tools.parsers import targets_option


@click.command()
@click.option(
    "--timeout", type=float, default=5.0, show_default=True, help="Listen budget in seconds."
)
@click.option("--retries", type=int, default=None, help="Broadcast attempts.")
@click.option("--delay", type=int, default=None, help="Base retry delay in milliseconds.")
@click.option("--no-unicast", is_flag=True, default=False, help="Disable unicast fallback.")
@click.option(
    "--no-interfaces", is_flag=True, default=False, help="Skip local interface detection."
)
@click.option(
    "--target",
    "targets",
    multiple=True,
    callback=targets_option,
    help="Probe these addresses directly (repeatable, comma-separated).",
)
@click.option("--report", is_flag=True, default=False, help="Show per-phase statistics.")
@click.pass_context
def discover(
    ctx: click.Context,
    timeout: float,
    retries: int | None,
    delay: int | None,
    no_unicast: bool,
    no_interfaces: bool,
    targets: list[str],
    report: bool,
) -> None:
    """Discover controllers by broadcast, with retries and unicast fallback."""
    use_json: bool = ctx.obj["use_json"]

    async def _run(client: Client) -> None:
        if targets:
            print_devices(await client.discover_by_ip(targets, timeout), use_json)
            return

        changes: dict[str, object] = {}
        if retries is not None:
            changes["max_retries"] = retries
        if delay is not None:
            changes["retry_delay_ms"] = delay
        if no_unicast:
            changes["enable_unicast_fallback"] = False
        if no_interfaces:
            changes["enable_interface_detection"] = False
        config = dataclasses.replace(client.config.discovery, **changes)

        result = await client.discover_with_report(timeout, config)
        if use_json:
            print_json(result if report else {"devices": result.devices})
            return
        print_devices(result.devices, use_json)
        if not result.devices:
            click.echo("Try the 'diagnose' command for troubleshooting.")
        if report:
            click.echo("")
            print_kv(
                [
                    ("Attempts", result.attempts),
                    ("Backoff delays", ", ".join(f"{d:.1f}s" for d in result.delays) or "-"),
                    ("Unicast fallback", "yes" if result.fallback_used else "no"),
                    ("Probes sent", result.probes_sent),
                    ("Rejected replies", result.rejected_replies),
                    ("Socket errors", len(result.socket_errors)),
                    ("Elapsed", f"{result.elapsed:.2f}s"),
                ]
            )

    try:
        run_command(ctx.obj, _run)
    except Exception as e:
        print_error(str(e), use_json)
        sys.exit(1)
