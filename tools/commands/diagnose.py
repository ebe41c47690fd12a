"""diagnose command -- troubleshoot controller discovery."""

from __future__ import annotations

import sys

import click

from ctrlnet.client import Client
from tools.connection import run_command
from tools.formatting import print_error, print_json, print_kv, print_table
from tools.parsers import targets_option

_LEVEL_LABELS = {"error": "ERROR", "warning": "WARN", "info": "INFO"}


@click.command()
@click.option(
    "--target",
    "targets",
    multiple=True,
    callback=targets_option,
    help="Controller address to test (repeatable, comma-separated).",
)
@click.pass_context
def diagnose(ctx: click.Context, targets: list[str]) -> None:
    """Report interfaces, controller reachability and recommendations."""
    use_json: bool = ctx.obj["use_json"]

    async def _run(client: Client) -> None:
        report = await client.diagnose(targets)
        if use_json:
            print_json(report)
            return

        print_kv(
            [
                ("Platform", report.platform),
                ("Hostname", report.hostname),
                ("Timestamp", report.timestamp.isoformat(timespec="seconds")),
            ]
        )
        click.echo(f"\nInterfaces ({len(report.interfaces)}):")
        print_table(
            ["Name", "Type", "Address", "Broadcast", "Priority"],
            [
                [i.name, i.type.value, f"{i.address}/{i.prefix_length}", i.broadcast, i.priority]
                for i in report.interfaces
            ],
        )
        click.echo(f"\nConnectivity ({len(report.connectivity)}):")
        for result in report.connectivity:
            if result.reachable:
                click.echo(
                    f"  {result.target}: reachable, serial {result.serial_number} "
                    f"({result.response_time_ms}ms)"
                )
            else:
                click.echo(f"  {result.target}: {result.error}")
        click.echo(f"\nRecommendations ({len(report.recommendations)}):")
        for rec in report.recommendations:
            click.echo(f"  [{_LEVEL_LABELS.get(rec.level, rec.level)}] {rec.message}")
            click.echo(f"      {rec.action}")

    try:
        run_command(ctx.obj, _run)
    except Exception as e:
        print_error(str(e), use_json)
        sys.exit(1)
