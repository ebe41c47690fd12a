"""Output formatting for the controller CLI.

Supports table (human-readable) and JSON output modes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click
import orjson

from ctrlnet.serialization.json import json_default

if TYPE_CHECKING:
    from ctrlnet.app.device import DeviceRecord

DEVICE_HEADERS = ["Serial", "IP", "Source", "MAC", "Driver", "Released", "Last seen"]


def print_table(
    headers: list[str],
    rows: list[list[Any]],
) -> None:
    """Print aligned columns with separator lines."""
    str_rows = [[str(v) for v in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in str_rows:
        for i, val in enumerate(row):
            if i < len(widths):
                widths[i] = max(widths[i], len(val))

    click.echo("  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
    click.echo("  ".join("-" * w for w in widths))
    for row in str_rows:
        line = "  ".join(
            (row[i] if i < len(row) else "").ljust(widths[i]) for i in range(len(headers))
        )
        click.echo(line.rstrip())


def print_json(data: Any) -> None:
    """Print data as indented JSON; library types go through ``to_dict()``."""
    options = orjson.OPT_INDENT_2 | orjson.OPT_PASSTHROUGH_DATACLASS
    click.echo(orjson.dumps(data, default=json_default, option=options).decode())


def print_error(message: str, use_json: bool = False) -> None:
    """Print an error message, respecting output mode."""
    if use_json:
        click.echo(orjson.dumps({"error": message}).decode())
    else:
        click.echo(f"Error: {message}", err=True)


def print_kv(pairs: list[tuple[str, Any]]) -> None:
    """Print key-value pairs aligned on the colon."""
    if not pairs:
        return
    max_key = max(len(k) for k, _ in pairs)
    for key, value in pairs:
        click.echo(f"  {key.ljust(max_key)}  {value}")


def device_row(record: DeviceRecord) -> list[str]:
    """One table row for :data:`DEVICE_HEADERS`."""
    source = f"{record.remote_address}:{record.remote_port}"
    if record.is_nat_mismatch:
        source += " (NAT)"
    last_seen = record.last_seen.strftime("%Y-%m-%d %H:%M:%S") if record.last_seen else "-"
    return [
        str(record.serial_number),
        record.configured_ip,
        source,
        record.mac_address,
        record.driver_version,
        record.driver_release_date,
        last_seen,
    ]


def print_devices(records: list[DeviceRecord], use_json: bool) -> None:
    """Print controllers as a table or a ``{"devices": [...]}`` document."""
    if use_json:
        print_json({"devices": records})
        return
    if not records:
        click.echo("No controllers found.")
        return
    click.echo(f"Found {len(records)} controller(s):\n")
    print_table(DEVICE_HEADERS, [device_row(r) for r in records])
