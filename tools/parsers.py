"""Input parsing utilities for the controller CLI.

Handles serial numbers, IPv4 address lists and timestamps.  Each parser
raises :class:`ValueError`; the ``*_option`` wrappers turn that into a
:class:`click.BadParameter` for use as Click callbacks.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import click

from ctrlnet.app.device import DeviceRecord
from ctrlnet.encoding.packet import CONTROLLER_PORT
from ctrlnet.network.address import is_valid_ipv4

_MAX_SERIAL = 0xFFFFFFFF


def parse_serial(text: str) -> int:
    """Parse a controller serial number.

    Accepts decimal (``423187757``) or hex with a ``0x`` prefix.

    Raises:
        ValueError: If the text is not a non-zero 32-bit unsigned integer.
    """
    value = int(text.strip(), 0)
    if not 0 < value <= _MAX_SERIAL:
        msg = f"Serial number must be 1-{_MAX_SERIAL}, got {value}"
        raise ValueError(msg)
    return value


def parse_targets(values: tuple[str, ...] | list[str]) -> list[str]:
    """Flatten repeated and comma-separated IPv4 addresses.

    ``("10.0.0.5,10.0.0.6", "10.0.0.7")`` -> three addresses, in order,
    duplicates removed.

    Raises:
        ValueError: If any entry is not a dotted IPv4 address.
    """
    hosts: list[str] = []
    for value in values:
        for part in value.split(","):
            host = part.strip()
            if not host:
                continue
            if not is_valid_ipv4(host):
                msg = f"Invalid IPv4 address: {host!r}"
                raise ValueError(msg)
            hosts.append(host)
    return list(dict.fromkeys(hosts))


def parse_datetime(text: str) -> datetime:
    """Parse an ISO 8601 timestamp; a timezone offset is dropped.

    The controller clock has no timezone, so aware values are taken at
    face value in their own offset.

    Raises:
        ValueError: If the text is not ISO 8601.
    """
    return datetime.fromisoformat(text.strip()).replace(tzinfo=None)


def adhoc_record(serial_number: int, host: str) -> DeviceRecord:
    """Build a minimal record for a controller that is not in the store."""
    return DeviceRecord(
        serial_number=serial_number,
        configured_ip=host,
        subnet_mask="",
        gateway="",
        mac_address="",
        driver_version="",
        driver_release_date="",
        remote_address=host,
        remote_port=CONTROLLER_PORT,
    )


def serial_option(ctx: click.Context, param: click.Parameter, value: Any) -> Any:
    """Click callback wrapping :func:`parse_serial`."""
    if value is None:
        return None
    try:
        return parse_serial(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def targets_option(ctx: click.Context, param: click.Parameter, value: Any) -> list[str]:
    """Click callback wrapping :func:`parse_targets`."""
    try:
        return parse_targets(value or ())
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def ipv4_option(ctx: click.Context, param: click.Parameter, value: Any) -> Any:
    """Click callback rejecting anything but a dotted IPv4 address."""
    if value is not None and not is_valid_ipv4(value):
        msg = f"Invalid IPv4 address: {value!r}"
        raise click.BadParameter(msg)
    return value


def datetime_option(ctx: click.Context, param: click.Parameter, value: Any) -> Any:
    """Click callback wrapping :func:`parse_datetime`."""
    if value is None:
        return None
    try:
        return parse_datetime(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
