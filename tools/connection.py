"""Async bridge between Click (sync) and the controller Client (async)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from ctrlnet.app.device import DeviceRecord
from ctrlnet.app.store import JsonDeviceStore
from ctrlnet.client import Client, ClientConfig
from tools.parsers import adhoc_record

T = TypeVar("T")


def make_client(obj: dict[str, Any]) -> Client:
    """Build a :class:`Client` from the global CLI options.

    Args:
        obj: The Click context object filled in by the ``cli`` group.

    Returns:
        A client persisting to the ``--store`` JSON file.
    """
    config = ClientConfig(interface=obj["interface"], port=obj["port"])
    return Client(config, store=JsonDeviceStore(obj["store"]))


def run_command(
    obj: dict[str, Any],
    coro_factory: Callable[[Client], Coroutine[Any, Any, T]],
) -> T:
    """Create a client and run a coroutine with it.

    This bridges Click's synchronous world with the async Client API.

    Args:
        obj: The Click context object holding the global options.
        coro_factory: Callable that receives a Client and returns
            a coroutine to execute.

    Returns:
        The return value of the coroutine.
    """

    async def _run() -> T:
        async with make_client(obj) as client:
            return await coro_factory(client)

    return asyncio.run(_run())


def resolve_device(client: Client, serial: int, host: str | None) -> DeviceRecord:
    """Return the stored record for *serial*, or an ad-hoc one aimed at *host*.

    Raises:
        UnknownDeviceError: If *host* is not given and *serial* is not stored.
    """
    if host is not None:
        return adhoc_record(serial, host)
    return client.get_device(serial)
