"""Discover controllers on the local network.

Broadcasts a discovery request on every interface, retries with
backoff, and falls back to unicast probing of likely addresses.

Usage::

    python examples/discover_devices.py
"""

import asyncio
import logging

from ctrlnet import Client

# Use DEBUG for per-reply and per-probe detail
logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")


async def main() -> None:
    """Discover and list all controllers."""
    async with Client() as client:
        # 5-second listen budget shared by all attempts
        devices = await client.discover(timeout=5.0)

        print(f"Found {len(devices)} controller(s):\n")
        for dev in devices:
            print(f"  Serial:   {dev.serial_number}")
            print(f"  IP:       {dev.configured_ip} / {dev.subnet_mask}")
            print(f"  Gateway:  {dev.gateway}")
            print(f"  MAC:      {dev.mac_address}")
            print(f"  Driver:   {dev.driver_version} ({dev.driver_release_date})")
            if dev.is_nat_mismatch:
                print(f"  Replied from {dev.remote_address}:{dev.remote_port}")
            print()

        # Probe known addresses directly, e.g. across a router
        direct = await client.discover_by_ip(["192.168.1.100", "192.168.1.101"], timeout=1.0)
        print(f"Found {len(direct)} controller(s) by unicast.")


if __name__ == "__main__":
    asyncio.run(main())
