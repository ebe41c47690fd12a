"""Device control: clock, receiving server and network addressing.

Discovers one controller, synchronizes its clock, points it at an
event receiving server and reads the setting back.

Usage::

    python examples/device_control.py
"""

import asyncio
import datetime

from ctrlnet import Client, ServerConfig

SERVER_IP = "192.168.1.10"
SERVER_PORT = 61000


async def main() -> None:
    """Control the first controller found."""
    async with Client() as client:
        devices = await client.discover(timeout=3.0)
        if not devices:
            print("No controllers found.")
            return
        device = devices[0]
        print(f"Using controller {device.serial_number} at {device.target_host}")

        # Read, then synchronize the clock with local time
        current = await client.get_time(device)
        print(f"Controller time: {current}")
        written = await client.set_time(device, datetime.datetime.now())
        print(f"Clock set to:    {written}")

        # Report events to a receiving server every 10 units
        await client.set_server_config(
            device, ServerConfig(server_ip=SERVER_IP, port=SERVER_PORT, upload_interval=10)
        )
        config = await client.get_server_config(device)
        print(f"Receiving server: {config.server_ip}:{config.port}")
        print(f"Upload enabled:   {config.upload_enabled}")

        # Changing addressing restarts the controller; see NetworkConfig:
        #   await client.set_network_config(device, NetworkConfig(ip, mask, gateway))


if __name__ == "__main__":
    asyncio.run(main())
