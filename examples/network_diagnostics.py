"""Troubleshoot discovery with network diagnostics.

Lists local interfaces, probes a controller address, prints
recommendations, and shows a per-phase discovery report.

Usage::

    python examples/network_diagnostics.py
"""

import asyncio
import dataclasses

from ctrlnet import Client

TARGET = "192.168.1.100"


async def main() -> None:
    """Run diagnostics and a reported discovery."""
    async with Client() as client:
        report = await client.diagnose([TARGET])
        print(f"{report.hostname} ({report.platform})")
        for iface in report.interfaces:
            address = f"{iface.address}/{iface.prefix_length}"
            print(f"  {iface.name:<12} {iface.type.value:<9} {address}")
        for result in report.connectivity:
            status = f"{result.response_time_ms}ms" if result.reachable else result.error
            print(f"  {result.target}: {status}")
        for rec in report.recommendations:
            print(f"  [{rec.level}] {rec.message}: {rec.action}")

        # Broadcast only, with a constant one-second delay between attempts
        config = dataclasses.replace(
            client.config.discovery, enable_unicast_fallback=False, exponential_backoff=False
        )
        outcome = await client.discover_with_report(timeout=3.0, config=config)
        print(
            f"\n{len(outcome.devices)} controller(s) after {outcome.attempts} attempt(s), "
            f"{outcome.rejected_replies} rejected reply(s), {outcome.elapsed:.2f}s"
        )


if __name__ == "__main__":
    asyncio.run(main())
