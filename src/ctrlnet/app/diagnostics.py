"""Network diagnostics for troubleshooting controller discovery.

Collects the local interface inventory, probes explicit targets and
stored controllers with a unicast discovery request, and derives
recommendations from what it finds.
"""

from __future__ import annotations

import asyncio
import logging
import platform
import socket
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ctrlnet.app.device import utc_now
from ctrlnet.app.discovery import DiscoveryConfig
from ctrlnet.network.interfaces import list_interfaces
from ctrlnet.services.discovery import (
    DEFAULT_VERSION_ORDER,
    encode_discovery_request,
    validate_discovery_reply,
)
from ctrlnet.services.errors import ControllerBaseError
from ctrlnet.types.enums import InterfaceType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from ctrlnet.app.store import DeviceStore
    from ctrlnet.network.interfaces import NetworkInterface
    from ctrlnet.transport.udp import UDPTransport
    from ctrlnet.types.enums import VersionByteOrder

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NetworkInfo:
    """Host platform, hostname and IPv4 interfaces."""

    platform: str
    hostname: str
    interfaces: list[NetworkInterface]

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "hostname": self.hostname,
            "interfaces": [i.to_dict() for i in self.interfaces],
        }


@dataclass(frozen=True, slots=True)
class ConnectivityResult:
    """Outcome of one unicast discovery probe."""

    target: str
    reachable: bool
    response_time_ms: float | None = None
    serial_number: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "reachable": self.reachable,
            "response_time_ms": self.response_time_ms,
            "serial_number": self.serial_number,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class Recommendation:
    """A troubleshooting hint; *level* is ``error``, ``warning`` or ``info``."""

    level: str
    message: str
    action: str

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level, "message": self.message, "action": self.action}


@dataclass(slots=True)
class DiagnosticsReport:
    """Everything :meth:`NetworkDiagnostics.run` found."""

    platform: str
    hostname: str
    timestamp: datetime
    interfaces: list[NetworkInterface] = field(default_factory=list)
    connectivity: list[ConnectivityResult] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    discovery_config: DiscoveryConfig = field(default_factory=DiscoveryConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-friendly dict."""
        return {
            "platform": self.platform,
            "hostname": self.hostname,
            "timestamp": self.timestamp.isoformat(),
            "interfaces": [i.to_dict() for i in self.interfaces],
            "connectivity": [c.to_dict() for c in self.connectivity],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "discovery_config": self.discovery_config.to_dict(),
        }


def network_info(
    interface_provider: Callable[[], list[NetworkInterface]] = list_interfaces,
) -> NetworkInfo:
    """Describe the local host and its IPv4 interfaces."""
    return NetworkInfo(
        platform=platform.system().lower(),
        hostname=socket.gethostname(),
        interfaces=interface_provider(),
    )


def recommend(
    interfaces: Iterable[NetworkInterface],
    connectivity: Iterable[ConnectivityResult],
) -> list[Recommendation]:
    """Derive troubleshooting hints from interfaces and probe results."""
    usable = [i for i in interfaces if i.type != InterfaceType.LOOPBACK]
    results = list(connectivity)
    hints: list[Recommendation] = []
    if not usable:
        hints.append(
            Recommendation(
                "error",
                "No non-loopback IPv4 interface found",
                "Connect this host to the controller network",
            )
        )
    elif not any(i.type == InterfaceType.ETHERNET for i in usable):
        hints.append(
            Recommendation(
                "warning",
                "No wired ethernet interface found",
                "Controllers are usually wired; broadcasts may not cross a wireless bridge",
            )
        )
    if len(usable) > 1:
        hints.append(
            Recommendation(
                "info",
                f"{len(usable)} interfaces are active",
                "Discovery broadcasts on every interface; use --interface to bind one",
            )
        )
    for result in results:
        if not result.reachable:
            hints.append(
                Recommendation(
                    "warning",
                    f"Controller at {result.target} did not answer",
                    "Check power and cabling, and that the controller is on a local subnet",
                )
            )
    if not results:
        hints.append(
            Recommendation(
                "info",
                "No controllers were tested",
                "Run discovery first, or pass --target with a controller address",
            )
        )
    return hints


class NetworkDiagnostics:
    """Run connectivity checks against explicit and stored controllers.

    :param transport: UDP transport for probes.
    :param store: Optional device store whose records are probed as well.
    :param config: Discovery configuration reported back and used for the
        probe fan-out limit.
    :param probe_timeout: Per-target reply timeout in seconds.
    """

    def __init__(
        self,
        transport: UDPTransport,
        *,
        store: DeviceStore | None = None,
        config: DiscoveryConfig | None = None,
        probe_timeout: float = 1.0,
        interface_provider: Callable[[], list[NetworkInterface]] = list_interfaces,
        version_order: VersionByteOrder = DEFAULT_VERSION_ORDER,
    ) -> None:
        self._transport = transport
        self._store = store
        self._config = config or DiscoveryConfig()
        self._probe_timeout = probe_timeout
        self._interface_provider = interface_provider
        self._version_order = version_order

    async def test_connectivity(self, host: str) -> ConnectivityResult:
        """Send one discovery request to *host* and time the reply."""
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            reply = await self._transport.send_and_receive(
                encode_discovery_request(), host, self._probe_timeout
            )
            decoded = validate_discovery_reply(reply.packet, self._version_order)
        except ControllerBaseError as exc:
            logger.debug("Connectivity test to %s failed: %s", host, exc)
            return ConnectivityResult(target=host, reachable=False, error=str(exc))
        elapsed_ms = round((loop.time() - started) * 1000, 1)
        return ConnectivityResult(
            target=host,
            reachable=True,
            response_time_ms=elapsed_ms,
            serial_number=decoded.serial_number,
        )

    async def run(self, targets: Iterable[str] = ()) -> DiagnosticsReport:
        """Collect interfaces, probe targets and build recommendations.

        :param targets: Extra addresses to probe besides stored controllers.
        """
        info = network_info(self._interface_provider)
        hosts = list(targets)
        if self._store is not None:
            hosts.extend(record.target_host for record in self._store.list())
        hosts = list(dict.fromkeys(hosts))
        logger.info("Running diagnostics against %d target(s)", len(hosts))

        semaphore = asyncio.Semaphore(self._config.unicast_max_concurrency)

        async def bounded(host: str) -> ConnectivityResult:
            async with semaphore:
                return await self.test_connectivity(host)

        results = list(await asyncio.gather(*(bounded(h) for h in hosts)))
        return DiagnosticsReport(
            platform=info.platform,
            hostname=info.hostname,
            timestamp=utc_now(),
            interfaces=info.interfaces,
            connectivity=results,
            recommendations=recommend(info.interfaces, results),
            discovery_config=self._config,
        )
