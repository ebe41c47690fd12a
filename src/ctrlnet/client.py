"""Simplified controller client combining discovery and device operations.

Provides a single :class:`Client` async context manager for common use
cases.  For finer control (shared dedup caches, custom interface
providers, several engines on one store), use
:class:`~ctrlnet.app.discovery.DiscoveryEngine` and
:class:`~ctrlnet.app.directory.DeviceDirectory` directly.

Typical usage::

    from ctrlnet import Client

    async with Client() as client:
        devices = await client.discover(timeout=5.0)
        for device in devices:
            print(device.serial_number, await client.get_time(device))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ctrlnet.app.device import DeviceRecord
from ctrlnet.app.diagnostics import NetworkDiagnostics, network_info
from ctrlnet.app.directory import DeviceDirectory
from ctrlnet.app.discovery import DedupCache, DiscoveryConfig, DiscoveryEngine
from ctrlnet.app.store import MemoryDeviceStore
from ctrlnet.encoding.packet import CONTROLLER_PORT
from ctrlnet.network.interfaces import list_interfaces
from ctrlnet.services.discovery import DEFAULT_VERSION_ORDER
from ctrlnet.services.errors import UnknownDeviceError
from ctrlnet.transport.udp import UDPTransport

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime
    from types import TracebackType

    from ctrlnet.app.diagnostics import DiagnosticsReport, NetworkInfo
    from ctrlnet.app.discovery import DiscoveryReport
    from ctrlnet.app.store import DeviceStore
    from ctrlnet.network.interfaces import NetworkInterface
    from ctrlnet.services.device_mgmt import NetworkConfig, ServerConfig
    from ctrlnet.types.enums import VersionByteOrder

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Configuration for :class:`Client`.

    :param interface: Local IP address to bind sockets to.
    :param port: Controller UDP port.
    :param request_timeout_ms: Reply timeout for device operations.
    :param network_config_timeout_ms: How long to wait for the optional
        reply to a network configuration change.
    :param discovery: Default discovery configuration.
    """

    interface: str = "0.0.0.0"
    port: int = CONTROLLER_PORT
    request_timeout_ms: int = 5000
    network_config_timeout_ms: int = 1000
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)

    def __post_init__(self) -> None:
        if not 0 < self.port <= 0xFFFF:
            msg = f"port must be 1-65535, got {self.port}"
            raise ValueError(msg)
        if self.request_timeout_ms <= 0:
            msg = f"request_timeout_ms must be > 0, got {self.request_timeout_ms}"
            raise ValueError(msg)
        if self.network_config_timeout_ms <= 0:
            msg = f"network_config_timeout_ms must be > 0, got {self.network_config_timeout_ms}"
            raise ValueError(msg)


class Client:
    """Discover controllers and operate on them.

    Devices may be addressed by :class:`DeviceRecord` or by serial
    number; serial numbers are resolved through the device store.

    Usage::

        async with Client(store=JsonDeviceStore("controllers.json")) as client:
            await client.discover()
            await client.set_time(423187757)
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        store: DeviceStore | None = None,
        transport: UDPTransport | None = None,
        interface_provider: Callable[[], list[NetworkInterface]] = list_interfaces,
        version_order: VersionByteOrder = DEFAULT_VERSION_ORDER,
    ) -> None:
        """Create a client.

        :param config: Client configuration; defaults apply when omitted.
        :param store: Device store.  An in-memory store is used by default.
        :param transport: Transport override, mainly for tests.
        :param interface_provider: Source of local interfaces.
        :param version_order: Driver-version byte order for discovery replies.
        """
        self._config = config or ClientConfig()
        self._store = store if store is not None else MemoryDeviceStore()
        self._transport = transport or UDPTransport(self._config.interface, self._config.port)
        self._interface_provider = interface_provider
        self._engine = DiscoveryEngine(
            self._transport,
            config=self._config.discovery,
            cache=DedupCache(),
            store=self._store,
            interface_provider=interface_provider,
            version_order=version_order,
        )
        self._directory = DeviceDirectory(
            self._transport,
            store=self._store,
            request_timeout=self._config.request_timeout_ms / 1000,
            network_config_timeout=self._config.network_config_timeout_ms / 1000,
        )
        self._diagnostics = NetworkDiagnostics(
            self._transport,
            store=self._store,
            config=self._config.discovery,
            interface_provider=interface_provider,
            version_order=version_order,
        )

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        return None

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def store(self) -> DeviceStore:
        return self._store

    @property
    def engine(self) -> DiscoveryEngine:
        return self._engine

    @property
    def directory(self) -> DeviceDirectory:
        return self._directory

    # --- Discovery ---

    async def discover(
        self, timeout: float = 5.0, config: DiscoveryConfig | None = None
    ) -> list[DeviceRecord]:
        """Discover controllers; see :meth:`DiscoveryEngine.discover`."""
        return await self._engine.discover(timeout, config)

    async def discover_with_report(
        self, timeout: float = 5.0, config: DiscoveryConfig | None = None
    ) -> DiscoveryReport:
        return await self._engine.discover_with_report(timeout, config)

    async def discover_by_ip(
        self, hosts: Iterable[str], timeout: float = 2.0
    ) -> list[DeviceRecord]:
        """Probe explicit addresses; see :meth:`DiscoveryEngine.discover_by_ip`."""
        return await self._engine.discover_by_ip(hosts, timeout)

    # --- Device store ---

    def devices(self) -> list[DeviceRecord]:
        """All controllers known to the store."""
        return self._store.list()

    def get_device(self, serial_number: int) -> DeviceRecord:
        """Look up a stored controller.

        :raises UnknownDeviceError: If the serial number is not stored.
        """
        record = self._store.get(serial_number)
        if record is None:
            raise UnknownDeviceError(serial_number)
        return record

    def forget(self, serial_number: int) -> bool:
        """Remove a controller from the store."""
        return self._store.remove(serial_number)

    def _resolve(self, device: DeviceRecord | int) -> DeviceRecord:
        if isinstance(device, DeviceRecord):
            return device
        return self.get_device(device)

    # --- Device operations ---

    async def get_time(self, device: DeviceRecord | int) -> datetime:
        return await self._directory.get_time(self._resolve(device))

    async def set_time(self, device: DeviceRecord | int, when: datetime | None = None) -> datetime:
        return await self._directory.set_time(self._resolve(device), when)

    async def get_server_config(self, device: DeviceRecord | int) -> ServerConfig:
        return await self._directory.get_server_config(self._resolve(device))

    async def set_server_config(
        self, device: DeviceRecord | int, config: ServerConfig
    ) -> ServerConfig:
        return await self._directory.set_server_config(self._resolve(device), config)

    async def set_network_config(
        self, device: DeviceRecord | int, config: NetworkConfig
    ) -> DeviceRecord:
        return await self._directory.set_network_config(self._resolve(device), config)

    # --- Diagnostics ---

    def network_info(self) -> NetworkInfo:
        return network_info(self._interface_provider)

    async def diagnose(self, targets: Iterable[str] = ()) -> DiagnosticsReport:
        """Run network diagnostics against *targets* and stored controllers."""
        return await self._diagnostics.run(targets)
