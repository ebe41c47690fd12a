"""ctrlnet: asyncio client for UDP network access controllers.

Typical usage::

    from ctrlnet import Client

    async with Client() as client:
        devices = await client.discover(timeout=5.0)
"""

__version__ = "0.3.0"

from ctrlnet.app.device import DeviceRecord
from ctrlnet.app.diagnostics import DiagnosticsReport, NetworkDiagnostics
from ctrlnet.app.directory import DeviceDirectory
from ctrlnet.app.discovery import (
    DedupCache,
    DiscoveryConfig,
    DiscoveryEngine,
    DiscoveryReport,
    DiscoveryState,
)
from ctrlnet.app.store import DeviceStore, JsonDeviceStore, MemoryDeviceStore
from ctrlnet.client import Client, ClientConfig
from ctrlnet.serialization.json import json_default
from ctrlnet.services.device_mgmt import NetworkConfig, ServerConfig
from ctrlnet.services.errors import (
    ConfigRejectedError,
    ControllerBaseError,
    ControllerSocketError,
    ControllerTimeoutError,
    DeviceStoreError,
    MalformedPacketError,
    NoNetworkInterfacesError,
    PayloadTooLargeError,
    ReplyValidationError,
    UnexpectedResponseError,
    UnknownDeviceError,
)
from ctrlnet.transport.udp import UDPTransport

__all__ = [
    "Client",
    "ClientConfig",
    "ConfigRejectedError",
    "ControllerBaseError",
    "ControllerSocketError",
    "ControllerTimeoutError",
    "DedupCache",
    "DeviceDirectory",
    "DeviceRecord",
    "DeviceStore",
    "DeviceStoreError",
    "DiagnosticsReport",
    "DiscoveryConfig",
    "DiscoveryEngine",
    "DiscoveryReport",
    "DiscoveryState",
    "JsonDeviceStore",
    "MalformedPacketError",
    "MemoryDeviceStore",
    "NetworkConfig",
    "NetworkDiagnostics",
    "NoNetworkInterfacesError",
    "PayloadTooLargeError",
    "ReplyValidationError",
    "ServerConfig",
    "UDPTransport",
    "UnexpectedResponseError",
    "UnknownDeviceError",
    "__version__",
    "json_default",
]
