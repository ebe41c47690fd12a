"""Discovery, device operations and persistence for controllers.

Public API:

- :class:`DiscoveryEngine` with :class:`DiscoveryConfig` -- broadcast
  discovery with retries and unicast fallback.
- :class:`DeviceDirectory` -- clock, receiving-server and addressing
  operations on one controller.
- :class:`DeviceRecord` -- a discovered controller.
"""

from ctrlnet.app.device import DeviceRecord
from ctrlnet.app.directory import DeviceDirectory
from ctrlnet.app.discovery import DedupCache, DiscoveryConfig, DiscoveryEngine

__all__ = ["DedupCache", "DeviceDirectory", "DeviceRecord", "DiscoveryConfig", "DiscoveryEngine"]
