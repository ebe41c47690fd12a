"""Local IPv4 interface enumeration and ranking.

Interfaces are enumerated with :func:`psutil.net_if_addrs`.  The type
and priority assigned here only order discovery candidates; they never
exclude an interface.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from dataclasses import dataclass
from typing import Any

import psutil

from ctrlnet.network.address import broadcast_of, network_of
from ctrlnet.types.enums import InterfaceType

logger = logging.getLogger(__name__)

_BASE_PRIORITY: dict[InterfaceType, int] = {
    InterfaceType.ETHERNET: 100,
    InterfaceType.WIFI: 80,
    InterfaceType.UNKNOWN: 50,
    InterfaceType.VIRTUAL: 20,
    InterfaceType.LOOPBACK: 0,
}

# Bonus for names that are usually the primary wired adapter.
_PREFERRED_NAME_BONUS = 10
_PREFERRED_NAME_PREFIXES = (
    "eth0",
    "en0",
    "eno",
    "enp",
    "ethernet",
    "local area connection",
)

_VIRTUAL_MARKERS = (
    "vbox",
    "virtualbox",
    "vmware",
    "vmnet",
    "docker",
    "veth",
    "bridge",
    "br-",
    "virbr",
    "vethernet",
    "hyper-v",
    "tap",
    "tun",
)
_WIFI_MARKERS = ("wifi", "wi-fi", "wlan", "wireless")
_ETHERNET_MARKERS = ("eth", "en", "lan", "local area connection")
_LOOPBACK_NAME = re.compile(r"lo\d*")


@dataclass(frozen=True, slots=True)
class NetworkInterface:
    """An IPv4 address bound to a local interface."""

    name: str
    address: str
    netmask: str
    network: str
    broadcast: str
    mac: str
    type: InterfaceType
    priority: int

    @property
    def prefix_length(self) -> int:
        """CIDR prefix length of :attr:`netmask`."""
        return ipaddress.IPv4Network(f"0.0.0.0/{self.netmask}").prefixlen

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-friendly dict."""
        return {
            "name": self.name,
            "address": self.address,
            "netmask": self.netmask,
            "network": self.network,
            "broadcast": self.broadcast,
            "mac": self.mac,
            "type": self.type.value,
            "priority": self.priority,
        }


def classify_interface(name: str) -> InterfaceType:
    """Classify an interface by name.

    Checks run loopback, virtual, wifi, ethernet in that order so that
    names like ``wlan0`` (contains ``lan``) or ``veth12`` (contains
    ``eth``) are not mistaken for wired adapters.  Only ``lo`` followed by
    digits counts as a loopback name, so ``Local Area Connection`` stays
    wired.
    """
    lowered = name.lower()
    if _LOOPBACK_NAME.fullmatch(lowered) or "loopback" in lowered:
        return InterfaceType.LOOPBACK
    if lowered.startswith("utun") or any(m in lowered for m in _VIRTUAL_MARKERS):
        return InterfaceType.VIRTUAL
    if lowered.startswith("wl") or any(m in lowered for m in _WIFI_MARKERS):
        return InterfaceType.WIFI
    if any(m in lowered for m in _ETHERNET_MARKERS):
        return InterfaceType.ETHERNET
    return InterfaceType.UNKNOWN


def interface_priority(name: str, iface_type: InterfaceType) -> int:
    """Ranking score: higher is tried first."""
    priority = _BASE_PRIORITY[iface_type]
    if iface_type == InterfaceType.ETHERNET and name.lower().startswith(_PREFERRED_NAME_PREFIXES):
        priority += _PREFERRED_NAME_BONUS
    return priority


def make_interface(name: str, address: str, netmask: str, mac: str = "") -> NetworkInterface:
    """Build a :class:`NetworkInterface` with derived fields filled in."""
    iface_type = classify_interface(name)
    return NetworkInterface(
        name=name,
        address=address,
        netmask=netmask,
        network=network_of(address, netmask),
        broadcast=broadcast_of(address, netmask),
        mac=mac,
        type=iface_type,
        priority=interface_priority(name, iface_type),
    )


def list_interfaces() -> list[NetworkInterface]:
    """Enumerate local IPv4 interfaces, highest priority first.

    Addresses in ``127.0.0.0/8`` are skipped unless their interface
    classifies as loopback.
    """
    result: list[NetworkInterface] = []
    for name, addrs in psutil.net_if_addrs().items():
        mac = ""
        for addr in addrs:
            if addr.family == psutil.AF_LINK and addr.address:
                mac = addr.address.replace("-", ":").lower()
                break
        for addr in addrs:
            if addr.family != socket.AF_INET or not addr.netmask:
                continue
            iface = make_interface(name, addr.address, addr.netmask, mac)
            if iface.type != InterfaceType.LOOPBACK and addr.address.startswith("127."):
                logger.debug("Skipping internal address %s on %s", addr.address, name)
                continue
            result.append(iface)
    result.sort(key=lambda i: i.priority, reverse=True)
    logger.debug("Found %d IPv4 interface(s)", len(result))
    return result
