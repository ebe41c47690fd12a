"""IPv4 and MAC address helpers for the controller wire format."""

from __future__ import annotations

import ipaddress
import re

_MAC_PATTERN = re.compile(r"^[0-9a-f]{2}(:[0-9a-f]{2}){5}$", re.IGNORECASE)

GLOBAL_BROADCAST = "255.255.255.255"


def ip_to_bytes(host: str) -> bytes:
    """Encode a dotted IPv4 address to 4 bytes.

    :raises ValueError: If *host* is not a valid dotted IPv4 address.
    """
    return ipaddress.IPv4Address(host).packed


def bytes_to_ip(data: bytes | bytearray | memoryview) -> str:
    """Decode 4 bytes to a dotted IPv4 string."""
    return f"{data[0]}.{data[1]}.{data[2]}.{data[3]}"


def is_valid_ipv4(text: str) -> bool:
    """True if *text* is a dotted-quad IPv4 address."""
    try:
        ipaddress.IPv4Address(text)
    except ValueError:
        return False
    return True


def format_mac(data: bytes | bytearray | memoryview) -> str:
    """Format 6 bytes as lower-case colon-separated hex."""
    return ":".join(f"{b:02x}" for b in bytes(data[:6]))


def is_valid_mac(text: str) -> bool:
    """True if *text* is in ``xx:xx:xx:xx:xx:xx`` form."""
    return bool(_MAC_PATTERN.match(text))


def network_of(ip: str, mask: str) -> str:
    """Network address: per-octet ``ip AND mask``."""
    return bytes_to_ip(bytes(a & m for a, m in zip(ip_to_bytes(ip), ip_to_bytes(mask))))


def broadcast_of(ip: str, mask: str) -> str:
    """Directed broadcast address: per-octet ``ip OR (255 - mask)``."""
    return bytes_to_ip(
        bytes(a | (255 - m) for a, m in zip(ip_to_bytes(ip), ip_to_bytes(mask)))
    )
