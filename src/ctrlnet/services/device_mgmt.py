"""Device management payloads: clock, receiving server, network addressing.

SetTime (``0x30``) / GetTime (``0x32``), SetReceivingServer (``0x90``) /
GetReceivingServer (``0x92``) and SetNetworkConfig (``0x96``).
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime

from ctrlnet.encoding.bcd import bcd_to_datetime, datetime_to_bcd
from ctrlnet.network.address import bytes_to_ip, ip_to_bytes
from ctrlnet.services.errors import MalformedPacketError

# Trailer the controller requires before accepting new addressing.
NETWORK_CONFIG_MAGIC = b"\x55\xaa\xaa\x55"

# Ack byte (payload[0]) of an accepted SetReceivingServer.
SERVER_CONFIG_ACK = 0x01

# Upload interval values that mean "periodic upload off".
UPLOAD_DISABLED_INTERVALS = frozenset({0x00, 0xFF})

_PORT = struct.Struct("<H")


def encode_time_payload(when: datetime) -> bytes:
    """SetTime payload: seven BCD bytes, century first."""
    return datetime_to_bcd(when)


def decode_time_payload(payload: bytes) -> datetime:
    """Decode the GetTime reply payload.

    :raises MalformedPacketError: If the BCD fields do not form a valid
        calendar date and time.
    """
    return bcd_to_datetime(payload)


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Upstream event receiving server configured on a controller.

    ::

        0-3  server IPv4
        4-5  UDP port, little-endian
        6    upload interval (0 or 0xFF disables periodic upload)
    """

    server_ip: str
    port: int
    upload_interval: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 0xFFFF:
            msg = f"Port must be 0-65535, got {self.port}"
            raise ValueError(msg)
        if not 0 <= self.upload_interval <= 0xFF:
            msg = f"Upload interval must be 0-255, got {self.upload_interval}"
            raise ValueError(msg)

    @property
    def upload_enabled(self) -> bool:
        """Whether the controller pushes records periodically."""
        return self.upload_interval not in UPLOAD_DISABLED_INTERVALS

    def encode(self) -> bytes:
        return ip_to_bytes(self.server_ip) + _PORT.pack(self.port) + bytes((self.upload_interval,))

    @classmethod
    def decode(cls, payload: bytes) -> ServerConfig:
        if len(payload) < 7:
            msg = f"Receiving-server payload too short: {len(payload)} bytes"
            raise MalformedPacketError(msg)
        (port,) = _PORT.unpack_from(payload, 4)
        return cls(server_ip=bytes_to_ip(payload[0:4]), port=port, upload_interval=payload[6])

    def to_dict(self) -> dict[str, object]:
        """Convert to JSON-friendly dict."""
        return {
            "server_ip": self.server_ip,
            "port": self.port,
            "upload_interval": self.upload_interval,
            "upload_enabled": self.upload_enabled,
        }


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    """New IPv4 addressing pushed to a controller.

    The controller restarts after accepting it and usually sends no reply.
    """

    ip: str
    subnet_mask: str
    gateway: str

    def encode(self) -> bytes:
        """IP, mask, gateway, then the ``55 AA AA 55`` trailer (16 bytes)."""
        return (
            ip_to_bytes(self.ip)
            + ip_to_bytes(self.subnet_mask)
            + ip_to_bytes(self.gateway)
            + NETWORK_CONFIG_MAGIC
        )

    @classmethod
    def decode(cls, payload: bytes) -> NetworkConfig:
        if payload[12:16] != NETWORK_CONFIG_MAGIC:
            msg = "Network configuration payload is missing the 55 AA AA 55 trailer"
            raise MalformedPacketError(msg)
        return cls(
            ip=bytes_to_ip(payload[0:4]),
            subnet_mask=bytes_to_ip(payload[4:8]),
            gateway=bytes_to_ip(payload[8:12]),
        )
