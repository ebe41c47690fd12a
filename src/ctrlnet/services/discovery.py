"""Discovery request and reply payloads (function ``0x94``).

Reply payload layout::

    0-3    configured IP
    4-7    subnet mask
    8-11   gateway
    12-17  MAC address
    18-19  driver version, BCD
    20-23  driver release date, BCD: year-in-century, century, month, day
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from ctrlnet.encoding.bcd import bcd_decode, bcd_encode, bcd_to_iso_date
from ctrlnet.encoding.packet import Packet, encode_packet
from ctrlnet.network.address import (
    bytes_to_ip,
    format_mac,
    ip_to_bytes,
    is_valid_ipv4,
    is_valid_mac,
)
from ctrlnet.services.errors import ReplyValidationError
from ctrlnet.types.enums import FunctionId, VersionByteOrder

# TODO: confirm the driver-version byte order against a physical controller;
# firmware builds in the field have been reported both ways.
DEFAULT_VERSION_ORDER = VersionByteOrder.MAJOR_HIGH

_VERSION_PATTERN = re.compile(r"^(\d{1,2})\.(\d{1,2})$")


def encode_discovery_request(sequence_id: int = 0) -> bytes:
    """Encode the broadcast discovery request (serial ``0``, empty payload)."""
    return encode_packet(FunctionId.DISCOVER, 0, sequence_id=sequence_id)


def decode_driver_version(
    low: int, high: int, order: VersionByteOrder = DEFAULT_VERSION_ORDER
) -> str:
    """Decode the two BCD driver-version bytes to ``"major.minor"``.

    :param low: Payload byte 18.
    :param high: Payload byte 19.
    :param order: Which byte is the major part.
    """
    if order == VersionByteOrder.MAJOR_HIGH:
        major, minor = high, low
    else:
        major, minor = low, high
    return f"{bcd_decode(major)}.{bcd_decode(minor)}"


def encode_driver_version(
    version: str, order: VersionByteOrder = DEFAULT_VERSION_ORDER
) -> tuple[int, int]:
    """Encode ``"major.minor"`` to the ``(byte18, byte19)`` pair."""
    match = _VERSION_PATTERN.match(version)
    if match is None:
        msg = f"Driver version must look like '6.56', got {version!r}"
        raise ValueError(msg)
    major = bcd_encode(int(match.group(1)))
    minor = bcd_encode(int(match.group(2)))
    if order == VersionByteOrder.MAJOR_HIGH:
        return minor, major
    return major, minor


@dataclass(frozen=True, slots=True)
class DiscoveryReply:
    """Decoded discovery reply payload."""

    serial_number: int
    configured_ip: str
    subnet_mask: str
    gateway: str
    mac_address: str
    driver_version: str
    driver_release_date: str

    def encode(self, order: VersionByteOrder = DEFAULT_VERSION_ORDER) -> bytes:
        """Encode as a complete 64-byte discovery reply packet."""
        release = date.fromisoformat(self.driver_release_date)
        version_low, version_high = encode_driver_version(self.driver_version, order)
        payload = bytearray()
        payload.extend(ip_to_bytes(self.configured_ip))
        payload.extend(ip_to_bytes(self.subnet_mask))
        payload.extend(ip_to_bytes(self.gateway))
        payload.extend(bytes.fromhex(self.mac_address.replace(":", "")))
        payload.extend((version_low, version_high))
        payload.extend(
            (
                bcd_encode(release.year % 100),
                bcd_encode(release.year // 100),
                bcd_encode(release.month),
                bcd_encode(release.day),
            )
        )
        return encode_packet(FunctionId.DISCOVER, self.serial_number, bytes(payload))

    @classmethod
    def decode(
        cls, packet: Packet, order: VersionByteOrder = DEFAULT_VERSION_ORDER
    ) -> DiscoveryReply:
        """Decode the reply fields from a discovery packet.

        :param packet: A decoded packet with function ``DISCOVER``.
        :param order: Driver-version byte order.
        :returns: Decoded :class:`DiscoveryReply`.
        """
        data = packet.payload
        return cls(
            serial_number=packet.serial_number,
            configured_ip=bytes_to_ip(data[0:4]),
            subnet_mask=bytes_to_ip(data[4:8]),
            gateway=bytes_to_ip(data[8:12]),
            mac_address=format_mac(data[12:18]),
            driver_version=decode_driver_version(data[18], data[19], order),
            driver_release_date=bcd_to_iso_date(data[21], data[20], data[22], data[23]),
        )


def validate_discovery_reply(
    packet: Packet, order: VersionByteOrder = DEFAULT_VERSION_ORDER
) -> DiscoveryReply:
    """Decode and validate a candidate discovery reply.

    :param packet: Packet received during discovery.
    :param order: Driver-version byte order.
    :returns: The validated :class:`DiscoveryReply`.
    :raises ReplyValidationError: If the function id, serial number,
        addresses or MAC address are not acceptable.
    """
    if packet.function_id != FunctionId.DISCOVER:
        msg = f"Unexpected function {packet.function_id:#04x} in discovery reply"
        raise ReplyValidationError(msg)
    if packet.serial_number == 0:
        msg = "Discovery reply has serial number 0"
        raise ReplyValidationError(msg)
    reply = DiscoveryReply.decode(packet, order)
    for label, value in (
        ("configured IP", reply.configured_ip),
        ("subnet mask", reply.subnet_mask),
        ("gateway", reply.gateway),
    ):
        if not is_valid_ipv4(value):
            msg = f"Invalid {label} {value!r}"
            raise ReplyValidationError(msg, serial_number=reply.serial_number)
    if not is_valid_mac(reply.mac_address):
        msg = f"Invalid MAC address {reply.mac_address!r}"
        raise ReplyValidationError(msg, serial_number=reply.serial_number)
    return reply
