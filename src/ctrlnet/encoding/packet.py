"""Fixed 64-byte controller packet encoding and decoding.

Wire layout (integers little-endian)::

    0   type           1  constant 0x17
    1   function_id    1
    2   reserved       2
    4   serial_number  4
    8   payload       32  zero-padded
    40  sequence_id    4
    44  extended      20  reserved, zero
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from ctrlnet.services.errors import MalformedPacketError, PayloadTooLargeError

PACKET_TYPE = 0x17
PACKET_SIZE = 64
PAYLOAD_SIZE = 32
EXTENDED_SIZE = 20
CONTROLLER_PORT = 60000

_HEADER = struct.Struct("<BBHI")  # type, function, reserved, serial
_SEQUENCE = struct.Struct("<I")
_PAYLOAD_OFFSET = _HEADER.size  # 8
_SEQUENCE_OFFSET = _PAYLOAD_OFFSET + PAYLOAD_SIZE  # 40
_EXTENDED_OFFSET = _SEQUENCE_OFFSET + _SEQUENCE.size  # 44


@dataclass(frozen=True, slots=True)
class Packet:
    """Decoded controller packet."""

    function_id: int
    serial_number: int = 0
    payload: bytes = bytes(PAYLOAD_SIZE)
    sequence_id: int = 0
    reserved: int = 0
    extended: bytes = bytes(EXTENDED_SIZE)

    def encode(self) -> bytes:
        """Encode to the 64-byte wire format."""
        return encode_packet(
            self.function_id,
            self.serial_number,
            self.payload,
            sequence_id=self.sequence_id,
        )


def encode_packet(
    function_id: int,
    serial_number: int = 0,
    payload: bytes | bytearray = b"",
    *,
    sequence_id: int = 0,
) -> bytes:
    """Encode a complete 64-byte controller packet.

    Uses a single pre-sized zeroed buffer; the reserved and extended
    fields stay zero.

    :param function_id: Function (opcode) byte.
    :param serial_number: Target controller serial, ``0`` for broadcast.
    :param payload: Up to 32 payload bytes; shorter payloads are zero-padded.
    :param sequence_id: Optional request sequence number.
    :returns: The 64-byte packet.
    :raises PayloadTooLargeError: If *payload* exceeds 32 bytes.
    """
    if len(payload) > PAYLOAD_SIZE:
        raise PayloadTooLargeError(len(payload), PAYLOAD_SIZE)
    buf = bytearray(PACKET_SIZE)
    _HEADER.pack_into(buf, 0, PACKET_TYPE, function_id & 0xFF, 0, serial_number & 0xFFFFFFFF)
    buf[_PAYLOAD_OFFSET : _PAYLOAD_OFFSET + len(payload)] = payload
    _SEQUENCE.pack_into(buf, _SEQUENCE_OFFSET, sequence_id & 0xFFFFFFFF)
    return bytes(buf)


def decode_packet(data: bytes | bytearray | memoryview) -> Packet:
    """Decode a controller packet from a raw UDP datagram.

    :param data: Raw datagram bytes.
    :returns: Decoded :class:`Packet`.
    :raises MalformedPacketError: If *data* is not exactly 64 bytes or the
        type byte is not ``0x17``.
    """
    if len(data) != PACKET_SIZE:
        msg = f"Invalid packet size: {len(data)}, expected {PACKET_SIZE}"
        raise MalformedPacketError(msg)
    packet_type, function_id, reserved, serial_number = _HEADER.unpack_from(data, 0)
    if packet_type != PACKET_TYPE:
        msg = f"Invalid packet type: {packet_type:#04x}"
        raise MalformedPacketError(msg)
    (sequence_id,) = _SEQUENCE.unpack_from(data, _SEQUENCE_OFFSET)
    return Packet(
        function_id=function_id,
        serial_number=serial_number,
        payload=bytes(data[_PAYLOAD_OFFSET:_SEQUENCE_OFFSET]),
        sequence_id=sequence_id,
        reserved=reserved,
        extended=bytes(data[_EXTENDED_OFFSET:PACKET_SIZE]),
    )
