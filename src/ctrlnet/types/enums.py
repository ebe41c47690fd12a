"""Enumerations shared across the controller protocol stack."""

from __future__ import annotations

from enum import Enum, IntEnum


class FunctionId(IntEnum):
    """Function (opcode) byte of a controller packet.

    Only the operations the library implements are listed; the door,
    privilege and record opcodes of the wire protocol are not modelled.
    """

    SET_TIME = 0x30
    GET_TIME = 0x32
    SET_RECEIVING_SERVER = 0x90
    GET_RECEIVING_SERVER = 0x92
    DISCOVER = 0x94
    SET_NETWORK_CONFIG = 0x96


class InterfaceType(str, Enum):
    """Coarse classification of a local network interface."""

    ETHERNET = "ethernet"
    WIFI = "wifi"
    VIRTUAL = "virtual"
    LOOPBACK = "loopback"
    UNKNOWN = "unknown"


class VersionByteOrder(Enum):
    """Which byte of the 2-byte BCD driver-version field is the major part.

    ``MAJOR_HIGH``: byte 19 of the payload is major, byte 18 is minor
    (``56 06`` reads as ``6.56``).  ``MAJOR_LOW`` is the swapped reading.
    """

    MAJOR_HIGH = "major-high"
    MAJOR_LOW = "major-low"
