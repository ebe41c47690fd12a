"""Tests for discovery request/reply payloads and validation."""

import pytest

from ctrlnet.encoding.packet import decode_packet, encode_packet
from ctrlnet.services.discovery import (
    DEFAULT_VERSION_ORDER,
    DiscoveryReply,
    decode_driver_version,
    encode_discovery_request,
    encode_driver_version,
    validate_discovery_reply,
)
from ctrlnet.services.errors import ReplyValidationError
from ctrlnet.types.enums import FunctionId, VersionByteOrder
from tests.helpers import SAMPLE_REPLY


class TestDiscoveryRequest:
    def test_layout(self):
        data = encode_discovery_request()
        assert len(data) == 64
        assert data[0] == 0x17
        assert data[1] == 0x94
        assert data[4:8] == bytes(4)
        assert data[8:40] == bytes(32)


class TestDriverVersion:
    def test_default_order_is_major_high(self):
        assert DEFAULT_VERSION_ORDER == VersionByteOrder.MAJOR_HIGH

    def test_major_high(self):
        # Byte 18 = 0x56, byte 19 = 0x06
        assert decode_driver_version(0x56, 0x06) == "6.56"

    def test_major_low(self):
        assert decode_driver_version(0x56, 0x06, VersionByteOrder.MAJOR_LOW) == "56.6"

    def test_minor_not_padded(self):
        assert decode_driver_version(0x05, 0x06) == "6.5"

    def test_encode_major_high(self):
        assert encode_driver_version("6.56") == (0x56, 0x06)

    def test_encode_major_low(self):
        assert encode_driver_version("6.56", VersionByteOrder.MAJOR_LOW) == (0x06, 0x56)

    def test_encode_invalid(self):
        with pytest.raises(ValueError, match="Driver version"):
            encode_driver_version("6.5.1")


class TestDiscoveryReply:
    def test_payload_layout(self):
        data = SAMPLE_REPLY.encode()
        payload = data[8:40]
        assert data[1] == FunctionId.DISCOVER
        assert payload[0:4] == bytes([192, 168, 1, 100])
        assert payload[4:8] == bytes([255, 255, 255, 0])
        assert payload[8:12] == bytes([192, 168, 1, 1])
        assert payload[12:18] == bytes.fromhex("0057192b4c2d")
        assert payload[18:20] == b"\x56\x06"
        # year-in-century, century, month, day
        assert payload[20:24] == b"\x19\x20\x08\x15"

    def test_decode(self):
        reply = DiscoveryReply.decode(decode_packet(SAMPLE_REPLY.encode()))
        assert reply == SAMPLE_REPLY

    def test_decode_swapped_version_order(self):
        packet = decode_packet(SAMPLE_REPLY.encode())
        reply = DiscoveryReply.decode(packet, VersionByteOrder.MAJOR_LOW)
        assert reply.driver_version == "56.6"


class TestValidateDiscoveryReply:
    def test_valid(self):
        reply = validate_discovery_reply(decode_packet(SAMPLE_REPLY.encode()))
        assert reply.serial_number == SAMPLE_REPLY.serial_number
        assert reply.mac_address == "00:57:19:2b:4c:2d"

    def test_wrong_function(self):
        packet = decode_packet(encode_packet(FunctionId.GET_TIME, 5))
        with pytest.raises(ReplyValidationError, match="Unexpected function"):
            validate_discovery_reply(packet)

    def test_zero_serial(self):
        data = bytearray(SAMPLE_REPLY.encode())
        data[4:8] = bytes(4)
        with pytest.raises(ReplyValidationError, match="serial number 0"):
            validate_discovery_reply(decode_packet(bytes(data)))

    def test_is_value_error(self):
        packet = decode_packet(encode_packet(FunctionId.SET_TIME, 5))
        with pytest.raises(ValueError):
            validate_discovery_reply(packet)
