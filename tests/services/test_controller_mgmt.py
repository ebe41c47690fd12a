"""Tests for clock, receiving-server and network configuration payloads."""

from datetime import datetime

import pytest

from ctrlnet.services.device_mgmt import (
    NETWORK_CONFIG_MAGIC,
    NetworkConfig,
    ServerConfig,
    decode_time_payload,
    encode_time_payload,
)
from ctrlnet.services.errors import MalformedPacketError


class TestTimePayload:
    def test_round_trip(self):
        when = datetime(2024, 6, 1, 8, 15, 30)
        assert decode_time_payload(encode_time_payload(when) + bytes(25)) == when

    def test_century_first(self):
        assert encode_time_payload(datetime(2024, 6, 1, 8, 15, 30))[:2] == b"\x20\x24"

    def test_invalid_reply(self):
        with pytest.raises(MalformedPacketError):
            decode_time_payload(bytes(32))


class TestServerConfig:
    def test_encode(self):
        config = ServerConfig(server_ip="192.168.2.100", port=9001, upload_interval=30)
        assert config.encode() == bytes([192, 168, 2, 100, 0x29, 0x23, 30])

    def test_decode(self):
        payload = bytes([192, 168, 2, 100, 0x29, 0x23, 30]) + bytes(25)
        config = ServerConfig.decode(payload)
        assert config == ServerConfig("192.168.2.100", 9001, 30)
        assert config.upload_enabled

    @pytest.mark.parametrize(("interval", "enabled"), [(0, False), (0xFF, False), (1, True)])
    def test_upload_enabled(self, interval, enabled):
        assert ServerConfig("10.0.0.1", 9001, interval).upload_enabled is enabled

    def test_invalid_port(self):
        with pytest.raises(ValueError, match="Port"):
            ServerConfig("10.0.0.1", 70000)

    def test_invalid_interval(self):
        with pytest.raises(ValueError, match="interval"):
            ServerConfig("10.0.0.1", 9001, 256)

    def test_decode_short_payload(self):
        with pytest.raises(MalformedPacketError):
            ServerConfig.decode(b"\x01\x02")

    def test_to_dict(self):
        data = ServerConfig("10.0.0.1", 9001, 0).to_dict()
        assert data == {
            "server_ip": "10.0.0.1",
            "port": 9001,
            "upload_interval": 0,
            "upload_enabled": False,
        }


class TestNetworkConfig:
    def test_encode(self):
        config = NetworkConfig(
            ip="192.168.1.50", subnet_mask="255.255.255.0", gateway="192.168.1.1"
        )
        payload = config.encode()
        assert len(payload) == 16
        assert payload[0:4] == bytes([192, 168, 1, 50])
        assert payload[4:8] == bytes([255, 255, 255, 0])
        assert payload[8:12] == bytes([192, 168, 1, 1])
        assert payload[12:16] == b"\x55\xaa\xaa\x55"

    def test_magic(self):
        assert NETWORK_CONFIG_MAGIC == bytes([0x55, 0xAA, 0xAA, 0x55])

    def test_decode(self):
        config = NetworkConfig("10.1.2.3", "255.255.0.0", "10.1.0.1")
        assert NetworkConfig.decode(config.encode()) == config

    def test_decode_without_magic(self):
        with pytest.raises(MalformedPacketError, match="trailer"):
            NetworkConfig.decode(bytes(16))

    def test_encode_invalid_ip(self):
        with pytest.raises(ValueError):
            NetworkConfig("10.1.2", "255.255.0.0", "10.1.0.1").encode()
