"""Tests for network diagnostics and troubleshooting recommendations."""

import socket

from ctrlnet.app.device import DeviceRecord
from ctrlnet.app.diagnostics import (
    ConnectivityResult,
    NetworkDiagnostics,
    network_info,
    recommend,
)
from ctrlnet.app.discovery import DiscoveryConfig
from ctrlnet.app.store import MemoryDeviceStore
from ctrlnet.network.interfaces import make_interface
from ctrlnet.services.discovery import validate_discovery_reply
from ctrlnet.services.errors import ControllerSocketError
from ctrlnet.types.enums import FunctionId
from tests.helpers import SERIAL, FakeTransport, discovery_reply, ethernet, loopback, packet_reply


def _levels(hints):
    return [h.level for h in hints]


class TestNetworkInfo:
    def test_fields(self):
        info = network_info(lambda: [ethernet()])
        assert info.hostname == socket.gethostname()
        assert info.platform == info.platform.lower()
        assert [i.name for i in info.interfaces] == ["eth0"]

    def test_to_dict(self):
        data = network_info(lambda: [ethernet()]).to_dict()
        assert data["interfaces"][0]["type"] == "ethernet"


class TestRecommend:
    def test_no_interfaces(self):
        hints = recommend([loopback()], [])
        assert hints[0].level == "error"
        assert "loopback" in hints[0].message

    def test_wifi_only_warns(self):
        wifi = make_interface("wlan0", "192.168.1.20", "255.255.255.0")
        hints = recommend([wifi], [ConnectivityResult("192.168.1.100", True, 3.0, SERIAL)])
        assert _levels(hints) == ["warning"]
        assert "ethernet" in hints[0].message

    def test_multiple_interfaces(self):
        wifi = make_interface("wlan0", "10.0.0.20", "255.255.255.0")
        hints = recommend([ethernet(), wifi], [ConnectivityResult("192.168.1.100", True)])
        assert _levels(hints) == ["info"]

    def test_unreachable_target(self):
        hints = recommend([ethernet()], [ConnectivityResult("192.168.1.100", False)])
        assert _levels(hints) == ["warning"]
        assert "192.168.1.100" in hints[0].message

    def test_nothing_tested(self):
        hints = recommend([ethernet()], [])
        assert _levels(hints) == ["info"]

    def test_healthy(self):
        assert recommend([ethernet()], [ConnectivityResult("192.168.1.100", True)]) == []


class TestConnectivity:
    async def test_reachable(self):
        transport = FakeTransport(unicast={"192.168.1.100": discovery_reply()})
        diagnostics = NetworkDiagnostics(transport, probe_timeout=0.3)
        result = await diagnostics.test_connectivity("192.168.1.100")
        assert result.reachable is True
        assert result.serial_number == SERIAL
        assert result.response_time_ms is not None
        assert result.error is None
        assert transport.unicast_calls[0][2] == 0.3
        assert transport.sent_packets()[0].function_id == FunctionId.DISCOVER

    async def test_timeout(self):
        diagnostics = NetworkDiagnostics(FakeTransport())
        result = await diagnostics.test_connectivity("192.168.1.100")
        assert result.reachable is False
        assert "No reply" in result.error

    async def test_socket_error(self):
        transport = FakeTransport(unicast={"192.168.1.100": ControllerSocketError("refused")})
        result = await NetworkDiagnostics(transport).test_connectivity("192.168.1.100")
        assert result.reachable is False
        assert result.error == "refused"

    async def test_invalid_reply(self):
        transport = FakeTransport(unicast={"192.168.1.100": packet_reply(FunctionId.GET_TIME)})
        result = await NetworkDiagnostics(transport).test_connectivity("192.168.1.100")
        assert result.reachable is False


class TestRun:
    async def test_targets_and_store(self):
        store = MemoryDeviceStore()
        reply = discovery_reply(serial=5, configured_ip="192.168.1.105")
        store.add_or_update(DeviceRecord.from_reply(validate_discovery_reply(reply.packet), reply))
        transport = FakeTransport(unicast={"192.168.1.100": discovery_reply()})
        diagnostics = NetworkDiagnostics(
            transport,
            store=store,
            config=DiscoveryConfig(max_retries=2),
            interface_provider=lambda: [ethernet()],
        )
        report = await diagnostics.run(["192.168.1.100", "192.168.1.105"])
        assert [c.target for c in report.connectivity] == ["192.168.1.100", "192.168.1.105"]
        assert [c.reachable for c in report.connectivity] == [True, False]
        assert _levels(report.recommendations) == ["warning"]
        assert report.discovery_config.max_retries == 2

    async def test_to_dict(self):
        diagnostics = NetworkDiagnostics(FakeTransport(), interface_provider=lambda: [ethernet()])
        data = (await diagnostics.run()).to_dict()
        assert data["connectivity"] == []
        assert data["recommendations"][0]["level"] == "info"
        assert data["discovery_config"]["max_retries"] == 3
        assert "T" in data["timestamp"]
