"""Shared test utilities for ctrlnet tests."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable

from ctrlnet.encoding.packet import Packet, decode_packet, encode_packet
from ctrlnet.network.interfaces import NetworkInterface, make_interface
from ctrlnet.services.discovery import DiscoveryReply
from ctrlnet.services.errors import ControllerTimeoutError
from ctrlnet.transport.udp import Reply
from ctrlnet.types.enums import FunctionId

SERIAL = 423187757
CONTROLLER_IP = "192.168.1.100"

SAMPLE_REPLY = DiscoveryReply(
    serial_number=SERIAL,
    configured_ip=CONTROLLER_IP,
    subnet_mask="255.255.255.0",
    gateway="192.168.1.1",
    mac_address="00:57:19:2b:4c:2d",
    driver_version="6.56",
    driver_release_date="2019-08-15",
)


def discovery_reply(
    serial: int = SERIAL,
    configured_ip: str = CONTROLLER_IP,
    remote_address: str | None = None,
    remote_port: int = 60000,
) -> Reply:
    """A decoded discovery reply as the transport would deliver it."""
    payload = DiscoveryReply(
        serial_number=serial,
        configured_ip=configured_ip,
        subnet_mask=SAMPLE_REPLY.subnet_mask,
        gateway=SAMPLE_REPLY.gateway,
        mac_address=SAMPLE_REPLY.mac_address,
        driver_version=SAMPLE_REPLY.driver_version,
        driver_release_date=SAMPLE_REPLY.driver_release_date,
    )
    return Reply(
        packet=decode_packet(payload.encode()),
        remote_address=remote_address or configured_ip,
        remote_port=remote_port,
    )


def packet_reply(
    function_id: int,
    payload: bytes = b"",
    serial: int = SERIAL,
    remote_address: str = CONTROLLER_IP,
) -> Reply:
    """Wrap an arbitrary packet as a transport reply."""
    return Reply(
        packet=decode_packet(encode_packet(function_id, serial, payload)),
        remote_address=remote_address,
        remote_port=60000,
    )


def ethernet(address: str = "192.168.1.5", netmask: str = "255.255.255.0") -> NetworkInterface:
    return make_interface("eth0", address, netmask, "aa:bb:cc:dd:ee:ff")


def loopback() -> NetworkInterface:
    return make_interface("lo", "127.0.0.1", "255.0.0.0")


class FakeTransport:
    """In-memory stand-in for :class:`~ctrlnet.transport.udp.UDPTransport`.

    *broadcasts* is consumed one entry per ``broadcast_and_collect`` call;
    each entry is a list of replies or an exception to raise.  *unicast*
    maps a host to a reply or exception; unknown hosts time out.
    """

    def __init__(
        self,
        broadcasts: list[list[Reply] | Exception] | None = None,
        unicast: dict[str, Reply | Exception] | None = None,
        *,
        simulate_time: bool = False,
    ) -> None:
        self.broadcasts = list(broadcasts or [])
        self.unicast = dict(unicast or {})
        self.simulate_time = simulate_time
        self.broadcast_calls: list[tuple[bytes, list[str], float]] = []
        self.unicast_calls: list[tuple[bytes, str, float]] = []

    async def broadcast_and_collect(
        self, packet: bytes, targets: list[str], window: float
    ) -> list[Reply]:
        self.broadcast_calls.append((packet, list(targets), window))
        outcome = self.broadcasts.pop(0) if self.broadcasts else []
        if isinstance(outcome, Exception):
            raise outcome
        if self.simulate_time:
            await asyncio.sleep(window)
        return list(outcome)

    async def send_and_receive(self, packet: bytes, host: str, timeout: float = 5.0) -> Reply:
        self.unicast_calls.append((packet, host, timeout))
        outcome = self.unicast.get(host)
        if outcome is None:
            if self.simulate_time:
                await asyncio.sleep(timeout)
            msg = f"No reply from {host}"
            raise ControllerTimeoutError(msg)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def sent_packets(self) -> list[Packet]:
        """Every unicast request, decoded."""
        return [decode_packet(packet) for packet, _, _ in self.unicast_calls]


class FakeController(asyncio.DatagramProtocol):
    """Loopback UDP peer that answers each datagram via *handler*.

    The handler receives the raw request and returns the datagrams to
    send back (possibly none).
    """

    def __init__(self, handler: Callable[[bytes], list[bytes]]) -> None:
        self.handler = handler
        self.received: list[bytes] = []
        self.transport: asyncio.DatagramTransport | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport  # type: ignore[assignment]

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self.received.append(data)
        assert self.transport is not None
        for reply in self.handler(data):
            self.transport.sendto(reply, addr)


@contextlib.asynccontextmanager
async def fake_controller(
    handler: Callable[[bytes], list[bytes]],
) -> AsyncIterator[tuple[FakeController, int]]:
    """Run a :class:`FakeController` on ``127.0.0.1``; yields it and its port."""
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        lambda: FakeController(handler), local_addr=("127.0.0.1", 0)
    )
    try:
        yield protocol, transport.get_extra_info("sockname")[1]
    finally:
        transport.close()


def echo_discovery(data: bytes) -> list[bytes]:
    """Handler answering any discovery request with :data:`SAMPLE_REPLY`."""
    if decode_packet(data).function_id == FunctionId.DISCOVER:
        return [SAMPLE_REPLY.encode()]
    return []
