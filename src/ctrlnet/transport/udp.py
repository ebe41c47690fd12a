"""Single-shot UDP transport for controller traffic using asyncio.

Each call opens one ephemeral datagram endpoint, uses it, and closes it
on every exit path.  Nothing is kept open between calls.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ctrlnet.encoding.packet import CONTROLLER_PORT, Packet, decode_packet
from ctrlnet.services.errors import (
    ControllerSocketError,
    ControllerTimeoutError,
    MalformedPacketError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Reply:
    """A decoded packet together with the UDP source it arrived from."""

    packet: Packet
    remote_address: str
    remote_port: int


class _UDPProtocol(asyncio.DatagramProtocol):
    """Datagram protocol that decodes controller packets.

    Send failures are reported by asyncio through :meth:`error_received`
    rather than raised from ``sendto``; :meth:`send` captures those and
    raises them synchronously.  Errors arriving later (ICMP unreachable
    and the like) are only logged.
    """

    def __init__(self, callback: Callable[[Reply], None]) -> None:
        self._callback = callback
        self._transport: asyncio.DatagramTransport | None = None
        self._sending = False
        self._send_error: OSError | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport  # type: ignore[assignment]

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        """Decode an incoming datagram and forward it to the callback."""
        try:
            packet = decode_packet(data)
        except MalformedPacketError as exc:
            logger.debug("Dropped malformed datagram from %s:%d: %s", addr[0], addr[1], exc)
            return
        self._callback(Reply(packet=packet, remote_address=addr[0], remote_port=addr[1]))

    def error_received(self, exc: Exception) -> None:
        """Record send-time errors, log everything else."""
        if self._sending and isinstance(exc, OSError):
            self._send_error = exc
            return
        logger.warning("UDP transport error: %s", exc)

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None:
            logger.warning("UDP connection lost: %s", exc)
        self._transport = None

    def send(self, data: bytes, host: str, port: int) -> None:
        """Send one datagram.

        :raises ControllerSocketError: If the operating system rejects the send.
        """
        if self._transport is None:
            msg = "Socket is not open"
            raise ControllerSocketError(msg)
        self._send_error = None
        self._sending = True
        try:
            self._transport.sendto(data, (host, port))
        except OSError as exc:
            self._send_error = exc
        finally:
            self._sending = False
        if self._send_error is not None:
            error, self._send_error = self._send_error, None
            msg = f"Failed to send to {host}:{port}: {error}"
            raise ControllerSocketError(msg) from error


class UDPTransport:
    """Request/response and broadcast primitives for controller packets."""

    def __init__(self, interface: str = "0.0.0.0", port: int = CONTROLLER_PORT) -> None:
        """Initialize the transport.

        :param interface: Local IP address to bind ephemeral sockets to.
        :param port: Controller UDP port. Defaults to 60000.
        """
        self._interface = interface
        self._port = port

    @property
    def interface(self) -> str:
        """Local bind address."""
        return self._interface

    @property
    def port(self) -> int:
        """Remote controller port."""
        return self._port

    @contextlib.asynccontextmanager
    async def _open(self, callback: Callable[[Reply], None]) -> AsyncIterator[_UDPProtocol]:
        """Open one broadcast-capable ephemeral socket and close it on exit."""
        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.create_datagram_endpoint(
                lambda: _UDPProtocol(callback),
                local_addr=(self._interface, 0),
                allow_broadcast=True,
            )
        except OSError as exc:
            msg = f"Failed to open UDP socket on {self._interface}: {exc}"
            raise ControllerSocketError(msg) from exc
        try:
            yield protocol
        finally:
            transport.close()

    async def send_and_receive(self, packet: bytes, host: str, timeout: float = 5.0) -> Reply:
        """Send *packet* to *host* and wait for the first valid reply.

        :param packet: Encoded 64-byte request.
        :param host: Destination IPv4 address.
        :param timeout: Seconds to wait for a reply.
        :returns: The first structurally valid :class:`Reply`.
        :raises ControllerTimeoutError: If no valid reply arrives in time.
        :raises ControllerSocketError: If the socket cannot be opened or the
            send is rejected.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Reply] = loop.create_future()

        def _on_reply(reply: Reply) -> None:
            if not future.done():
                future.set_result(reply)

        async with self._open(_on_reply) as protocol:
            protocol.send(packet, host, self._port)
            try:
                return await asyncio.wait_for(future, timeout)
            except TimeoutError as exc:
                msg = f"No reply from {host}:{self._port} within {timeout:.3f}s"
                raise ControllerTimeoutError(msg) from exc

    async def broadcast_and_collect(
        self,
        packet: bytes,
        targets: Iterable[str],
        window: float,
    ) -> list[Reply]:
        """Send *packet* to every target and collect all replies for *window* seconds.

        A failed send to one target is logged and skipped.  Replies are
        returned in arrival order without deduplication.

        :param packet: Encoded 64-byte request.
        :param targets: Broadcast or unicast destination addresses.
        :param window: Seconds to listen after sending.
        :returns: Every valid :class:`Reply` received within the window.
        :raises ControllerSocketError: If the socket cannot be opened or every
            send fails.
        """
        replies: list[Reply] = []
        destinations = list(dict.fromkeys(targets))
        async with self._open(replies.append) as protocol:
            sent = 0
            last_error: ControllerSocketError | None = None
            for target in destinations:
                try:
                    protocol.send(packet, target, self._port)
                except ControllerSocketError as exc:
                    logger.warning("Broadcast to %s failed: %s", target, exc)
                    last_error = exc
                    continue
                sent += 1
            if destinations and sent == 0:
                msg = f"Send failed for all {len(destinations)} target(s)"
                raise ControllerSocketError(msg) from last_error
            await asyncio.sleep(window)
        logger.debug(
            "Collected %d reply(s) from %d target(s) in %.3fs",
            len(replies),
            sent,
            window,
        )
        return list(replies)
