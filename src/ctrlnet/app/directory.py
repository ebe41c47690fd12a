"""Typed request/response operations against one known controller."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from ctrlnet.encoding.packet import encode_packet
from ctrlnet.services.device_mgmt import (
    SERVER_CONFIG_ACK,
    NetworkConfig,
    ServerConfig,
    decode_time_payload,
    encode_time_payload,
)
from ctrlnet.services.errors import (
    ConfigRejectedError,
    ControllerBaseError,
    ControllerTimeoutError,
    MalformedPacketError,
    UnexpectedResponseError,
)
from ctrlnet.types.enums import FunctionId

if TYPE_CHECKING:
    from ctrlnet.app.device import DeviceRecord
    from ctrlnet.app.store import DeviceStore
    from ctrlnet.encoding.packet import Packet
    from ctrlnet.transport.udp import UDPTransport

logger = logging.getLogger(__name__)


class DeviceDirectory:
    """Clock, receiving-server and addressing operations for known devices.

    Each call sends one request to ``record.target_host`` and checks that
    the reply carries the same function id.  A successful exchange
    refreshes the record's ``last_seen`` in the store, if one is attached.

    :param transport: UDP transport used for every request.
    :param store: Optional device store.
    :param request_timeout: Reply timeout in seconds.
    :param network_config_timeout: How long to wait for the rarely sent
        reply to :meth:`set_network_config`.
    """

    def __init__(
        self,
        transport: UDPTransport,
        *,
        store: DeviceStore | None = None,
        request_timeout: float = 5.0,
        network_config_timeout: float = 1.0,
    ) -> None:
        self._transport = transport
        self._store = store
        self._request_timeout = request_timeout
        self._network_config_timeout = network_config_timeout

    async def _request(
        self,
        record: DeviceRecord,
        function_id: FunctionId,
        payload: bytes = b"",
        *,
        timeout: float | None = None,
    ) -> Packet:
        """Send one request and return the matching reply packet.

        :raises ControllerTimeoutError: No reply in time.
        :raises ControllerSocketError: Socket could not be opened or used.
        :raises UnexpectedResponseError: Reply carries another function id.
        """
        request = encode_packet(function_id, record.serial_number, payload)
        try:
            reply = await self._transport.send_and_receive(
                request, record.target_host, timeout or self._request_timeout
            )
        except ControllerBaseError as exc:
            if exc.serial_number is None:
                exc.serial_number = record.serial_number
            raise
        if reply.packet.function_id != function_id:
            raise UnexpectedResponseError(
                function_id, reply.packet.function_id, serial_number=record.serial_number
            )
        if self._store is not None:
            self._store.touch(record.serial_number)
        return reply.packet

    async def get_time(self, record: DeviceRecord) -> datetime:
        """Read the controller clock.

        :param record: Target controller.
        :returns: Controller local time as a naive datetime.
        :raises MalformedPacketError: If the reply holds an invalid date.
        """
        packet = await self._request(record, FunctionId.GET_TIME)
        try:
            return decode_time_payload(packet.payload)
        except MalformedPacketError as exc:
            exc.serial_number = record.serial_number
            raise

    async def set_time(self, record: DeviceRecord, when: datetime | None = None) -> datetime:
        """Set the controller clock.

        :param record: Target controller.
        :param when: Time to set; defaults to local now.  Sub-second
            precision is dropped.
        :returns: The time that was written.
        """
        when = (when or datetime.now()).replace(microsecond=0)
        await self._request(record, FunctionId.SET_TIME, encode_time_payload(when))
        logger.info("Set clock of controller %d to %s", record.serial_number, when.isoformat())
        return when

    async def get_server_config(self, record: DeviceRecord) -> ServerConfig:
        packet = await self._request(record, FunctionId.GET_RECEIVING_SERVER)
        return ServerConfig.decode(packet.payload)

    async def set_server_config(self, record: DeviceRecord, config: ServerConfig) -> ServerConfig:
        """Point the controller at a receiving server.

        :raises ConfigRejectedError: If the acknowledgement byte is not 1.
        """
        packet = await self._request(record, FunctionId.SET_RECEIVING_SERVER, config.encode())
        ack = packet.payload[0]
        if ack != SERVER_CONFIG_ACK:
            msg = f"Controller {record.serial_number} rejected receiving server configuration"
            raise ConfigRejectedError(msg, serial_number=record.serial_number, ack=ack)
        logger.info(
            "Controller %d now reports to %s:%d (interval %d)",
            record.serial_number,
            config.server_ip,
            config.port,
            config.upload_interval,
        )
        return config

    async def set_network_config(
        self, record: DeviceRecord, config: NetworkConfig
    ) -> DeviceRecord:
        """Push new IPv4 addressing to a controller.

        The controller restarts after accepting the change and normally
        does not reply, so a timeout counts as success.  A reply is
        accepted too.  Only socket failures are raised.

        :returns: The record with the new addressing, as stored.
        :raises ControllerSocketError: If the request could not be sent.
        """
        try:
            await self._request(
                record,
                FunctionId.SET_NETWORK_CONFIG,
                config.encode(),
                timeout=self._network_config_timeout,
            )
        except (ControllerTimeoutError, UnexpectedResponseError):
            logger.debug("No acknowledgement from controller %d", record.serial_number)
        updated = dataclasses.replace(
            record,
            configured_ip=config.ip,
            subnet_mask=config.subnet_mask,
            gateway=config.gateway,
        )
        if self._store is not None:
            updated = self._store.add_or_update(updated)
        logger.info(
            "Sent network configuration %s/%s gw %s to controller %d",
            config.ip,
            config.subnet_mask,
            config.gateway,
            record.serial_number,
        )
        return updated
