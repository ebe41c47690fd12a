"""Discovered controller record."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ctrlnet.services.discovery import DiscoveryReply
    from ctrlnet.transport.udp import Reply


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True, slots=True)
class DeviceRecord:
    """One controller as seen on the network.

    ``configured_ip`` is what the controller reports about itself;
    ``remote_address`` is where its reply actually came from.  The two
    differ behind NAT or on a multi-homed host, and both are kept.
    """

    serial_number: int
    configured_ip: str
    subnet_mask: str
    gateway: str
    mac_address: str
    driver_version: str
    driver_release_date: str
    remote_address: str
    remote_port: int
    discovered_at: datetime | None = None
    last_seen: datetime | None = None

    @classmethod
    def from_reply(cls, decoded: DiscoveryReply, reply: Reply) -> DeviceRecord:
        """Combine a validated discovery payload with the datagram source."""
        return cls(
            serial_number=decoded.serial_number,
            configured_ip=decoded.configured_ip,
            subnet_mask=decoded.subnet_mask,
            gateway=decoded.gateway,
            mac_address=decoded.mac_address,
            driver_version=decoded.driver_version,
            driver_release_date=decoded.driver_release_date,
            remote_address=reply.remote_address,
            remote_port=reply.remote_port,
        )

    @property
    def target_host(self) -> str:
        """Address used for unicast requests to this controller."""
        return self.configured_ip or self.remote_address

    @property
    def dedup_key(self) -> tuple[int, str, int]:
        return (self.serial_number, self.remote_address, self.remote_port)

    @property
    def is_nat_mismatch(self) -> bool:
        """True when the reply source differs from the configured IP."""
        return bool(self.remote_address) and self.remote_address != self.configured_ip

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-friendly dict."""
        return {
            "serial_number": self.serial_number,
            "configured_ip": self.configured_ip,
            "subnet_mask": self.subnet_mask,
            "gateway": self.gateway,
            "mac_address": self.mac_address,
            "driver_version": self.driver_version,
            "driver_release_date": self.driver_release_date,
            "remote_address": self.remote_address,
            "remote_port": self.remote_port,
            "discovered_at": self.discovered_at.isoformat() if self.discovered_at else None,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceRecord:
        """Reconstruct from a dict produced by :meth:`to_dict`.

        :raises KeyError: If a required field is missing.
        """
        return cls(
            serial_number=int(data["serial_number"]),
            configured_ip=data["configured_ip"],
            subnet_mask=data.get("subnet_mask", ""),
            gateway=data.get("gateway", ""),
            mac_address=data.get("mac_address", ""),
            driver_version=data.get("driver_version", ""),
            driver_release_date=data.get("driver_release_date", ""),
            remote_address=data.get("remote_address", ""),
            remote_port=int(data.get("remote_port", 0)),
            discovered_at=_parse_timestamp(data.get("discovered_at")),
            last_seen=_parse_timestamp(data.get("last_seen")),
        )
