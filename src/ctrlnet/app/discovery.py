"""Controller discovery on an unknown local IPv4 network.

Discovery broadcasts a ``0x94`` request to every candidate broadcast
address, retrying with backoff, and falls back to unicast probing of
likely addresses when nothing answers.  Replies are validated and
deduplicated by ``(serial_number, remote_address, remote_port)``.

The listen budget passed as ``timeout`` is divided into equal slices:
one per broadcast attempt plus one reserved for the unicast fallback
when it is enabled.  Backoff delays between attempts are spent in
addition to that budget, so a call takes at most ``timeout`` plus the
sum of its delays.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ctrlnet.app.device import DeviceRecord
from ctrlnet.network.address import GLOBAL_BROADCAST, is_valid_ipv4
from ctrlnet.network.interfaces import list_interfaces
from ctrlnet.services.discovery import (
    DEFAULT_VERSION_ORDER,
    encode_discovery_request,
    validate_discovery_reply,
)
from ctrlnet.services.errors import (
    ControllerSocketError,
    ControllerTimeoutError,
    DeviceStoreError,
    NoNetworkInterfacesError,
    ReplyValidationError,
)
from ctrlnet.types.enums import InterfaceType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from ctrlnet.app.store import DeviceStore
    from ctrlnet.network.interfaces import NetworkInterface
    from ctrlnet.transport.udp import Reply, UDPTransport
    from ctrlnet.types.enums import VersionByteOrder

logger = logging.getLogger(__name__)

DedupKey = tuple[int, str, int]

_SKIPPED_BROADCAST_TYPES = frozenset({InterfaceType.VIRTUAL, InterfaceType.LOOPBACK})


@dataclass(frozen=True, slots=True)
class DiscoveryConfig:
    """Tuning knobs for :class:`DiscoveryEngine`.

    Use :func:`dataclasses.replace` to derive a per-call override.

    :param max_retries: Number of broadcast attempts (at least 1).
    :param retry_delay_ms: Delay before the second attempt.
    :param exponential_backoff: Double the delay for each later attempt.
    :param enable_unicast_fallback: Probe likely addresses when no
        broadcast attempt found anything.
    :param enable_interface_detection: Enumerate local interfaces for
        directed broadcast and fallback candidates.
    :param dedup_window_ms: Lifetime of dedup cache entries.
    :param unicast_min_probe_timeout_ms: Floor for the per-target timeout
        of a fallback probe.
    :param unicast_max_concurrency: Maximum fallback probes in flight.
    :param unicast_last_octets: Host parts probed in each local ``/24``.
    :param extra_broadcast_addresses: Static broadcast addresses appended
        after the interface and global broadcasts.
    """

    max_retries: int = 3
    retry_delay_ms: int = 1000
    exponential_backoff: bool = True
    enable_unicast_fallback: bool = True
    enable_interface_detection: bool = True
    dedup_window_ms: int = 30000
    unicast_min_probe_timeout_ms: int = 200
    unicast_max_concurrency: int = 8
    unicast_last_octets: tuple[int, ...] = (1, 2, 10, 20, 50, 66, 100, 120, 200, 254)
    extra_broadcast_addresses: tuple[str, ...] = (
        "192.168.0.255",
        "192.168.1.255",
        "192.168.2.255",
        "10.0.0.255",
    )

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            msg = f"max_retries must be >= 1, got {self.max_retries}"
            raise ValueError(msg)
        if self.retry_delay_ms < 0:
            msg = f"retry_delay_ms must be >= 0, got {self.retry_delay_ms}"
            raise ValueError(msg)
        if self.dedup_window_ms < 0:
            msg = f"dedup_window_ms must be >= 0, got {self.dedup_window_ms}"
            raise ValueError(msg)
        if self.unicast_min_probe_timeout_ms <= 0:
            msg = (
                "unicast_min_probe_timeout_ms must be > 0, "
                f"got {self.unicast_min_probe_timeout_ms}"
            )
            raise ValueError(msg)
        if self.unicast_max_concurrency < 1:
            msg = f"unicast_max_concurrency must be >= 1, got {self.unicast_max_concurrency}"
            raise ValueError(msg)
        for octet in self.unicast_last_octets:
            if not 1 <= octet <= 254:
                msg = f"unicast_last_octets entries must be 1-254, got {octet}"
                raise ValueError(msg)
        for address in self.extra_broadcast_addresses:
            if not is_valid_ipv4(address):
                msg = f"Invalid broadcast address {address!r}"
                raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-friendly dict."""
        return {
            "max_retries": self.max_retries,
            "retry_delay_ms": self.retry_delay_ms,
            "exponential_backoff": self.exponential_backoff,
            "enable_unicast_fallback": self.enable_unicast_fallback,
            "enable_interface_detection": self.enable_interface_detection,
            "dedup_window_ms": self.dedup_window_ms,
            "unicast_min_probe_timeout_ms": self.unicast_min_probe_timeout_ms,
            "unicast_max_concurrency": self.unicast_max_concurrency,
            "unicast_last_octets": list(self.unicast_last_octets),
            "extra_broadcast_addresses": list(self.extra_broadcast_addresses),
        }


class DiscoveryState(Enum):
    """Phases of one discovery call."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    UNICAST_FALLBACK = "unicast-fallback"
    DONE = "done"


class DedupCache:
    """Last-seen times of discovery replies, keyed by :data:`DedupKey`.

    Thread-safe.  Entries are purged lazily by :meth:`purge`, which the
    engine calls at the start of every discovery.

    :param clock: Monotonic time source in seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[DedupKey, float] = {}

    def purge(self, window: float) -> int:
        """Drop entries older than *window* seconds; return how many."""
        cutoff = self._clock() - window
        with self._lock:
            stale = [key for key, seen in self._entries.items() if seen < cutoff]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def mark(self, key: DedupKey) -> bool:
        """Record *key* as seen now; ``True`` if it was not already cached."""
        with self._lock:
            is_new = key not in self._entries
            self._entries[key] = self._clock()
        return is_new

    def addresses(self) -> list[str]:
        """Distinct reply source addresses, oldest first."""
        with self._lock:
            return list(dict.fromkeys(key[1] for key in self._entries))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(slots=True)
class DiscoveryReport:
    """Outcome of one discovery call with per-phase counters."""

    devices: list[DeviceRecord] = field(default_factory=list)
    attempts: int = 0
    delays: list[float] = field(default_factory=list)
    broadcast_targets: list[str] = field(default_factory=list)
    fallback_used: bool = False
    probes_sent: int = 0
    rejected_replies: int = 0
    socket_errors: list[str] = field(default_factory=list)
    elapsed: float = 0.0
    states: list[DiscoveryState] = field(default_factory=lambda: [DiscoveryState.IDLE])

    @property
    def state(self) -> DiscoveryState:
        """Current (or final) phase."""
        return self.states[-1]

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-friendly dict."""
        return {
            "devices": [d.to_dict() for d in self.devices],
            "attempts": self.attempts,
            "delays": list(self.delays),
            "broadcast_targets": list(self.broadcast_targets),
            "fallback_used": self.fallback_used,
            "probes_sent": self.probes_sent,
            "rejected_replies": self.rejected_replies,
            "socket_errors": list(self.socket_errors),
            "elapsed": round(self.elapsed, 3),
            "state": self.state.value,
        }

    def _enter(self, state: DiscoveryState) -> None:
        self.states.append(state)


def retry_delay(config: DiscoveryConfig, attempt: int) -> float:
    """Seconds to wait before broadcast *attempt* (1-based).

    The first attempt is immediate.  Attempt ``k > 1`` waits
    ``retry_delay_ms * 2**(k - 2)`` with exponential backoff, else a
    constant ``retry_delay_ms``.
    """
    if attempt <= 1:
        return 0.0
    delay_ms = config.retry_delay_ms
    if config.exponential_backoff:
        delay_ms *= 2 ** (attempt - 2)
    return delay_ms / 1000


def broadcast_targets(
    interfaces: Sequence[NetworkInterface], config: DiscoveryConfig
) -> list[str]:
    """Ordered, duplicate-free broadcast destinations.

    Directed broadcasts of real interfaces come first (virtual and
    loopback interfaces are only used when nothing else exists), then the
    global broadcast, then the static list from *config*.
    """
    preferred = [i for i in interfaces if i.type not in _SKIPPED_BROADCAST_TYPES]
    chosen = preferred or list(interfaces)
    candidates = [i.broadcast for i in chosen]
    candidates.append(GLOBAL_BROADCAST)
    candidates.extend(config.extra_broadcast_addresses)
    return list(dict.fromkeys(candidates))


def fallback_hosts(
    interfaces: Sequence[NetworkInterface],
    config: DiscoveryConfig,
    known: Iterable[str] = (),
) -> list[str]:
    """Unicast probe candidates for the fallback phase.

    Previously seen addresses come first, then ``prefix.octet`` for every
    local non-loopback ``/24`` prefix and each of
    ``config.unicast_last_octets``.  Local addresses are excluded.
    """
    local = {i.address for i in interfaces}
    hosts = [h for h in known if h and is_valid_ipv4(h)]
    for iface in interfaces:
        if iface.type == InterfaceType.LOOPBACK:
            continue
        prefix = iface.address.rsplit(".", 1)[0]
        hosts.extend(f"{prefix}.{octet}" for octet in config.unicast_last_octets)
    return [h for h in dict.fromkeys(hosts) if h not in local]


class DiscoveryEngine:
    """Find controllers by broadcast with retries and unicast fallback.

    The engine holds no per-call state; concurrent calls on one engine
    each collect their own results.  The shared :class:`DedupCache`
    remembers reply sources across calls and seeds the fallback probe
    list.

    :param transport: UDP transport used for every send.
    :param config: Default configuration for calls that pass none.
    :param cache: Dedup cache, shared between engines if desired.
    :param store: Optional device store; every validated device is
        passed to its ``add_or_update`` from a worker thread.
    :param interface_provider: Callable returning local interfaces.
    :param version_order: Driver-version byte order for decoding replies.
    """

    def __init__(
        self,
        transport: UDPTransport,
        *,
        config: DiscoveryConfig | None = None,
        cache: DedupCache | None = None,
        store: DeviceStore | None = None,
        interface_provider: Callable[[], list[NetworkInterface]] = list_interfaces,
        version_order: VersionByteOrder = DEFAULT_VERSION_ORDER,
    ) -> None:
        self._transport = transport
        self._config = config or DiscoveryConfig()
        self._cache = cache if cache is not None else DedupCache()
        self._store = store
        self._interface_provider = interface_provider
        self._version_order = version_order

    @property
    def config(self) -> DiscoveryConfig:
        return self._config

    @property
    def cache(self) -> DedupCache:
        return self._cache

    async def discover(
        self, timeout: float = 5.0, config: DiscoveryConfig | None = None
    ) -> list[DeviceRecord]:
        """Discover controllers on the local network.

        :param timeout: Listen budget in seconds, shared by all broadcast
            attempts and the unicast fallback.
        :param config: Per-call override of the engine configuration.
        :returns: Validated, deduplicated devices; empty if none answered.
        :raises NoNetworkInterfacesError: If interface detection is enabled
            and no non-loopback IPv4 interface exists.
        """
        report = await self.discover_with_report(timeout, config)
        return report.devices

    async def discover_with_report(
        self, timeout: float = 5.0, config: DiscoveryConfig | None = None
    ) -> DiscoveryReport:
        """Like :meth:`discover`, but return a :class:`DiscoveryReport`."""
        if timeout <= 0:
            msg = f"timeout must be > 0, got {timeout}"
            raise ValueError(msg)
        config = config or self._config
        loop = asyncio.get_running_loop()
        started = loop.time()
        report = DiscoveryReport()
        found: dict[DedupKey, DeviceRecord] = {}

        self._cache.purge(config.dedup_window_ms / 1000)
        interfaces = self._detect_interfaces(config)
        report.broadcast_targets = broadcast_targets(interfaces, config)
        slices = config.max_retries + (1 if config.enable_unicast_fallback else 0)
        window = timeout / slices
        listened = 0.0
        request = encode_discovery_request()
        logger.info(
            "Discovery started: %d target(s), %d attempt(s), %.3fs per attempt",
            len(report.broadcast_targets),
            config.max_retries,
            window,
        )

        for attempt in range(1, config.max_retries + 1):
            if attempt > 1:
                delay = retry_delay(config, attempt)
                report._enter(DiscoveryState.BACKOFF)
                report.delays.append(delay)
                logger.debug("Backing off %.3fs before attempt %d", delay, attempt)
                await asyncio.sleep(delay)
            report._enter(DiscoveryState.ATTEMPTING)
            report.attempts = attempt
            try:
                replies = await self._transport.broadcast_and_collect(
                    request, report.broadcast_targets, window
                )
            except ControllerSocketError as exc:
                logger.warning("Discovery attempt %d failed: %s", attempt, exc)
                report.socket_errors.append(str(exc))
                continue
            listened += window
            await self._persist(found, self._accept(replies, found, report))
            if found:
                break

        remaining = timeout - listened
        if not found and config.enable_unicast_fallback and remaining > 0:
            report._enter(DiscoveryState.UNICAST_FALLBACK)
            report.fallback_used = True
            hosts = fallback_hosts(interfaces, config, await self._known_addresses())
            if hosts:
                floor = config.unicast_min_probe_timeout_ms / 1000
                per_target = max(remaining / len(hosts), floor)
                logger.info(
                    "Broadcast found nothing, probing %d address(es) by unicast", len(hosts)
                )
                await self._probe(
                    hosts, per_target, remaining, config.unicast_max_concurrency, found, report
                )

        report._enter(DiscoveryState.DONE)
        report.devices = list(found.values())
        report.elapsed = loop.time() - started
        logger.info(
            "Discovery finished: %d device(s) in %.3fs", len(report.devices), report.elapsed
        )
        return report

    async def discover_by_ip(
        self,
        hosts: Iterable[str],
        timeout: float = 2.0,
        config: DiscoveryConfig | None = None,
    ) -> list[DeviceRecord]:
        """Probe explicit addresses with a unicast discovery request.

        :param hosts: IPv4 addresses to probe.
        :param timeout: Per-host reply timeout in seconds.
        :param config: Supplies the fan-out limit.
        :returns: Devices that answered, deduplicated.
        :raises ValueError: If any host is not a valid IPv4 address.
        """
        config = config or self._config
        targets = list(dict.fromkeys(hosts))
        for host in targets:
            if not is_valid_ipv4(host):
                msg = f"Invalid IPv4 address {host!r}"
                raise ValueError(msg)
        report = DiscoveryReport()
        found: dict[DedupKey, DeviceRecord] = {}
        await self._probe(targets, timeout, None, config.unicast_max_concurrency, found, report)
        return list(found.values())

    def _detect_interfaces(self, config: DiscoveryConfig) -> list[NetworkInterface]:
        if not config.enable_interface_detection:
            return []
        interfaces = self._interface_provider()
        if not any(i.type != InterfaceType.LOOPBACK for i in interfaces):
            msg = "No non-loopback IPv4 interface available for discovery"
            raise NoNetworkInterfacesError(msg)
        return interfaces

    async def _known_addresses(self) -> list[str]:
        known = self._cache.addresses()
        if self._store is None:
            return known
        try:
            records = await asyncio.to_thread(self._store.list)
        except (DeviceStoreError, OSError) as exc:
            logger.warning("Could not read known controllers: %s", exc)
            return known
        for record in records:
            known.append(record.target_host)
            known.append(record.remote_address)
        return known

    async def _probe(
        self,
        hosts: Sequence[str],
        per_target: float,
        cap: float | None,
        concurrency: int,
        found: dict[DedupKey, DeviceRecord],
        report: DiscoveryReport,
    ) -> None:
        """Unicast the discovery request to *hosts* with bounded fan-out.

        The whole phase is cancelled after *cap* seconds; cancelled probes
        close their sockets on the way out.
        """
        semaphore = asyncio.Semaphore(concurrency)
        request = encode_discovery_request()

        async def probe(host: str) -> None:
            async with semaphore:
                report.probes_sent += 1
                try:
                    reply = await self._transport.send_and_receive(request, host, per_target)
                except ControllerTimeoutError:
                    logger.debug("No discovery reply from %s", host)
                    return
                except ControllerSocketError as exc:
                    logger.debug("Probe to %s failed: %s", host, exc)
                    report.socket_errors.append(str(exc))
                    return
                await self._persist(found, self._accept([reply], found, report))

        try:
            async with asyncio.timeout(cap):
                await asyncio.gather(*(probe(host) for host in hosts))
        except TimeoutError:
            logger.debug("Unicast probing stopped after %.3fs budget", cap)

    def _accept(
        self,
        replies: Iterable[Reply],
        found: dict[DedupKey, DeviceRecord],
        report: DiscoveryReport,
    ) -> list[DedupKey]:
        """Validate, deduplicate and record each reply; return the new keys."""
        added: list[DedupKey] = []
        for reply in replies:
            try:
                decoded = validate_discovery_reply(reply.packet, self._version_order)
            except ReplyValidationError as exc:
                report.rejected_replies += 1
                logger.debug(
                    "Rejected discovery reply from %s:%d: %s",
                    reply.remote_address,
                    reply.remote_port,
                    exc,
                )
                continue
            record = DeviceRecord.from_reply(decoded, reply)
            key = record.dedup_key
            self._cache.mark(key)
            if key in found:
                continue
            if record.is_nat_mismatch:
                logger.info(
                    "Controller %d reports IP %s but replied from %s",
                    record.serial_number,
                    record.configured_ip,
                    record.remote_address,
                )
            found[key] = record
            added.append(key)
        return added

    async def _persist(self, found: dict[DedupKey, DeviceRecord], keys: list[DedupKey]) -> None:
        """Save newly found devices in a worker thread.

        Stored versions replace the entries in *found* so callers see the
        merged ``discovered_at`` and ``last_seen``.  Store failures are
        logged and never abort discovery.
        """
        if self._store is None or not keys:
            return
        records = [found[key] for key in keys]
        try:
            stored = await asyncio.to_thread(_save_all, self._store, records)
        except (DeviceStoreError, OSError) as exc:
            logger.warning("Could not save %d controller(s): %s", len(records), exc)
            return
        for key, record in zip(keys, stored, strict=True):
            found[key] = record


def _save_all(store: DeviceStore, records: list[DeviceRecord]) -> list[DeviceRecord]:
    return [store.add_or_update(record) for record in records]
