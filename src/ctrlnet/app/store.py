"""Persistent registry of known controllers.

:class:`JsonDeviceStore` keeps a JSON document of the form::

    {"last_updated": "2025-01-01T00:00:00+00:00", "controllers": [...]}

encoded by :func:`ctrlnet.serialization.encode_controllers`.  Records are
merged by serial number; ``discovered_at`` is preserved across merges
and ``last_seen`` is refreshed.
"""

from __future__ import annotations

import csv
import dataclasses
import io
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ctrlnet.app.device import DeviceRecord, utc_now
from ctrlnet.serialization import decode_controllers, encode_controllers
from ctrlnet.services.errors import DeviceStoreError

if TYPE_CHECKING:
    import os
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")


@runtime_checkable
class DeviceStore(Protocol):
    """Interface the discovery engine and device directory persist through."""

    def add_or_update(self, record: DeviceRecord) -> DeviceRecord:
        """Insert or merge *record*; return the stored version."""
        ...

    def get(self, serial_number: int) -> DeviceRecord | None:
        """Look up a record by serial number."""
        ...

    def list(self) -> list[DeviceRecord]:
        """All stored records, in insertion order."""
        ...

    def remove(self, serial_number: int) -> bool:
        """Delete a record; ``False`` if it was not present."""
        ...

    def touch(self, serial_number: int) -> bool:
        """Refresh ``last_seen``; ``False`` if the record is unknown."""
        ...


def merge_record(existing: DeviceRecord | None, record: DeviceRecord) -> DeviceRecord:
    """Merge an incoming record over an existing one.

    ``discovered_at`` is taken from *existing* when present; ``last_seen``
    is always stamped with the current time.
    """
    now = utc_now()
    discovered_at = (existing.discovered_at if existing else None) or record.discovered_at or now
    return dataclasses.replace(record, discovered_at=discovered_at, last_seen=now)


def search_records(
    records: Iterable[DeviceRecord],
    *,
    serial_number: int | None = None,
    ip: str | None = None,
    mac_address: str | None = None,
    driver_version: str | None = None,
) -> list[DeviceRecord]:
    """Filter *records* by any combination of criteria.

    *ip* matches either the configured IP or the reply source address.
    MAC comparison is case-insensitive.
    """
    result = []
    for record in records:
        if serial_number is not None and record.serial_number != serial_number:
            continue
        if ip is not None and ip not in (record.configured_ip, record.remote_address):
            continue
        if mac_address is not None and record.mac_address.lower() != mac_address.lower():
            continue
        if driver_version is not None and record.driver_version != driver_version:
            continue
        result.append(record)
    return result


def export_records(records: Iterable[DeviceRecord], format: str = "json") -> str:
    """Render records as a ``{"controllers": [...]}`` JSON document or CSV.

    :param records: Records to export.
    :param format: ``"json"`` or ``"csv"``.
    :raises ValueError: If *format* is not supported.
    """
    records = list(records)
    if format == "json":
        return encode_controllers(records).decode()
    if format == "csv":
        output = io.StringIO()
        fields = [f.name for f in dataclasses.fields(DeviceRecord)]
        writer = csv.DictWriter(output, fieldnames=fields)
        writer.writeheader()
        for row in (r.to_dict() for r in records):
            writer.writerow({k: "" if v is None else v for k, v in row.items()})
        return output.getvalue()
    msg = f"Unsupported export format: {format}"
    raise ValueError(msg)


def parse_export(raw: bytes | str) -> list[DeviceRecord]:
    """Parse a JSON document produced by :func:`export_records`.

    :raises DeviceStoreError: If the document is not valid JSON or has no
        ``controllers`` list.
    """
    return decode_controllers(raw)


class MemoryDeviceStore:
    """In-process device store; contents are lost on exit."""

    def __init__(self, records: Iterable[DeviceRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: dict[int, DeviceRecord] = {}
        for record in records:
            self.add_or_update(record)

    def add_or_update(self, record: DeviceRecord) -> DeviceRecord:
        with self._lock:
            merged = merge_record(self._records.get(record.serial_number), record)
            self._records[record.serial_number] = merged
        return merged

    def get(self, serial_number: int) -> DeviceRecord | None:
        with self._lock:
            return self._records.get(serial_number)

    def list(self) -> list[DeviceRecord]:
        with self._lock:
            return list(self._records.values())

    def remove(self, serial_number: int) -> bool:
        with self._lock:
            return self._records.pop(serial_number, None) is not None

    def touch(self, serial_number: int) -> bool:
        with self._lock:
            record = self._records.get(serial_number)
            if record is None:
                return False
            self._records[serial_number] = dataclasses.replace(record, last_seen=utc_now())
        return True

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class JsonDeviceStore:
    """Device store persisted to a JSON file.

    Every mutation rewrites the whole document.  A missing file reads as
    an empty store; the parent directory is created on first write.  A
    file that cannot be decoded raises :class:`DeviceStoreError` from
    every read and is never overwritten by a merge.

    :param path: Location of the JSON document.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[int, DeviceRecord]:
        if not self._path.exists():
            return {}
        raw = self._path.read_bytes()
        if not raw.strip():
            return {}
        try:
            return {r.serial_number: r for r in decode_controllers(raw)}
        except DeviceStoreError as exc:
            msg = f"Corrupt device store {self._path}: {exc}"
            raise DeviceStoreError(msg) from exc

    def _save(self, records: dict[int, DeviceRecord]) -> None:
        raw = encode_controllers(records.values(), last_updated=utc_now())
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(raw)
        logger.debug("Saved %d controller(s) to %s", len(records), self._path)

    def add_or_update(self, record: DeviceRecord) -> DeviceRecord:
        with self._lock:
            records = self._load()
            merged = merge_record(records.get(record.serial_number), record)
            records[record.serial_number] = merged
            self._save(records)
        return merged

    def get(self, serial_number: int) -> DeviceRecord | None:
        with self._lock:
            return self._load().get(serial_number)

    def list(self) -> list[DeviceRecord]:
        with self._lock:
            return list(self._load().values())

    def remove(self, serial_number: int) -> bool:
        with self._lock:
            records = self._load()
            if records.pop(serial_number, None) is None:
                return False
            self._save(records)
        logger.info("Removed controller %d from %s", serial_number, self._path)
        return True

    def touch(self, serial_number: int) -> bool:
        with self._lock:
            records = self._load()
            record = records.get(serial_number)
            if record is None:
                return False
            records[serial_number] = dataclasses.replace(record, last_seen=utc_now())
            self._save(records)
        return True

    def clear(self) -> None:
        with self._lock:
            self._save({})

    def import_records(self, records: Iterable[DeviceRecord], *, merge: bool = True) -> int:
        """Load records into the store.

        :param records: Records to import.
        :param merge: Merge into existing records; when ``False`` the store
            is replaced.
        :returns: Number of records imported.
        """
        with self._lock:
            existing = self._load() if merge else {}
            count = 0
            for record in records:
                existing[record.serial_number] = merge_record(
                    existing.get(record.serial_number), record
                )
                count += 1
            self._save(existing)
        logger.info("Imported %d controller(s) into %s", count, self._path)
        return count
