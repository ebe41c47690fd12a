"""Controller document serialization.

Both the persistent device store and the export command write the same
document shape::

    {"last_updated": "2025-01-01T00:00:00+00:00", "controllers": [...]}

``last_updated`` is optional on read.  Encoding goes through a
:class:`Serializer` backend chosen by :func:`get_serializer`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ctrlnet.app.device import DeviceRecord
from ctrlnet.services.errors import DeviceStoreError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

__all__ = ["Serializer", "decode_controllers", "encode_controllers", "get_serializer"]

CONTROLLERS_KEY = "controllers"


@runtime_checkable
class Serializer(Protocol):
    """Interface for format-specific serialization backends."""

    def encode(self, data: dict[str, Any]) -> bytes:
        """Encode a dict to the target format."""
        ...

    def decode(self, raw: bytes) -> dict[str, Any]:
        """Decode bytes in the target format to a dict."""
        ...

    @property
    def content_type(self) -> str:
        """MIME type for the output format."""
        ...


def get_serializer(format: str = "json", **kwargs: Any) -> Serializer:
    """Get a serializer instance for *format*.

    :param format: Output format.  Only ``"json"`` is supported.
    :param kwargs: Options passed to the serializer constructor.
    :raises ValueError: If the format is not supported.
    """
    if format == "json":
        from ctrlnet.serialization.json import JsonSerializer

        return JsonSerializer(**kwargs)
    msg = f"Unsupported serialization format: {format}"
    raise ValueError(msg)


def encode_controllers(
    records: Iterable[DeviceRecord],
    *,
    last_updated: datetime | None = None,
    pretty: bool = True,
) -> bytes:
    """Encode records as a controllers document.

    :param records: Records in the order they should be written.
    :param last_updated: Timestamp stored alongside the records; omitted
        when ``None``.
    :param pretty: Indent the output.
    """
    document: dict[str, Any] = {}
    if last_updated is not None:
        document["last_updated"] = last_updated.isoformat()
    document[CONTROLLERS_KEY] = [r.to_dict() for r in records]
    return get_serializer("json", pretty=pretty).encode(document)


def decode_controllers(raw: bytes | str) -> list[DeviceRecord]:
    """Decode a controllers document.

    :raises DeviceStoreError: If *raw* is not JSON, has no
        ``controllers`` list, or holds an entry that is not a valid
        record.
    """
    if isinstance(raw, str):
        raw = raw.encode()
    try:
        data = get_serializer("json").decode(raw)
    except (TypeError, ValueError) as exc:
        msg = f"Controllers document is not a JSON object: {exc}"
        raise DeviceStoreError(msg) from exc
    controllers = data.get(CONTROLLERS_KEY)
    if not isinstance(controllers, list):
        msg = "Controllers document must contain a 'controllers' list"
        raise DeviceStoreError(msg)
    records = []
    for index, item in enumerate(controllers):
        try:
            records.append(DeviceRecord.from_dict(item))
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Invalid controller entry {index}: {exc!r}"
            raise DeviceStoreError(msg) from exc
    return records
