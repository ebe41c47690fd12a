"""Packed binary-coded decimal helpers.

Each BCD byte carries two decimal digits.  Conversion uses the
arithmetic identities ``d + (d // 10) * 6`` and ``b - (b // 16) * 6``
rather than nibble manipulation; both agree on every valid value.
"""

from __future__ import annotations

from datetime import datetime

from ctrlnet.services.errors import MalformedPacketError

BCD_DATETIME_LENGTH = 7  # century, year, month, day, hour, minute, second


def bcd_encode(value: int) -> int:
    """Encode a decimal value ``0..99`` as one BCD byte.

    :param value: Decimal value to encode.
    :returns: The BCD byte (``56`` -> ``0x56``).
    :raises ValueError: If *value* is outside ``0..99``.
    """
    if not 0 <= value <= 99:
        msg = f"BCD value must be 0-99, got {value}"
        raise ValueError(msg)
    return value + (value // 10) * 6


def bcd_decode(byte: int) -> int:
    """Decode one BCD byte to its decimal value (``0x56`` -> ``56``)."""
    return byte - (byte // 16) * 6


def datetime_to_bcd(dt: datetime) -> bytes:
    """Encode a datetime as seven BCD bytes.

    Layout: century, year-in-century, month, day, hour, minute, second.
    Sub-second precision and timezone information are discarded.

    :param dt: The datetime to encode.
    :returns: Seven BCD-encoded bytes.
    """
    return bytes(
        (
            bcd_encode(dt.year // 100),
            bcd_encode(dt.year % 100),
            bcd_encode(dt.month),
            bcd_encode(dt.day),
            bcd_encode(dt.hour),
            bcd_encode(dt.minute),
            bcd_encode(dt.second),
        )
    )


def bcd_to_datetime(fields: bytes | bytearray | memoryview) -> datetime:
    """Decode seven BCD bytes into a naive datetime.

    :param fields: At least seven bytes in the :func:`datetime_to_bcd` layout.
    :returns: The decoded datetime.
    :raises MalformedPacketError: If *fields* is too short or encodes an
        impossible calendar value.
    """
    if len(fields) < BCD_DATETIME_LENGTH:
        msg = f"BCD datetime needs {BCD_DATETIME_LENGTH} bytes, got {len(fields)}"
        raise MalformedPacketError(msg)
    century, year, month, day, hour, minute, second = (
        bcd_decode(b) for b in fields[:BCD_DATETIME_LENGTH]
    )
    try:
        return datetime(century * 100 + year, month, day, hour, minute, second)
    except ValueError as exc:
        msg = f"Invalid BCD datetime {bytes(fields[:BCD_DATETIME_LENGTH]).hex()}: {exc}"
        raise MalformedPacketError(msg) from exc


def bcd_to_iso_date(century: int, year: int, month: int, day: int) -> str:
    """Format four BCD bytes as an ISO ``YYYY-MM-DD`` string.

    No calendar validation is applied; firmware release dates are
    reported verbatim.
    """
    full_year = bcd_decode(century) * 100 + bcd_decode(year)
    return f"{full_year:04d}-{bcd_decode(month):02d}-{bcd_decode(day):02d}"
