"""Tests for packed BCD helpers."""

from datetime import datetime

import pytest

from ctrlnet.encoding.bcd import (
    bcd_decode,
    bcd_encode,
    bcd_to_datetime,
    bcd_to_iso_date,
    datetime_to_bcd,
)
from ctrlnet.services.errors import MalformedPacketError


class TestBcdByte:
    def test_encode_56(self):
        assert bcd_encode(56) == 0x56
        assert bcd_encode(56) == 86

    def test_decode_56(self):
        assert bcd_decode(0x56) == 56

    def test_inverse_over_full_range(self):
        for value in range(100):
            assert bcd_decode(bcd_encode(value)) == value

    def test_nibbles_match_digits(self):
        for value in range(100):
            encoded = bcd_encode(value)
            assert encoded >> 4 == value // 10
            assert encoded & 0x0F == value % 10

    @pytest.mark.parametrize("value", [-1, 100, 255])
    def test_encode_out_of_range(self, value):
        with pytest.raises(ValueError, match="0-99"):
            bcd_encode(value)


class TestBcdDatetime:
    def test_layout(self):
        data = datetime_to_bcd(datetime(2024, 3, 15, 14, 30, 45))
        assert data == bytes([0x20, 0x24, 0x03, 0x15, 0x14, 0x30, 0x45])

    def test_round_trip(self):
        dt = datetime(2025, 12, 31, 23, 59, 59)
        assert bcd_to_datetime(datetime_to_bcd(dt)) == dt

    @pytest.mark.parametrize(
        "dt",
        [
            datetime(1, 1, 1, 0, 0, 0),
            datetime(1999, 12, 31, 23, 59, 59),
            datetime(2000, 2, 29, 12, 0, 0),
            datetime(2099, 6, 30, 6, 7, 8),
            datetime(9999, 12, 31, 23, 59, 59),
        ],
    )
    def test_round_trip_across_centuries(self, dt):
        assert bcd_to_datetime(datetime_to_bcd(dt)) == dt

    def test_drops_microseconds(self):
        dt = datetime(2024, 1, 2, 3, 4, 5, 999999)
        assert bcd_to_datetime(datetime_to_bcd(dt)) == dt.replace(microsecond=0)

    def test_decode_ignores_trailing_bytes(self):
        data = datetime_to_bcd(datetime(2024, 1, 2, 3, 4, 5)) + bytes(25)
        assert bcd_to_datetime(data) == datetime(2024, 1, 2, 3, 4, 5)

    def test_decode_too_short(self):
        with pytest.raises(MalformedPacketError, match="7 bytes"):
            bcd_to_datetime(b"\x20\x24\x01")

    def test_decode_invalid_month(self):
        with pytest.raises(MalformedPacketError, match="Invalid BCD datetime"):
            bcd_to_datetime(bytes([0x20, 0x24, 0x13, 0x01, 0x00, 0x00, 0x00]))

    def test_decode_all_zero_is_malformed(self):
        with pytest.raises(MalformedPacketError):
            bcd_to_datetime(bytes(7))


class TestIsoDate:
    def test_release_date(self):
        assert bcd_to_iso_date(0x20, 0x19, 0x08, 0x15) == "2019-08-15"

    def test_no_calendar_validation(self):
        assert bcd_to_iso_date(0x00, 0x00, 0x00, 0x00) == "0000-00-00"
