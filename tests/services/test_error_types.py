"""Tests for the controller error hierarchy."""

import pytest

from ctrlnet.services.errors import (
    ConfigRejectedError,
    ControllerBaseError,
    ControllerSocketError,
    ControllerTimeoutError,
    DeviceStoreError,
    MalformedPacketError,
    NoNetworkInterfacesError,
    PayloadTooLargeError,
    ReplyValidationError,
    UnexpectedResponseError,
    UnknownDeviceError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        ("error", "builtin"),
        [
            (MalformedPacketError, ValueError),
            (ReplyValidationError, ValueError),
            (ControllerTimeoutError, TimeoutError),
            (ControllerSocketError, OSError),
            (DeviceStoreError, ValueError),
        ],
    )
    def test_builtin_bases(self, error, builtin):
        assert issubclass(error, ControllerBaseError)
        assert issubclass(error, builtin)

    def test_all_derive_from_base(self):
        for error in (NoNetworkInterfacesError, ConfigRejectedError, UnexpectedResponseError):
            assert issubclass(error, ControllerBaseError)


class TestAttributes:
    def test_serial_number_default(self):
        assert ControllerTimeoutError("x").serial_number is None

    def test_serial_number(self):
        assert ControllerTimeoutError("x", serial_number=7).serial_number == 7

    def test_payload_too_large(self):
        err = PayloadTooLargeError(40, 32)
        assert isinstance(err, ValueError)
        assert "40" in str(err)

    def test_config_rejected_ack(self):
        err = ConfigRejectedError("no", serial_number=3, ack=0)
        assert err.ack == 0
        assert err.serial_number == 3

    def test_unexpected_response(self):
        err = UnexpectedResponseError(0x32, 0x30, serial_number=9)
        assert err.expected == 0x32
        assert err.received == 0x30
        assert "0x32" in str(err)
        assert "0x30" in str(err)

    def test_unknown_device(self):
        err = UnknownDeviceError(1234)
        assert isinstance(err, LookupError)
        assert err.serial_number == 1234
        assert "1234" in str(err)
