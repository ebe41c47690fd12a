"""Controller protocol error types.

Every error derives from :class:`ControllerBaseError`.  Errors raised by
single-device operations carry the serial number of the controller
involved; the underlying transport error is chained as ``__cause__``.
"""

from __future__ import annotations


class ControllerBaseError(Exception):
    """Base exception for controller protocol errors."""

    def __init__(self, message: str = "", *, serial_number: int | None = None) -> None:
        self.serial_number = serial_number
        super().__init__(message)


class MalformedPacketError(ControllerBaseError, ValueError):
    """A frame has the wrong size, type byte, or an undecodable field.

    Raised by the packet decoder.  The transport drops such frames; they
    never abort an in-flight operation.
    """


class PayloadTooLargeError(ControllerBaseError, ValueError):
    """A request payload does not fit the 32-byte payload field."""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(f"Payload too large: {length} bytes, limit {limit}")


class ReplyValidationError(ControllerBaseError, ValueError):
    """A discovery reply failed validation and was dropped."""


class ControllerTimeoutError(ControllerBaseError, TimeoutError):
    """No reply arrived within the allotted time."""


class ControllerSocketError(ControllerBaseError, OSError):
    """The operating system refused to open, bind, or send on a socket."""


class NoNetworkInterfacesError(ControllerBaseError):
    """Interface detection found no usable IPv4 interface."""


class ConfigRejectedError(ControllerBaseError):
    """The controller did not acknowledge a set operation."""

    def __init__(self, message: str, *, serial_number: int | None = None, ack: int = 0) -> None:
        self.ack = ack
        super().__init__(message, serial_number=serial_number)


class UnexpectedResponseError(ControllerBaseError):
    """A reply arrived but carries a different function id than requested."""

    def __init__(self, expected: int, received: int, *, serial_number: int | None = None) -> None:
        self.expected = expected
        self.received = received
        super().__init__(
            f"Expected function {expected:#04x}, got {received:#04x}",
            serial_number=serial_number,
        )


class UnknownDeviceError(ControllerBaseError, LookupError):
    """No controller with the given serial number is known to the store."""

    def __init__(self, serial_number: int) -> None:
        super().__init__(f"Unknown controller {serial_number}", serial_number=serial_number)


class DeviceStoreError(ControllerBaseError, ValueError):
    """A device store or export document could not be decoded."""
