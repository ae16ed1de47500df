"""SDO request/reply handling: register reads and writes on a thruster node."""

from __future__ import annotations

from enitech_thruster.message import CanMessage, Request, read16
from enitech_thruster.protocol import Protocol

_REPLY_READ = 0x42
_REPLY_WRITE = 0x60
_REPLY_ERROR = 0x80

_BG149_TEMPERATURE_INDEX = 0x3010
_HEARTBEAT_PERIOD_INDEX = 0x1017
_UPDATE_PERIOD_INDEX = 0x2200

_SDO_ERRORS = {
    (0x0504, 0x0001): "client/server command unknown or invalid",
    (0x0601, 0x0000): "unsupported access to this object",
    (0x0601, 0x0001): "read access not support on this object",
    (0x0601, 0x0002): "write access not support on this object",
    (0x0602, 0x0000): "object does not exist",
    (0x0609, 0x0011): "sub-index does not exist",
    (0x0800, 0x0000): "General error",
    (0x0800, 0x0020): "data cannot be transferred or stored",
    (0x0800, 0x0021): "data cannot be transferred or stored because of local control",
    (0x0800, 0x0022): "data cannot be transferred or stored because the current device state",
    (0x0800, 0x0024): "no data available",
}


class UnexpectedSDOReply(RuntimeError):
    """An SDO reply was received that does not match the pending request."""


class SDOError(RuntimeError):
    """The node answered an SDO request with an error frame."""


def _sdo_error(message: CanMessage) -> SDOError:
    key = (read16(message, 4), read16(message, 6))
    return SDOError(_SDO_ERRORS.get(key, "unknown SDO error"))


def _period_to_milliseconds(period: float) -> int:
    microseconds = round(period * 1_000_000)
    return int(microseconds / 1000) & 0xFFFF


class SDORequest(Request):
    """Base of SDO requests (reads and writes).

    Frames that are not SDO replies are forwarded to the protocol object.
    SDO requests are not expected to run in parallel, so any SDO reply that
    does not match this request raises UnexpectedSDOReply.
    """

    def __init__(self, message: CanMessage, protocol: Protocol, index: int, subindex: int) -> None:
        super().__init__(message)
        self.protocol = protocol
        self.index = index
        self.subindex = subindex

    def update(self, message: CanMessage) -> bool:
        """Return True once the matching SDO reply has been received."""
        if (message.can_id & 0xF80) != 0x580:
            self.protocol.update(message)
            return False
        if (message.can_id & 0x7F) != self.protocol.node_id:
            raise UnexpectedSDOReply("received a SDO reply for a different node than this one")
        if message.size != 8:
            raise UnexpectedSDOReply("received a SDO reply of size different than 8")
        if message.data[0] == _REPLY_ERROR:
            raise _sdo_error(message)

        if read16(message, 1) != self.index:
            raise UnexpectedSDOReply(
                "received a SDO reply for a different object than the expected one"
            )
        if message.data[3] != self.subindex:
            raise UnexpectedSDOReply(
                "received a SDO reply for a different subindex than the expected one"
            )
        return True


class _SDORead(SDORequest):
    def __init__(self, protocol: Protocol, index: int, subindex: int) -> None:
        super().__init__(protocol.make_sdo_read(index, subindex), protocol, index, subindex)
        self.time = 0.0

    def update(self, message: CanMessage) -> bool:
        if not super().update(message):
            return False
        if message.data[0] != _REPLY_READ:
            raise UnexpectedSDOReply("expected a reply for a SDO read and got something else")
        self.time = message.time
        self._decode(message)
        return True

    def _decode(self, message: CanMessage) -> None:
        raise NotImplementedError


class Read8(_SDORead):
    """Read an 8-bit SDO value."""

    def __init__(self, protocol: Protocol, index: int, subindex: int) -> None:
        super().__init__(protocol, index, subindex)
        self.value = 0

    def update(self, message: CanMessage) -> bool:
        return super().update(message)

    def _decode(self, message: CanMessage) -> None:
        self.value = message.data[4]


class Read16(_SDORead):
    """Read a 16-bit SDO value."""

    def __init__(self, protocol: Protocol, index: int, subindex: int) -> None:
        super().__init__(protocol, index, subindex)
        self.value = 0

    def update(self, message: CanMessage) -> bool:
        return super().update(message)

    def _decode(self, message: CanMessage) -> None:
        self.value = read16(message, 4)


class ReadString(_SDORead):
    """Read a 4-character SDO string."""

    def __init__(self, protocol: Protocol, index: int, subindex: int) -> None:
        super().__init__(protocol, index, subindex)
        self.value = ""

    def update(self, message: CanMessage) -> bool:
        return super().update(message)

    def _decode(self, message: CanMessage) -> None:
        self.value = bytes(message.data[4:8]).decode("latin-1")


class ReadBG149Temperature(Read16):
    """Read the temperature of one of the BG149 electronics probes."""

    def __init__(self, protocol: Protocol, probe_number: int) -> None:
        super().__init__(protocol, _BG149_TEMPERATURE_INDEX, probe_number)


class Write(SDORequest):
    """Write an 8- or 16-bit value to an SDO."""

    def __init__(
        self, protocol: Protocol, index: int, subindex: int, value: int, width: int = 16
    ) -> None:
        if width == 8:
            message = protocol.make_sdo_write8(index, subindex, value)
        elif width == 16:
            message = protocol.make_sdo_write16(index, subindex, value)
        else:
            raise ValueError(f"SDO writes are 8 or 16 bits wide, not {width}")
        super().__init__(message, protocol, index, subindex)

    def update(self, message: CanMessage) -> bool:
        if not super().update(message):
            return False
        if message.data[0] != _REPLY_WRITE:
            raise UnexpectedSDOReply("expected a reply for a SDO write and got something else")
        return True


class WriteHeartbeatPeriod(Write):
    """Set the heartbeat period (seconds); applied after a node reset."""

    def __init__(self, protocol: Protocol, period: float) -> None:
        super().__init__(
            protocol, _HEARTBEAT_PERIOD_INDEX, 0x00, _period_to_milliseconds(period), 16
        )


class WriteUpdatePeriod(Write):
    """Set the status update period (seconds); applied after a node reset."""

    def __init__(self, protocol: Protocol, period: float) -> None:
        super().__init__(
            protocol, _UPDATE_PERIOD_INDEX, 0x00, _period_to_milliseconds(period), 16
        )