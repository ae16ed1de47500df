"""CAN frames and the request/reply base used by the thruster protocol."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

DATA_LENGTH = 8


def _zero_payload() -> bytearray:
    return bytearray(DATA_LENGTH)


@dataclass
class CanMessage:
    """A single CAN frame.

    ``time`` is the host reception time and ``can_time`` the board timestamp,
    both in seconds; 0.0 means the time is not set.
    """

    time: float = 0.0
    can_time: float = 0.0
    can_id: int = 0
    size: int = 0
    data: bytearray = field(default_factory=_zero_payload)

    def __post_init__(self) -> None:
        payload = bytearray(self.data)
        if len(payload) > DATA_LENGTH:
            raise ValueError(f"a CAN frame carries at most {DATA_LENGTH} data bytes")
        payload.extend(bytes(DATA_LENGTH - len(payload)))
        self.data = payload

    @classmethod
    def zeroed(cls) -> CanMessage:
        """Return a frame with every field and data byte set to zero."""
        return cls()

    @property
    def payload(self) -> bytes:
        """The data bytes actually carried by the frame."""
        return bytes(self.data[: self.size])


def read16(message: CanMessage, index: int) -> int:
    """Read a little-endian 16-bit value from the frame data at ``index``."""
    return (message.data[index + 1] << 8) | message.data[index]


def write16(message: CanMessage, index: int, value: int) -> None:
    """Write ``value`` as a little-endian 16-bit value at ``index``."""
    value &= 0xFFFF
    message.data[index + 1] = value >> 8
    message.data[index] = value & 0xFF


class Request(ABC):
    """A request frame together with the logic that waits for its reply.

    Send ``message``, then feed every received frame to :meth:`update` until
    it returns True.
    """

    def __init__(self, message: CanMessage) -> None:
        self.message = message

    @abstractmethod
    def update(self, message: CanMessage) -> bool:
        """Process a received frame; return True once the reply is complete."""