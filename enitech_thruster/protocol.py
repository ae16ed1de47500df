"""Low-level CAN protocol of the thrusters: PDO, emergency, heartbeat, NMT and SDO frames."""

from __future__ import annotations

import math
import time as _time
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from enitech_thruster.jointstate import JointMode, JointState
from enitech_thruster.message import CanMessage, read16, write16


class MessageType(Enum):
    """Kind of frame recognised by :meth:`Protocol.update`."""

    NONE = 0
    HEARTBEAT = 1
    EMERGENCY = 2
    STATUS = 3
    INITIALIZED = 4


class NodeState(IntEnum):
    """Network state of a node, as announced by its heartbeats."""

    UNKNOWN = 0
    BOOTUP = 1
    PRE_OPERATIONAL = 2
    RUNNING = 3
    STOPPED = 4


class StateUnknown(RuntimeError):
    """The node state is needed but no state update has been received."""


class StatusUnknown(RuntimeError):
    """The node status is needed but no status frame has been received."""


class InvalidNodeID(RuntimeError):
    """A node ID outside of the valid range was given."""


class InvalidMessage(RuntimeError):
    """A received frame does not match the protocol description."""


@dataclass
class Status:
    """Thruster status as reported by the PDO frame."""

    time: float = 0.0
    speed: float = 0.0
    current: float = 0.0
    overtemp_bg149: bool = False
    overtemp_motor: bool = False
    start_gain: bool = False
    air_parameters: bool = False
    control_mode: JointMode = JointMode.SPEED


@dataclass
class Emergency:
    """Content of an emergency frame."""

    time: float = 0.0
    overtemp_motor: bool = False
    overtemp_bg149: bool = False
    fault_free: bool = False
    hardware_error: bool = False
    sensor_error: bool = False
    data_error: bool = False


_HEARTBEAT_STATES = {
    0x00: NodeState.BOOTUP,
    0x04: NodeState.STOPPED,
    0x05: NodeState.RUNNING,
    0x7F: NodeState.PRE_OPERATIONAL,
}

_EMERGENCY_CODES = {
    0x0000: "fault_free",
    0x5000: "hardware_error",
    0x5010: "sensor_error",
    0x6300: "data_error",
}

_SDO_READ = 0x40
_SDO_WRITE = 0x22


class Protocol:
    """CAN protocol handler for a single thruster node.

    It parses status (PDO), emergency and heartbeat frames, keeps track of
    the node's known state, and builds NMT, SDO and command frames.

    Positive values mean clockwise rotation.
    """

    def __init__(self, node_id: int = 0) -> None:
        if not 0 <= node_id <= 0xFF:
            raise InvalidNodeID(f"node ID {node_id} does not fit in 8 bits")
        self._node_id = node_id
        self._last_heartbeat = 0.0
        self._last_known_state = NodeState.UNKNOWN
        self._last_status: Optional[Status] = None
        self._last_emergency = Emergency()

    @property
    def node_id(self) -> int:
        """The node ID this object communicates with."""
        return self._node_id

    @property
    def last_heartbeat(self) -> float:
        """Time of the last received heartbeat (0.0 if none)."""
        return self._last_heartbeat

    def has_known_state(self) -> bool:
        """Whether a state update has been received."""
        return self._last_known_state != NodeState.UNKNOWN

    @property
    def last_known_state(self) -> NodeState:
        """The last known node state; raises StateUnknown if there is none."""
        if self.has_known_state():
            return self._last_known_state
        raise StateUnknown("did not yet receive a state update from the node")

    @last_known_state.setter
    def last_known_state(self, state: NodeState) -> None:
        self._last_known_state = NodeState(state)

    def has_last_status(self) -> bool:
        """Whether a status frame has ever been received."""
        return self._last_status is not None

    @property
    def last_status(self) -> Status:
        """The last received status; raises StatusUnknown if there is none."""
        if self._last_status is None:
            raise StatusUnknown("never received any status package")
        return self._last_status

    @property
    def last_emergency(self) -> Emergency:
        """The last received emergency frame."""
        return self._last_emergency

    def update(self, message: CanMessage) -> MessageType:
        """Process an incoming frame and return the kind of frame it was."""
        can_id = message.can_id
        if can_id == 0x700 + self._node_id:
            self._parse_heartbeat(message)
            return MessageType.HEARTBEAT
        if can_id == 0x080 + self._node_id:
            if message.size == 3:
                self._parse_emergency(message)
                return MessageType.EMERGENCY
            if message.size == 0:
                self._parse_initialized(message)
                return MessageType.INITIALIZED
            raise InvalidMessage(
                "message with CAN ID 0x080 + node ID received, but with a message length "
                "that is neither 3 (emergency message) nor 0 (initialized message)"
            )
        if can_id == 0x180 + self._node_id:
            if message.size == 6:
                self._parse_pdo(message)
                return MessageType.STATUS
            raise InvalidMessage(
                "message with CAN ID 0x180 + node ID received, but with a message length "
                "that is not 6 as expected"
            )
        return MessageType.NONE

    def start(self) -> CanMessage:
        """NMT frame that starts the node."""
        return self._make_nmt(0x01)

    def stop(self) -> CanMessage:
        """NMT frame that stops the node."""
        return self._make_nmt(0x02)

    def enter_pre_operational(self) -> CanMessage:
        """NMT frame that puts the node in PRE_OPERATIONAL state."""
        return self._make_nmt(0x80)

    def reset(self) -> CanMessage:
        """NMT frame that resets the node."""
        return self._make_nmt(0x81)

    def reset_communication(self) -> CanMessage:
        """NMT frame that resets the node's communication."""
        return self._make_nmt(0x82)

    def make_command(self, command: JointState) -> CanMessage:
        """Build a command PDO from a speed (rad/s) or raw (current) command.

        Raises ValueError if the command has no field, several fields, or a
        field other than speed or raw set.
        """
        mode = command.mode()
        value = command.get_field(mode)

        # start and control-in-water bits
        command_byte = 1 | (1 << 4)
        if value < 0:
            command_byte |= 1 << 1

        if mode == JointMode.RAW:
            setvalue = int(abs(value))
            command_byte |= 1 << 3
        elif mode == JointMode.SPEED:
            setvalue = math.floor(abs(value) / (2 * math.pi) + 0.5)
        else:
            raise ValueError(f"thruster commands must be in SPEED or RAW mode, got {mode.name}")

        message = CanMessage(can_id=0x200 + self._node_id, size=3)
        write16(message, 0, setvalue)
        message.data[2] = command_byte
        return message

    def make_sdo_read(self, index: int, subindex: int) -> CanMessage:
        """Build a frame requesting to read an SDO."""
        return self._make_sdo(_SDO_READ, index, subindex)

    def make_sdo_write8(self, index: int, subindex: int, value: int) -> CanMessage:
        """Build a frame writing an 8-bit value to an SDO."""
        message = self._make_sdo(_SDO_WRITE, index, subindex)
        message.data[4] = value & 0xFF
        return message

    def make_sdo_write16(self, index: int, subindex: int, value: int) -> CanMessage:
        """Build a frame writing a 16-bit value to an SDO."""
        message = self._make_sdo(_SDO_WRITE, index, subindex)
        write16(message, 4, value)
        return message

    def _make_nmt(self, command: int) -> CanMessage:
        message = CanMessage(time=_time.time(), can_id=0, size=2)
        message.data[0] = command
        message.data[1] = self._node_id
        return message

    def _make_sdo(self, command: int, index: int, subindex: int) -> CanMessage:
        message = CanMessage(time=_time.time(), can_id=0x600 + self._node_id, size=8)
        message.data[0] = command
        write16(message, 1, index)
        message.data[3] = subindex & 0xFF
        return message

    def _parse_initialized(self, message: CanMessage) -> None:
        # A registration message counts as a heartbeat announcing PRE_OPERATIONAL.
        self._last_heartbeat = message.time
        self._last_known_state = NodeState.PRE_OPERATIONAL

    def _parse_heartbeat(self, message: CanMessage) -> None:
        if message.size != 1:
            raise InvalidMessage("received a heartbeat message with a size that is not 1")
        try:
            self._last_known_state = _HEARTBEAT_STATES[message.data[0]]
        except KeyError:
            raise InvalidMessage("unexpected node state in heartbeat message") from None
        self._last_heartbeat = message.time

    def _parse_emergency(self, message: CanMessage) -> None:
        error_register = message.data[2]
        emergency = Emergency(
            overtemp_motor=bool(error_register & 0x01),
            overtemp_bg149=bool(error_register & 0x02),
        )
        try:
            flag = _EMERGENCY_CODES[read16(message, 0)]
        except KeyError:
            raise InvalidMessage("received emergency message with unexpected error code") from None
        setattr(emergency, flag, True)
        self._last_emergency = emergency

    def _parse_pdo(self, message: CanMessage) -> None:
        if message.size != 6:
            raise InvalidMessage("expected the PDO message to have a length of 6")

        status_byte = message.data[5]
        ccw = bool(status_byte & (1 << 6))
        direction = -1.0 if ccw else 1.0

        self._last_status = Status(
            time=message.time,
            speed=direction * read16(message, 0) * math.pi * 2,
            current=direction * read16(message, 2),
            overtemp_bg149=bool(status_byte & (1 << 2)),
            overtemp_motor=bool(status_byte & (1 << 3)),
            start_gain=bool(status_byte & (1 << 0)),
            air_parameters=not (status_byte & (1 << 1)),
            control_mode=JointMode.RAW if status_byte & (1 << 4) else JointMode.SPEED,
        )
        self._last_known_state = NodeState.RUNNING