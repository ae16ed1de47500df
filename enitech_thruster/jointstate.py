"""State of a single joint, usable both as a reading and as a command."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum

UNSET = math.nan


def is_unset(value: float) -> bool:
    """Whether ``value`` marks an unset field (NaN)."""
    return math.isnan(value)


class JointMode(IntEnum):
    POSITION = 0
    SPEED = 1
    EFFORT = 2
    RAW = 3
    ACCELERATION = 4
    UNSET = 5


_FIELDS = {
    JointMode.POSITION: "position",
    JointMode.SPEED: "speed",
    JointMode.EFFORT: "effort",
    JointMode.RAW: "raw",
    JointMode.ACCELERATION: "acceleration",
}


def _field_name(mode: int) -> str:
    try:
        return _FIELDS[JointMode(mode)]
    except (ValueError, KeyError):
        raise ValueError("invalid mode given to get_field") from None


@dataclass
class JointState:
    """Position, speed, effort, raw and acceleration of a joint.

    A field holding NaN is unset. A command normally has exactly one field set.
    """

    position: float = UNSET
    speed: float = UNSET
    effort: float = UNSET
    raw: float = UNSET
    acceleration: float = UNSET

    @classmethod
    def from_position(cls, value: float) -> JointState:
        return cls(position=value)

    @classmethod
    def from_speed(cls, value: float) -> JointState:
        return cls(speed=value)

    @classmethod
    def from_effort(cls, value: float) -> JointState:
        return cls(effort=value)

    @classmethod
    def from_raw(cls, value: float) -> JointState:
        return cls(raw=value)

    @classmethod
    def from_acceleration(cls, value: float) -> JointState:
        return cls(acceleration=value)

    def has_position(self) -> bool:
        return not is_unset(self.position)

    def has_speed(self) -> bool:
        return not is_unset(self.speed)

    def has_effort(self) -> bool:
        return not is_unset(self.effort)

    def has_raw(self) -> bool:
        return not is_unset(self.raw)

    def has_acceleration(self) -> bool:
        return not is_unset(self.acceleration)

    def _set_modes(self) -> list[JointMode]:
        return [mode for mode, name in _FIELDS.items() if not is_unset(getattr(self, name))]

    def _is_only(self, mode: JointMode) -> bool:
        return self._set_modes() == [mode]

    def is_position(self) -> bool:
        return self._is_only(JointMode.POSITION)

    def is_speed(self) -> bool:
        return self._is_only(JointMode.SPEED)

    def is_effort(self) -> bool:
        return self._is_only(JointMode.EFFORT)

    def is_raw(self) -> bool:
        return self._is_only(JointMode.RAW)

    def is_acceleration(self) -> bool:
        return self._is_only(JointMode.ACCELERATION)

    def get_field(self, mode: int) -> float:
        """Return the field matching ``mode``."""
        return getattr(self, _field_name(mode))

    def set_field(self, mode: int, value: float) -> None:
        """Set the field matching ``mode`` to ``value``."""
        setattr(self, _field_name(mode), value)

    def mode(self) -> JointMode:
        """The single field that is set, or UNSET when none is.

        Raises ValueError when more than one field is set.
        """
        modes = self._set_modes()
        if not modes:
            return JointMode.UNSET
        if len(modes) > 1:
            raise ValueError("mode() called on a JointState that has more than one field set")
        return modes[0]