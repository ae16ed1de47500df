"""Thruster node: configures the thrusters on a CAN bus, forwards commands and reports their state."""

from __future__ import annotations

import logging
import time as _time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Protocol as TypingProtocol, Sequence

from enitech_thruster.jointstate import JointState
from enitech_thruster.joints import Joints
from enitech_thruster.message import CanMessage, Request
from enitech_thruster.monitor import Thruster
from enitech_thruster.nmt import Reset, Start, Stop
from enitech_thruster.protocol import MessageType, Protocol
from enitech_thruster.sdo import ReadBG149Temperature, WriteHeartbeatPeriod, WriteUpdatePeriod

logger = logging.getLogger(__name__)

PROBE_COUNT = 3

TOPIC_STATUS = "status"
TOPIC_JOINT_SAMPLE = "joint_sample"
TOPIC_EMERGENCY = "emergency"
TOPIC_TEMPERATURE = "temperature"
TOPIC_HEARTBEAT = "heartbeat"


class CanDriver(TypingProtocol):
    """What the node needs from a CAN bus driver."""

    def reset(self) -> bool: ...

    def write(self, message: CanMessage) -> None: ...

    def read(self) -> Optional[CanMessage]: ...


class IOTimeout(RuntimeError):
    """A thruster did not answer in time."""


@dataclass
class NodeSettings:
    """Node parameters; all durations and periods are in seconds.

    A ``temperature_period`` of zero disables the temperature readings.
    """

    device: str = "can0"
    reset_timeout: float = 2.0
    start_timeout: float = 1.0
    stop_timeout: float = 0.5
    sdo_timeout: float = 0.5
    heartbeat_period: float = 2.0
    update_period: float = 0.1
    temperature_period: float = 1.0
    periodic_update: float = 0.1
    status_timeout: float = 1.0
    poll_period: float = 0.0


@dataclass
class BG149Temperature:
    """Reading of one temperature probe of the thruster electronics."""

    probe_id: int = 0
    temp_in_degrees: int = 0
    last_update: float = 0.0


Publisher = Callable[[str, int, object], None]


class ThrusterNode:
    """Drives a set of thrusters sharing one CAN bus.

    Call :meth:`configure` then :meth:`start_thrusters` (or use the node as a
    context manager, which also stops the thrusters on exit), then call
    :meth:`update` periodically. Outputs go to ``publish(topic, index, payload)``.
    """

    def __init__(
        self,
        driver: CanDriver,
        thrusters: Sequence[Thruster],
        settings: Optional[NodeSettings] = None,
        publish: Optional[Publisher] = None,
        clock: Callable[[], float] = _time.time,
        sleep: Callable[[float], None] = _time.sleep,
    ) -> None:
        self.driver = driver
        self.thrusters = list(thrusters)
        self.settings = settings if settings is not None else NodeSettings()
        self._publish = publish
        self._clock = clock
        self._sleep = sleep
        count = len(self.thrusters)

        self.protocols: list[Protocol] = []
        self.joints: list[Joints] = [Joints() for _ in range(count)]
        self.last_status: list[float] = []
        self.bg149_temperature = [BG149Temperature() for _ in range(count)]
        self.bg149_temperature_array = [
            [BG149Temperature() for _ in range(PROBE_COUNT)] for _ in range(count)
        ]
        self.newest_speed: list[float] = []
        self.newest_raw: list[float] = []
        self.received_speed_command = False
        self.received_raw_command = False

    def __enter__(self) -> ThrusterNode:
        self.configure()
        self.start_thrusters()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _emit(self, topic: str, index: int, payload: object) -> None:
        if self._publish is not None:
            self._publish(topic, index, payload)

    def configure(self) -> bool:
        """Reset the bus, then set up heartbeat and update periods on each thruster."""
        if not self.driver.reset():
            raise RuntimeError("Failed to reset the CAN device.")
        settings = self.settings
        self.protocols = []
        for index, thruster in enumerate(self.thrusters):
            protocol = Protocol(thruster.id)
            self.protocols.append(protocol)
            self.joints[index].resize(1)

            self.process_request(
                WriteHeartbeatPeriod(protocol, settings.heartbeat_period), settings.sdo_timeout
            )
            self.process_request(Reset(protocol), settings.reset_timeout)
            self.process_request(
                WriteUpdatePeriod(protocol, settings.update_period), settings.sdo_timeout
            )
        logger.info("Thrusters parameters loaded successfully.")
        return True

    def start_thrusters(self) -> bool:
        """Bring every configured thruster into the RUNNING state."""
        logger.info("Initializing Thrusters")
        for protocol in self.protocols:
            self.process_request(Start(protocol), self.settings.status_timeout)
            self.last_status.append(self._clock())
        return True

    def stop(self) -> None:
        """Stop every configured thruster."""
        for protocol in self.protocols:
            self.process_request(Stop(protocol), self.settings.stop_timeout)

    def process_request(self, request: Request, timeout: float) -> bool:
        """Send a request and feed received frames to it until it completes.

        Raises IOTimeout if no complete reply arrives within ``timeout`` seconds.
        """
        self.driver.write(request.message)
        start = self._clock()
        while True:
            message = self.driver.read()
            if message is not None and request.update(message):
                return True
            self._sleep(self.settings.poll_period)
            if self._clock() - start >= timeout:
                break
        raise IOTimeout("IO_TIMEOUT")

    def read_temperature(self, probe_idx: int, index: int) -> bool:
        """Read probe ``probe_idx`` (1 to 3) of thruster ``index`` and publish the probes."""
        request = ReadBG149Temperature(self.protocols[index], probe_idx)
        self.process_request(request, self.settings.sdo_timeout)

        reading = BG149Temperature(
            probe_id=probe_idx, temp_in_degrees=request.value, last_update=request.time
        )
        self.bg149_temperature[index] = reading
        self.bg149_temperature_array[index][probe_idx - 1] = replace(reading)
        self._emit(
            TOPIC_TEMPERATURE,
            index,
            [replace(probe) for probe in self.bg149_temperature_array[index]],
        )
        logger.info(
            "Temperature read successfully for probe %d, thruster %d", probe_idx, index
        )
        return True

    def on_speed_command(self, speeds: Sequence[float]) -> bool:
        """Accept one speed (rad/s) per thruster; return False on a size mismatch."""
        if len(speeds) != len(self.thrusters):
            logger.error(
                "Received command doesn't match the number of declared thrusters."
            )
            return False
        self.received_speed_command = True
        self.newest_speed = list(speeds)
        return True

    def on_raw_command(self, values: Sequence[float]) -> bool:
        """Accept one raw (current) value per thruster; return False on a size mismatch."""
        if len(values) != len(self.thrusters):
            logger.error(
                "Received command doesn't match the number of declared thrusters."
            )
            return False
        self.received_raw_command = True
        self.newest_raw = list(values)
        return True

    def _handle_status(self, index: int) -> None:
        status = self.protocols[index].last_status
        sample = self.joints[index]
        sample.time = status.time
        sample.elements[0].speed = status.speed
        sample.elements[0].raw = status.current
        self.last_status[index] = status.time
        self._emit(TOPIC_STATUS, index, replace(status))
        self._emit(
            TOPIC_JOINT_SAMPLE,
            index,
            Joints(
                elements=[JointState(speed=status.speed, raw=status.current)],
                time=status.time,
            ),
        )

    def update(self) -> None:
        """Process incoming frames, send pending commands and publish heartbeats.

        Raises IOTimeout when a thruster has sent no status for longer than
        the status timeout.
        """
        if len(self.last_status) < len(self.protocols):
            raise RuntimeError("the thrusters must be started before calling update()")
        settings = self.settings

        for index, protocol in enumerate(self.protocols):
            message = self.driver.read()
            if message is not None:
                kind = protocol.update(message)
                if kind == MessageType.NONE:
                    return
                if kind == MessageType.STATUS:
                    self._handle_status(index)
                elif kind == MessageType.EMERGENCY:
                    self._emit(TOPIC_EMERGENCY, index, replace(protocol.last_emergency))

                period = settings.temperature_period
                last_update = self.bg149_temperature[index].last_update
                if period != 0 and self._clock() - last_update >= period:
                    probe_idx = ((self.bg149_temperature[index].probe_id + 1) % PROBE_COUNT) + 1
                    self.read_temperature(probe_idx, index)

            if self.received_speed_command:
                self.driver.write(
                    protocol.make_command(JointState.from_speed(self.newest_speed[index]))
                )
                self.received_speed_command = False
            elif self.received_raw_command:
                self.driver.write(
                    protocol.make_command(JointState.from_raw(self.newest_raw[index]))
                )
                self.received_raw_command = False

            self._emit(TOPIC_HEARTBEAT, index, protocol.last_heartbeat)
            if self.last_status[index] + settings.status_timeout < self._clock():
                raise IOTimeout("IO_TIMEOUT")