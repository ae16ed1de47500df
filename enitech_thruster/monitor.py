"""Thruster performance monitoring: compares speed commands with reported speeds."""

from __future__ import annotations

import logging
import math
import time as _time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import yaml

from enitech_thruster.jointstate import JointState
from enitech_thruster.joints import Joints

logger = logging.getLogger(__name__)


@dataclass
class Thruster:
    """A declared thruster: its name, CAN node ID and frame."""

    name: str
    id: int
    frame: str = ""


@dataclass
class MonitoringVariables:
    """Values published for one thruster on each monitoring step."""

    tracking_error: float
    command_moving_average: float
    command_samples: int
    status_moving_average: float
    status_samples: int
    elapsed_time: float
    time: float


@dataclass
class MonitorSettings:
    """Monitoring parameters; all durations are in seconds.

    ``tolerance`` must lie in (0, 1] and ``samples_threshold`` be positive.
    """

    dead_zone: float = 0.0
    error_time_filter: float = 1.0
    moving_average_time: float = 1.0
    tolerance: float = 0.5
    thruster_timeout: float = 1.0
    samples_threshold: int = 1
    thruster_node_name: str = "ThrusterNode"
    periodic_update: float = 0.5

    def __post_init__(self) -> None:
        if self.tolerance <= 0 or self.tolerance > 1:
            raise ValueError("The tolerance should be a value inside the interval (0,1]")
        if self.samples_threshold <= 0:
            raise ValueError("The samples_threshold should have a positive value.")


def load_thrusters(path) -> list[Thruster]:
    """Read the thruster list from a node configuration YAML file.

    The thrusters are read from ``ThrusterNode.ros__parameters.thrusters``.
    A file that cannot be loaded, or that lacks these sections, yields an
    empty list.
    """
    try:
        with open(path, encoding="utf-8") as stream:
            config = yaml.safe_load(stream)
    except (OSError, yaml.YAMLError) as error:
        logger.error("Failed to load YAML file: %s", error)
        return []

    if not isinstance(config, dict) or not config.get("ThrusterNode"):
        logger.error("No 'ros__parameters' section found in the YAML file.")
        return []

    params = config["ThrusterNode"].get("ros__parameters") or {}
    entries = params.get("thrusters") if isinstance(params, dict) else None
    if not entries:
        logger.error("No 'thrusters' section found in the YAML file.")
        return []

    return [
        Thruster(name=str(entry["name"]), id=int(entry["id"]), frame=str(entry["frame"]))
        for entry in entries
    ]


def most_recent_timestamp(command_time: float, status_time: float) -> float:
    """The later of the two timestamps."""
    return command_time if command_time > status_time else status_time


def remove_old_samples(samples: list[Joints], window: float, current_time: float) -> None:
    """Drop samples older than ``window`` from the end of a newest-first list."""
    while samples and current_time - samples[-1].time > window:
        samples.pop()


def moving_average(samples: Sequence[Joints]) -> float:
    """Mean speed of the first element of each sample (NaN when empty)."""
    if not samples:
        return math.nan
    return sum(sample.elements[0].speed for sample in samples) / len(samples)


def _relative_error(command: float, status: float) -> float:
    difference = command - status
    if command == 0:
        if difference == 0 or math.isnan(difference):
            return math.nan
        return math.inf
    return abs(difference / command)


class ThrusterMonitor:
    """Tracks each thruster's reported speed against its commanded speed.

    Feed it speed commands and joint samples, then call :meth:`update`
    periodically. Monitoring outputs go to ``publish(index, variables)`` when
    given, and the latest one per thruster is kept in ``last_output``.
    """

    def __init__(
        self,
        thrusters: Sequence[Thruster],
        settings: Optional[MonitorSettings] = None,
        publish: Optional[Callable[[int, MonitoringVariables], None]] = None,
    ) -> None:
        self.thrusters = list(thrusters)
        self.settings = settings if settings is not None else MonitorSettings()
        self._publish = publish
        count = len(self.thrusters)

        self.received_speed_command = False
        self.received_joint_sample = [False] * count
        self.newest_speed = [0.0] * count
        self.newest_joint_sample = [(0.0, 0.0)] * count
        self.command_samples: list[list[Joints]] = [[] for _ in range(count)]
        self.status_samples: list[list[Joints]] = [[] for _ in range(count)]
        self.normal_behavior_timestamp = [0.0] * count
        self.started_monitoring = [False] * count
        self.last_command_sample_time = [0.0] * count
        self.last_output: list[Optional[MonitoringVariables]] = [None] * count

    def on_speed_command(self, speeds: Sequence[float], now: Optional[float] = None) -> None:
        """Record a speed command (rad/s per thruster) received at ``now``."""
        stamp = _time.time() if now is None else now
        self.received_speed_command = True
        for index, speed in enumerate(speeds[: len(self.thrusters)]):
            self.newest_speed[index] = speed
            self.last_command_sample_time[index] = stamp

    def on_joint_sample(self, index: int, speed: float, time: float) -> None:
        """Record the speed reported by thruster ``index`` at ``time``."""
        self.received_joint_sample[index] = True
        self.newest_joint_sample[index] = (speed, time)

    def _output(
        self,
        index: int,
        tracking_error: float,
        command_average: float,
        status_average: float,
        elapsed_time: float,
        current_time: float,
    ) -> None:
        variables = MonitoringVariables(
            tracking_error=tracking_error,
            command_moving_average=command_average,
            command_samples=len(self.command_samples[index]),
            status_moving_average=status_average,
            status_samples=len(self.status_samples[index]),
            elapsed_time=elapsed_time,
            time=current_time,
        )
        self.last_output[index] = variables
        if self._publish is not None:
            self._publish(index, variables)

    def update(self) -> list[str]:
        """Run one monitoring step.

        Returns the names of thrusters whose performance has been below
        expectation for longer than the error time filter.
        """
        settings = self.settings
        below_expected: list[str] = []

        for index, thruster in enumerate(self.thrusters):
            commands = self.command_samples[index]
            statuses = self.status_samples[index]
            speed, stamp = self.newest_joint_sample[index]
            status = Joints(elements=[JointState.from_speed(speed)], time=stamp)

            if self.received_joint_sample[index]:
                if not status.elements[0].has_speed():
                    logger.warning("%s: UNSET_SPEED_FIELD", thruster.name)
                    return below_expected
                if status.time == 0:
                    logger.warning("%s: UNSET_TIME_FIELD", thruster.name)
                    return below_expected
                statuses.insert(0, status)

                command = Joints(elements=[JointState.from_speed(self.newest_speed[index])])
                if self.received_speed_command:
                    if not command.elements[0].has_speed():
                        logger.warning("%s: UNSET_SPEED_FIELD", thruster.name)
                        return below_expected
                    command.time = self.last_command_sample_time[index]
                    self.received_speed_command = False
                else:
                    timed_out = (
                        self.last_command_sample_time[index]
                        < status.time - settings.thruster_timeout
                    )
                    if not commands or timed_out:
                        command.elements[0].speed = 0.0
                    else:
                        command.elements[0].speed = commands[0].elements[0].speed
                    command.time = status.time
                commands.insert(0, command)
                self.received_joint_sample[index] = False

            if not commands or not statuses:
                return below_expected

            command_time = commands[0].time
            current_time = most_recent_timestamp(command_time, statuses[0].time)

            if self.normal_behavior_timestamp[index] == 0:
                self.normal_behavior_timestamp[index] = current_time
                return below_expected

            remove_old_samples(commands, settings.moving_average_time, current_time)
            remove_old_samples(statuses, settings.moving_average_time, current_time)

            if (
                len(commands) < settings.samples_threshold
                or len(statuses) < settings.samples_threshold
            ):
                if self.started_monitoring[index]:
                    logger.info("%s: There are not enough samples.", thruster.name)
                return below_expected

            if not self.started_monitoring[index]:
                logger.info("%s: Monitoring begins with sufficient samples.", thruster.name)
            self.started_monitoring[index] = True

            command_average = moving_average(commands)
            status_average = moving_average(statuses)

            if (
                abs(command_average) <= settings.dead_zone
                and abs(status_average) <= settings.dead_zone
            ):
                self.normal_behavior_timestamp[index] = current_time
                self._output(index, math.nan, command_average, status_average, 0.0, current_time)
                return below_expected

            tracking_error = _relative_error(command_average, status_average)
            if tracking_error <= settings.tolerance:
                self.normal_behavior_timestamp[index] = current_time
                self._output(
                    index, tracking_error, command_average, status_average, 0.0, current_time
                )
                return below_expected

            elapsed_time = command_time - self.normal_behavior_timestamp[index]
            self._output(
                index, tracking_error, command_average, status_average, elapsed_time, current_time
            )
            if elapsed_time > settings.error_time_filter:
                logger.warning("The thruster %s performance is below expected.", thruster.name)
                below_expected.append(thruster.name)
                return below_expected

        return below_expected