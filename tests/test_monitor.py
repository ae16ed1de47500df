import math

import pytest

from enitech_thruster.jointstate import JointState
from enitech_thruster.joints import Joints
from enitech_thruster.monitor import (
    MonitoringVariables,
    MonitorSettings,
    Thruster,
    ThrusterMonitor,
    load_thrusters,
    most_recent_timestamp,
    moving_average,
    remove_old_samples,
)


def _sample(speed, time):
    return Joints(elements=[JointState.from_speed(speed)], time=time)


def _monitor(**overrides):
    values = dict(
        dead_zone=0,
        error_time_filter=1.0,
        moving_average_time=10.0,
        tolerance=0.1,
        thruster_timeout=5.0,
        samples_threshold=1,
    )
    values.update(overrides)
    outputs = []
    monitor = ThrusterMonitor(
        [Thruster(name="t0", id=1, frame="base")],
        MonitorSettings(**values),
        publish=lambda index, variables: outputs.append((index, variables)),
    )
    return monitor, outputs


def test_most_recent_timestamp_picks_later():
    assert most_recent_timestamp(3.0, 2.0) == 3.0
    assert most_recent_timestamp(2.0, 3.0) == 3.0


def test_remove_old_samples_drops_oldest_from_end():
    samples = [_sample(1.0, 10.0), _sample(1.0, 5.0), _sample(1.0, 1.0)]
    remove_old_samples(samples, 6.0, 10.0)
    assert [s.time for s in samples] == [10.0, 5.0]


def test_remove_old_samples_keeps_within_window():
    samples = [_sample(1.0, 10.0), _sample(1.0, 4.0)]
    remove_old_samples(samples, 6.0, 10.0)
    assert len(samples) == 2


def test_moving_average_of_equal_values():
    assert moving_average([_sample(7.0, 1.0), _sample(7.0, 2.0)]) == pytest.approx(7.0)


def test_moving_average_empty_is_nan():
    result = moving_average([])
    assert repr(result) == "nan"


@pytest.mark.parametrize("tolerance", [0.0, -0.5, 1.5])
def test_settings_reject_bad_tolerance(tolerance):
    with pytest.raises(ValueError):
        MonitorSettings(tolerance=tolerance)


def test_settings_reject_non_positive_threshold():
    with pytest.raises(ValueError):
        MonitorSettings(samples_threshold=0)


def test_load_thrusters_reads_list(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "ThrusterNode:\n"
        "  ros__parameters:\n"
        "    thrusters:\n"
        "      - name: left\n"
        "        id: 1\n"
        "        frame: left_frame\n"
        "      - name: right\n"
        "        id: 2\n"
        "        frame: right_frame\n"
    )
    thrusters = load_thrusters(path)
    assert thrusters == [
        Thruster(name="left", id=1, frame="left_frame"),
        Thruster(name="right", id=2, frame="right_frame"),
    ]


def test_load_thrusters_missing_file_is_empty(tmp_path):
    assert load_thrusters(tmp_path / "absent.yaml") == []


def test_load_thrusters_without_section_is_empty(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("Other:\n  key: 1\n")
    assert load_thrusters(path) == []


def test_first_update_sets_reference_without_output():
    monitor, outputs = _monitor()
    monitor.on_speed_command([100.0], now=1.0)
    monitor.on_joint_sample(0, 100.0, 1.0)
    assert monitor.update() == []
    assert outputs == []
    assert monitor.normal_behavior_timestamp[0] == 1.0


def test_matching_speeds_give_zero_tracking_error():
    monitor, outputs = _monitor()
    monitor.on_speed_command([100.0], now=1.0)
    monitor.on_joint_sample(0, 100.0, 1.0)
    monitor.update()
    monitor.on_joint_sample(0, 100.0, 2.0)
    assert monitor.update() == []
    index, variables = outputs[-1]
    assert index == 0
    assert variables.tracking_error == 0.0
    assert variables.command_moving_average == pytest.approx(100.0)
    assert variables.status_moving_average == pytest.approx(100.0)
    assert variables.command_samples == 2
    assert variables.status_samples == 2
    assert variables.time == 2.0
    assert monitor.last_output[0] == variables


def test_persistent_error_reports_below_expected():
    monitor, outputs = _monitor()
    monitor.on_speed_command([100.0], now=1.0)
    monitor.on_joint_sample(0, 100.0, 1.0)
    monitor.update()
    monitor.on_joint_sample(0, 100.0, 2.0)
    monitor.update()
    monitor.on_joint_sample(0, 50.0, 3.0)
    assert monitor.update() == []
    assert outputs[-1][1].tracking_error > 0.1
    monitor.on_joint_sample(0, 50.0, 4.0)
    assert monitor.update() == ["t0"]
    assert outputs[-1][1].elapsed_time > 1.0


def test_dead_zone_outputs_nan_tracking_error():
    monitor, outputs = _monitor(dead_zone=5)
    monitor.on_speed_command([0.0], now=1.0)
    monitor.on_joint_sample(0, 0.0, 1.0)
    monitor.update()
    monitor.on_joint_sample(0, 0.0, 2.0)
    monitor.update()
    index, variables = outputs[-1]
    assert index == 0
    assert repr(variables.tracking_error) == "nan"
    assert variables.command_moving_average == 0.0
    assert variables.status_moving_average == 0.0
    assert monitor.normal_behavior_timestamp[0] == 2.0


def test_command_timeout_uses_zero_speed():
    monitor, _ = _monitor()
    monitor.on_speed_command([100.0], now=1.0)
    monitor.on_joint_sample(0, 100.0, 1.0)
    monitor.update()
    monitor.on_joint_sample(0, 100.0, 10.0)
    monitor.update()
    assert monitor.command_samples[0][0].elements[0].speed == 0.0
    assert monitor.command_samples[0][0].time == 10.0


def test_unset_time_is_ignored():
    monitor, _ = _monitor()
    monitor.on_joint_sample(0, 1.0, 0.0)
    monitor.update()
    assert monitor.status_samples[0] == []


def test_unset_speed_is_ignored():
    monitor, _ = _monitor()
    monitor.on_joint_sample(0, math.nan, 1.0)
    monitor.update()
    assert monitor.status_samples[0] == []


def test_not_enough_samples_gives_no_output():
    monitor, outputs = _monitor(samples_threshold=5)
    monitor.on_speed_command([100.0], now=1.0)
    monitor.on_joint_sample(0, 100.0, 1.0)
    monitor.update()
    monitor.on_joint_sample(0, 100.0, 2.0)
    monitor.update()
    assert outputs == []
    assert monitor.started_monitoring[0] is False


def test_monitoring_variables_fields():
    variables = MonitoringVariables(0.0, 1.0, 2, 3.0, 4, 0.0, 5.0)
    assert variables.command_samples == 2
    assert variables.status_samples == 4